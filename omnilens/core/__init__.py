"""
Core Infrastructure - Configuration and Logging

This package provides centralized infrastructure utilities that should be used
throughout the application instead of direct library calls.

Usage:
    from omnilens.core import get_config, get_logger

    config = get_config()
    health_config = config.get_health_config()

    logger = get_logger(__name__)
"""

from ..secure_config import (
    ConfigurationError,
    GitHubConfig,
    HealthConfig,
    SecureConfig,
    StorageConfig,
    get_config,
    validate_config_on_startup,
)
from .logging_config import get_logger, log_with_context, setup_logging

__all__ = [
    # Configuration
    "get_config",
    "validate_config_on_startup",
    "ConfigurationError",
    "SecureConfig",
    "GitHubConfig",
    "HealthConfig",
    "StorageConfig",
    # Logging
    "get_logger",
    "log_with_context",
    "setup_logging",
]
