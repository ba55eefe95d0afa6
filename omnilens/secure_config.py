"""
Secure Configuration Management

Provides centralized, validated configuration for the dashboard core.
Replaces scattered os.getenv() calls with strict validation and fail-fast behavior.

Usage:
    from omnilens.secure_config import get_config

    config = get_config()
    health_config = config.get_health_config()
    print(health_config.cache_ttl_seconds)

Validation:
    - Fail-fast on missing/invalid configuration
    - Placeholder detection for provider tokens (e.g., "your_token_here")
    - HTTPS enforcement for provider URLs
    - Range checks for window and TTL settings

Raises:
    ConfigurationError: If configuration is missing or invalid
"""

import os
from dataclasses import dataclass
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv


class ConfigurationError(Exception):
    """Raised when configuration is missing or invalid."""

    pass


@dataclass
class GitHubConfig:
    """
    Validated CI provider (GitHub Actions) configuration.
    """

    token: str
    api_url: str = "https://api.github.com"

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate()

    def _validate(self):
        """
        Validate provider configuration.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if not self.token:
            raise ConfigurationError("GITHUB_TOKEN is required")

        placeholders = ["your_token", "your_pat", "example", "placeholder", "xxx", "replace_me"]
        if any(placeholder in self.token.lower() for placeholder in placeholders):
            raise ConfigurationError("GITHUB_TOKEN contains a placeholder value - please set a real token")

        if not self.api_url.startswith("https://"):
            raise ConfigurationError(f"GITHUB_API_URL must use HTTPS: {self.api_url}")


@dataclass
class HealthConfig:
    """
    Validated health classification and caching configuration.

    Attributes:
        cache_ttl_seconds: How long a computed graph/window result stays fresh
        cache_max_entries: Upper bound on cached results before the oldest is evicted
        recent_window_days: Length of the recent sub-window used by the "consistent" rule
        default_window_days: Window length used when a caller does not ask for one
        timezone: Name of the single timezone used to assign runs to calendar days
    """

    cache_ttl_seconds: int = 300
    cache_max_entries: int = 1024
    recent_window_days: int = 7
    default_window_days: int = 30
    timezone: str = "UTC"

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate()

    def _validate(self):
        """
        Validate health configuration.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if self.cache_ttl_seconds <= 0:
            raise ConfigurationError(
                f"OMNILENS_CACHE_TTL_SECONDS must be positive, got {self.cache_ttl_seconds}"
            )

        if self.cache_max_entries <= 0:
            raise ConfigurationError(
                f"OMNILENS_CACHE_MAX_ENTRIES must be positive, got {self.cache_max_entries}"
            )

        if self.recent_window_days <= 0:
            raise ConfigurationError(
                f"OMNILENS_RECENT_WINDOW_DAYS must be positive, got {self.recent_window_days}"
            )

        if self.default_window_days <= 0:
            raise ConfigurationError(
                f"OMNILENS_DEFAULT_WINDOW_DAYS must be positive, got {self.default_window_days}"
            )

        if self.recent_window_days > self.default_window_days:
            raise ConfigurationError(
                "OMNILENS_RECENT_WINDOW_DAYS cannot be longer than OMNILENS_DEFAULT_WINDOW_DAYS "
                f"({self.recent_window_days} > {self.default_window_days})"
            )

        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigurationError(f"OMNILENS_TIMEZONE is not a known timezone: {self.timezone}") from e

    @property
    def tzinfo(self) -> ZoneInfo:
        """Timezone object for day bucketing."""
        return ZoneInfo(self.timezone)


@dataclass
class StorageConfig:
    """
    Validated tracked-repository storage configuration.
    """

    database_path: Path

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate()

    def _validate(self):
        """
        Validate storage configuration.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if not str(self.database_path).strip():
            raise ConfigurationError("OMNILENS_DB_PATH is required")

        if self.database_path.suffix not in (".db", ".sqlite", ".sqlite3"):
            raise ConfigurationError(
                f"OMNILENS_DB_PATH must point to a SQLite file (.db/.sqlite): {self.database_path}"
            )


def _int_env(name: str, default: int) -> int:
    """Read an integer environment variable, failing fast on garbage."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


class SecureConfig:
    """
    Centralized secure configuration manager.

    Loads and validates all application configuration from environment variables.
    Provides fail-fast behavior to catch configuration issues early.
    """

    def __init__(self):
        """Initialize configuration (loads .env file)."""
        load_dotenv()

    def get_github_config(self) -> GitHubConfig:
        """
        Get validated CI provider configuration.

        Returns:
            GitHubConfig: Validated configuration

        Raises:
            ConfigurationError: If configuration is missing or invalid
        """
        token = os.getenv("GITHUB_TOKEN")
        api_url = os.getenv("GITHUB_API_URL", "https://api.github.com")

        return GitHubConfig(token=token or "", api_url=api_url)

    def get_health_config(self) -> HealthConfig:
        """
        Get validated health classification configuration.

        Returns:
            HealthConfig: Validated configuration

        Raises:
            ConfigurationError: If configuration is invalid
        """
        return HealthConfig(
            cache_ttl_seconds=_int_env("OMNILENS_CACHE_TTL_SECONDS", 300),
            cache_max_entries=_int_env("OMNILENS_CACHE_MAX_ENTRIES", 1024),
            recent_window_days=_int_env("OMNILENS_RECENT_WINDOW_DAYS", 7),
            default_window_days=_int_env("OMNILENS_DEFAULT_WINDOW_DAYS", 30),
            timezone=os.getenv("OMNILENS_TIMEZONE", "UTC"),
        )

    def get_storage_config(self) -> StorageConfig:
        """
        Get validated storage configuration.

        Returns:
            StorageConfig: Validated configuration

        Raises:
            ConfigurationError: If configuration is invalid
        """
        database_path = os.getenv("OMNILENS_DB_PATH", ".tmp/omnilens/omnilens.db")
        return StorageConfig(database_path=Path(database_path))

    def get_snapshot_dir(self) -> Path:
        """Directory holding provider snapshot files for the snapshot sources."""
        return Path(os.getenv("OMNILENS_SNAPSHOT_DIR", ".tmp/omnilens/snapshots"))


# Convenience function for getting configuration
_config_instance = None


def get_config() -> SecureConfig:
    """
    Get the global configuration instance (singleton pattern).

    Returns:
        SecureConfig: The configuration manager
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = SecureConfig()
    return _config_instance


def validate_config_on_startup(required_services: list[str]) -> None:
    """
    Validate required configuration at application startup.

    Args:
        required_services: List of services to validate (e.g., ['github', 'health'])

    Raises:
        ConfigurationError: If any required configuration is missing or invalid
        ValueError: If a service name is unknown

    Example:
        validate_config_on_startup(["health", "storage"])
    """
    config = get_config()

    for service in required_services:
        if service == "github":
            config.get_github_config()
        elif service == "health":
            config.get_health_config()
        elif service == "storage":
            config.get_storage_config()
        else:
            raise ValueError(f"Unknown service: {service}")
