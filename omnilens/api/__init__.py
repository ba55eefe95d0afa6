"""
REST API for workflow health

Provides the trigger map and health classifications via HTTP endpoints.
"""

from .app import create_app

__all__ = ["create_app"]
