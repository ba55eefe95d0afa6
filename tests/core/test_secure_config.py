#!/usr/bin/env python3
"""
Tests for validated configuration

Environment variables are patched per test; no .env file is read.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from omnilens.secure_config import (
    ConfigurationError,
    GitHubConfig,
    HealthConfig,
    SecureConfig,
    StorageConfig,
    validate_config_on_startup,
)


@pytest.fixture
def config():
    with patch("omnilens.secure_config.load_dotenv"):
        yield SecureConfig()


class TestGitHubConfig:
    """Tests for GitHubConfig validation"""

    def test_valid_token(self):
        assert GitHubConfig(token="ghp_realtoken123").api_url == "https://api.github.com"

    def test_missing_token(self):
        with pytest.raises(ConfigurationError, match="required"):
            GitHubConfig(token="")

    @pytest.mark.parametrize("token", ["your_token_here", "PLACEHOLDER", "xxx-123"])
    def test_placeholder_token(self, token):
        with pytest.raises(ConfigurationError, match="placeholder"):
            GitHubConfig(token=token)

    def test_http_url_rejected(self):
        with pytest.raises(ConfigurationError, match="HTTPS"):
            GitHubConfig(token="ghp_realtoken123", api_url="http://github.example.com/api/v3")


class TestHealthConfig:
    """Tests for HealthConfig validation"""

    def test_defaults(self):
        health = HealthConfig()

        assert health.cache_ttl_seconds == 300
        assert health.cache_max_entries == 1024
        assert health.recent_window_days == 7
        assert health.default_window_days == 30
        assert health.tzinfo.key == "UTC"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"cache_ttl_seconds": 0},
            {"cache_max_entries": 0},
            {"recent_window_days": -1},
            {"default_window_days": 0},
            {"recent_window_days": 14, "default_window_days": 7},
            {"timezone": "Mars/Olympus_Mons"},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ConfigurationError):
            HealthConfig(**kwargs)


class TestStorageConfig:
    """Tests for StorageConfig validation"""

    def test_sqlite_suffix_required(self):
        with pytest.raises(ConfigurationError, match="SQLite"):
            StorageConfig(database_path=Path("data/omnilens.json"))

    def test_valid_path(self):
        assert StorageConfig(database_path=Path("data/omnilens.sqlite")).database_path.name == "omnilens.sqlite"


class TestSecureConfig:
    """Tests for environment loading"""

    def test_health_config_from_environment(self, config):
        env = {
            "OMNILENS_CACHE_TTL_SECONDS": "60",
            "OMNILENS_CACHE_MAX_ENTRIES": "64",
            "OMNILENS_RECENT_WINDOW_DAYS": "3",
            "OMNILENS_DEFAULT_WINDOW_DAYS": "14",
            "OMNILENS_TIMEZONE": "Europe/London",
        }
        with patch.dict(os.environ, env):
            health = config.get_health_config()

        assert health.cache_ttl_seconds == 60
        assert health.cache_max_entries == 64
        assert health.recent_window_days == 3
        assert health.default_window_days == 14
        assert health.timezone == "Europe/London"

    def test_non_integer_setting_fails_fast(self, config):
        with patch.dict(os.environ, {"OMNILENS_CACHE_TTL_SECONDS": "five minutes"}):
            with pytest.raises(ConfigurationError, match="integer"):
                config.get_health_config()

    def test_blank_setting_uses_default(self, config):
        with patch.dict(os.environ, {"OMNILENS_RECENT_WINDOW_DAYS": "  "}):
            assert config.get_health_config().recent_window_days == 7

    def test_storage_and_snapshot_paths(self, config):
        env = {"OMNILENS_DB_PATH": "/var/lib/omnilens/repos.db", "OMNILENS_SNAPSHOT_DIR": "/srv/snapshots"}
        with patch.dict(os.environ, env):
            assert config.get_storage_config().database_path == Path("/var/lib/omnilens/repos.db")
            assert config.get_snapshot_dir() == Path("/srv/snapshots")

    def test_github_config_from_environment(self, config):
        with patch.dict(os.environ, {"GITHUB_TOKEN": "ghp_realtoken123"}):
            assert config.get_github_config().token == "ghp_realtoken123"


class TestValidateConfigOnStartup:
    """Tests for validate_config_on_startup()"""

    def test_unknown_service(self, config):
        with patch("omnilens.secure_config.get_config", return_value=config):
            with pytest.raises(ValueError, match="Unknown service"):
                validate_config_on_startup(["ado"])

    def test_missing_token_fails_fast(self, config):
        with patch("omnilens.secure_config.get_config", return_value=config):
            with patch.dict(os.environ, {"GITHUB_TOKEN": ""}):
                with pytest.raises(ConfigurationError):
                    validate_config_on_startup(["health", "github"])

    def test_valid_services_pass(self, config):
        with patch("omnilens.secure_config.get_config", return_value=config):
            validate_config_on_startup(["health", "storage"])
