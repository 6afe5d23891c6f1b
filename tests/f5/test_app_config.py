"""Tests for app configuration (F5).

Tests the configuration loading, defaults and overrides.
"""

import pytest

from learnboard.config.app_config import (
    CONFIG_FILE,
    DB_PATH_ENV,
    AppConfig,
    clear_config_cache,
    load_app_config,
)


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    """Run from an empty directory with a clean cache."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(DB_PATH_ENV, raising=False)
    clear_config_cache()
    yield tmp_path
    clear_config_cache()


def _write_config(root, text):
    path = root / CONFIG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)


class TestLoadAppConfig:
    """Tests for load_app_config function."""

    def test_defaults_without_file(self, isolated):
        """Missing config file falls back to defaults."""
        config = load_app_config()

        assert isinstance(config, AppConfig)
        assert config.database.path == "db/learnboard.db"
        assert config.database.timeout_seconds == 5.0
        assert config.enrollment.allow_regression is True
        assert config.leaderboard.default_limit == 10
        assert config.leaderboard.max_limit == 100

    def test_loads_yaml(self, isolated):
        _write_config(
            isolated,
            "database:\n  path: custom/app.db\n"
            "enrollment:\n  allow_regression: false\n"
            "leaderboard:\n  default_limit: 5\n",
        )

        config = load_app_config()

        assert config.database.path == "custom/app.db"
        assert config.enrollment.allow_regression is False
        assert config.leaderboard.default_limit == 5
        assert config.leaderboard.max_limit == 100

    def test_empty_file(self, isolated):
        _write_config(isolated, "")
        assert load_app_config().leaderboard.default_limit == 10

    def test_env_overrides_db_path(self, isolated, monkeypatch):
        monkeypatch.setenv(DB_PATH_ENV, "/tmp/override.db")
        assert load_app_config().database.path == "/tmp/override.db"

    def test_cached(self, isolated):
        first = load_app_config()
        _write_config(isolated, "leaderboard:\n  default_limit: 3\n")

        assert load_app_config() is first
        assert load_app_config(force_reload=True).leaderboard.default_limit == 3

    def test_clear_cache(self, isolated):
        load_app_config()
        _write_config(isolated, "leaderboard:\n  default_limit: 7\n")
        clear_config_cache()
        assert load_app_config().leaderboard.default_limit == 7
