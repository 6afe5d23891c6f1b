"""Application configuration loader.

Loads centralized configuration from data/config/app_config_v1.yaml,
falling back to built-in defaults when the file is absent.

Usage:
    from learnboard.config.app_config import load_app_config

    config = load_app_config()
    config.leaderboard.default_limit
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

# Config file path (relative to project root)
CONFIG_FILE = Path("data/config/app_config_v1.yaml")

# Overrides database.path when set
DB_PATH_ENV = "LEARNBOARD_DB_PATH"


@dataclass
class DatabaseConfig:
    """SQLite storage settings."""

    path: str = "db/learnboard.db"
    timeout_seconds: float = 5.0


@dataclass
class EnrollmentConfig:
    """Enrollment state machine policy.

    allow_regression=True keeps any-to-any transitions; False enforces
    not_enrolled -> enrolled -> completed.
    """

    allow_regression: bool = True


@dataclass
class LeaderboardConfig:
    """Leaderboard paging defaults."""

    default_limit: int = 10
    max_limit: int = 100


@dataclass
class AppConfig:
    """Application-wide configuration."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    enrollment: EnrollmentConfig = field(default_factory=EnrollmentConfig)
    leaderboard: LeaderboardConfig = field(default_factory=LeaderboardConfig)


# Module-level cache
_cached_config: AppConfig | None = None


def _get_defaults() -> dict[str, Any]:
    """Get default configuration values."""
    return {
        "database": {
            "path": "db/learnboard.db",
            "timeout_seconds": 5.0,
        },
        "enrollment": {
            "allow_regression": True,
        },
        "leaderboard": {
            "default_limit": 10,
            "max_limit": 100,
        },
    }


def _parse_config(data: dict[str, Any]) -> AppConfig:
    """Parse configuration dictionary into AppConfig object."""
    db_data = data.get("database") or {}
    database = DatabaseConfig(
        path=os.environ.get(DB_PATH_ENV) or db_data.get("path", "db/learnboard.db"),
        timeout_seconds=float(db_data.get("timeout_seconds", 5.0)),
    )

    enrollment_data = data.get("enrollment") or {}
    enrollment = EnrollmentConfig(
        allow_regression=bool(enrollment_data.get("allow_regression", True)),
    )

    leaderboard_data = data.get("leaderboard") or {}
    leaderboard = LeaderboardConfig(
        default_limit=int(leaderboard_data.get("default_limit", 10)),
        max_limit=int(leaderboard_data.get("max_limit", 100)),
    )

    return AppConfig(database=database, enrollment=enrollment, leaderboard=leaderboard)


def load_app_config(force_reload: bool = False) -> AppConfig:
    """Load application config.

    Args:
        force_reload: If True, ignore cached config and reload from file.

    Returns:
        AppConfig object with all settings.
    """
    global _cached_config

    if _cached_config is not None and not force_reload:
        return _cached_config

    data: dict[str, Any]

    if CONFIG_FILE.exists():
        logger.debug("loading_app_config", source=str(CONFIG_FILE))
        data = yaml.safe_load(CONFIG_FILE.read_text(encoding="utf-8")) or {}
    else:
        logger.info("using_default_config")
        data = _get_defaults()

    _cached_config = _parse_config(data)
    return _cached_config


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when config is modified at runtime.
    """
    global _cached_config
    _cached_config = None
