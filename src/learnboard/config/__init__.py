"""Configuration package for learnboard."""

from learnboard.config.app_config import (
    AppConfig,
    DatabaseConfig,
    EnrollmentConfig,
    LeaderboardConfig,
    clear_config_cache,
    load_app_config,
)

__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "EnrollmentConfig",
    "LeaderboardConfig",
    "clear_config_cache",
    "load_app_config",
]
