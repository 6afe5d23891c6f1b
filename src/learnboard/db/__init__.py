"""Database module for SQLite persistence.

Provides:
- Database connection management
- Schema initialization
- Repository functions for catalog, enrollment and quiz-attempt tables
"""

from learnboard.db.database import get_db, init_db

__all__ = ["get_db", "init_db"]
