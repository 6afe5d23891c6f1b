"""SQLite database connection and schema management.

Provides connection management and schema initialization for learnboard.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

import structlog

from learnboard.config.app_config import load_app_config

logger = structlog.get_logger(__name__)

# Current database location (module-level, set by init_db)
_db_path: Path | None = None


def _configured_path() -> Path:
    return Path(load_app_config().database.path)


def get_db_path() -> Path:
    """Path of the database get_db() connects to."""
    return _db_path or _configured_path()


def init_db(db_path: Path | None = None) -> None:
    """Initialize database with schema.

    Creates the database file and all required tables if they don't exist.
    Without db_path, keeps the path of a previous init_db() call, else uses
    the configured database.path.

    Args:
        db_path: Path to database file
    """
    global _db_path
    _db_path = db_path or _db_path or _configured_path()

    # Ensure directory exists
    _db_path.parent.mkdir(parents=True, exist_ok=True)

    with get_db() as conn:
        _create_schema(conn)

    logger.info("database.initialized", path=str(_db_path))


@contextmanager
def get_db() -> Generator[sqlite3.Connection, None, None]:
    """Get database connection as context manager.

    Commits on clean exit, rolls back on error.

    Yields:
        SQLite connection with row factory set to sqlite3.Row

    Example:
        with get_db() as conn:
            rows = conn.execute("SELECT * FROM courses").fetchall()
    """
    db_path = get_db_path()

    # Ensure directory exists
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path, timeout=load_app_config().database.timeout_seconds)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")

    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def _create_schema(conn: sqlite3.Connection) -> None:
    """Create database schema.

    Uses IF NOT EXISTS for idempotency.
    """
    conn.executescript(
        """
        -- Catalog: schools > classes > students
        CREATE TABLE IF NOT EXISTS schools (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS classes (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            school_id TEXT REFERENCES schools(id)
        );

        CREATE TABLE IF NOT EXISTS students (
            id TEXT PRIMARY KEY,
            first_name TEXT NOT NULL DEFAULT '',
            last_name TEXT NOT NULL DEFAULT '',
            username TEXT NOT NULL UNIQUE,
            class_id TEXT REFERENCES classes(id),
            status TEXT NOT NULL DEFAULT 'active' CHECK(status IN ('active', 'inactive')),
            created_at TEXT NOT NULL DEFAULT (datetime('now'))
        );

        -- Catalog: courses > course_levels > topics > quizzes
        CREATE TABLE IF NOT EXISTS courses (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            code TEXT NOT NULL,
            icon_image_url TEXT,
            description TEXT,
            status TEXT NOT NULL DEFAULT 'active' CHECK(status IN ('active', 'inactive'))
        );

        CREATE TABLE IF NOT EXISTS course_levels (
            id TEXT PRIMARY KEY,
            course_id TEXT NOT NULL REFERENCES courses(id),
            name TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS topics (
            id TEXT PRIMARY KEY,
            level_id TEXT NOT NULL REFERENCES course_levels(id),
            name TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS quizzes (
            id TEXT PRIMARY KEY,
            topic_id TEXT NOT NULL REFERENCES topics(id),
            title TEXT NOT NULL,
            total_points INTEGER NOT NULL DEFAULT 0,
            passing_score REAL NOT NULL DEFAULT 50
        );

        -- One row per (student_id, course_id); written only through the upsert
        CREATE TABLE IF NOT EXISTS student_course_enrollments (
            id TEXT PRIMARY KEY,
            student_id TEXT NOT NULL REFERENCES students(id),
            course_id TEXT NOT NULL REFERENCES courses(id),
            enrollment_status TEXT NOT NULL
                CHECK(enrollment_status IN ('not_enrolled', 'enrolled', 'completed')),
            progress_percentage INTEGER NOT NULL DEFAULT 0
                CHECK(progress_percentage BETWEEN 0 AND 100),
            enrolled_at TEXT,
            completed_at TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            UNIQUE(student_id, course_id)
        );

        -- Written by the quiz-submission flow; ids are denormalized for filtering
        CREATE TABLE IF NOT EXISTS student_quiz_attempts (
            id TEXT PRIMARY KEY,
            student_id TEXT NOT NULL,
            quiz_id TEXT NOT NULL,
            topic_id TEXT,
            course_id TEXT,
            course_level_id TEXT,
            school_id TEXT,
            class_id TEXT,
            score REAL,
            max_score REAL,
            percentage REAL,
            completed INTEGER NOT NULL DEFAULT 0,
            passed INTEGER NOT NULL DEFAULT 0,
            completed_at TEXT,
            created_at TEXT NOT NULL DEFAULT (datetime('now'))
        );

        CREATE INDEX IF NOT EXISTS idx_courses_status ON courses(status);
        CREATE INDEX IF NOT EXISTS idx_students_class ON students(class_id);
        CREATE INDEX IF NOT EXISTS idx_enrollments_student ON student_course_enrollments(student_id);
        CREATE INDEX IF NOT EXISTS idx_attempts_student ON student_quiz_attempts(student_id);
        CREATE INDEX IF NOT EXISTS idx_attempts_quiz ON student_quiz_attempts(quiz_id);
        CREATE INDEX IF NOT EXISTS idx_attempts_class ON student_quiz_attempts(class_id);
        CREATE INDEX IF NOT EXISTS idx_attempts_completed_at ON student_quiz_attempts(completed_at);
        """
    )
