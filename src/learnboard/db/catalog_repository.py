"""Repository functions for catalog tables.

Schools, classes, students, courses, course levels, topics and quizzes.
The engine only reads these; the insert helpers serve seeding and tests.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from learnboard.db.database import get_db

logger = structlog.get_logger(__name__)


@dataclass
class StudentRecord:
    """Student record from database."""

    id: str
    first_name: str
    last_name: str
    username: str
    class_id: str | None
    status: str

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class ClassRecord:
    """Class record from database."""

    id: str
    name: str
    school_id: str | None


# =============================================================================
# INSERTS
# =============================================================================


def insert_school(school_id: str, name: str) -> None:
    """Insert a school."""
    with get_db() as conn:
        conn.execute("INSERT INTO schools (id, name) VALUES (?, ?)", (school_id, name))

    logger.debug("schools.inserted", school_id=school_id)


def insert_class(class_id: str, name: str, school_id: str | None = None) -> None:
    """Insert a class, optionally under a school."""
    with get_db() as conn:
        conn.execute(
            "INSERT INTO classes (id, name, school_id) VALUES (?, ?, ?)",
            (class_id, name, school_id),
        )

    logger.debug("classes.inserted", class_id=class_id)


def insert_student(
    student_id: str,
    username: str,
    first_name: str = "",
    last_name: str = "",
    class_id: str | None = None,
    status: str = "active",
) -> None:
    """Insert a student.

    Raises:
        sqlite3.IntegrityError: If id or username already exists
    """
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO students (id, first_name, last_name, username, class_id, status)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (student_id, first_name, last_name, username, class_id, status),
        )

    logger.debug("students.inserted", student_id=student_id)


def insert_course(
    course_id: str,
    name: str,
    code: str,
    description: str | None = None,
    icon_image_url: str | None = None,
    status: str = "active",
) -> None:
    """Insert a course."""
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO courses (id, name, code, icon_image_url, description, status)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (course_id, name, code, icon_image_url, description, status),
        )

    logger.debug("courses.inserted", course_id=course_id)


def set_course_status(course_id: str, status: str) -> bool:
    """Activate or deactivate a course.

    Returns:
        True if the course exists
    """
    with get_db() as conn:
        cursor = conn.execute("UPDATE courses SET status = ? WHERE id = ?", (status, course_id))

    return cursor.rowcount > 0


def insert_course_level(level_id: str, course_id: str, name: str) -> None:
    """Insert a course level."""
    with get_db() as conn:
        conn.execute(
            "INSERT INTO course_levels (id, course_id, name) VALUES (?, ?, ?)",
            (level_id, course_id, name),
        )


def insert_topic(topic_id: str, level_id: str, name: str) -> None:
    """Insert a topic."""
    with get_db() as conn:
        conn.execute(
            "INSERT INTO topics (id, level_id, name) VALUES (?, ?, ?)",
            (topic_id, level_id, name),
        )


def insert_quiz(
    quiz_id: str,
    topic_id: str,
    title: str,
    total_points: int = 100,
    passing_score: float = 50,
) -> None:
    """Insert a quiz."""
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO quizzes (id, topic_id, title, total_points, passing_score)
            VALUES (?, ?, ?, ?, ?)
            """,
            (quiz_id, topic_id, title, total_points, passing_score),
        )


# =============================================================================
# QUERIES
# =============================================================================


def count_active_courses() -> int:
    """Count active courses without fetching rows."""
    with get_db() as conn:
        row = conn.execute("SELECT COUNT(*) FROM courses WHERE status = 'active'").fetchone()

    return int(row[0])


def get_student_by_id(student_id: str) -> StudentRecord | None:
    """Get student by ID.

    Returns:
        StudentRecord if found, None otherwise
    """
    with get_db() as conn:
        row = conn.execute("SELECT * FROM students WHERE id = ?", (student_id,)).fetchone()

    if row is None:
        return None

    return StudentRecord(
        id=row["id"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        username=row["username"],
        class_id=row["class_id"],
        status=row["status"],
    )


def get_class_by_id(class_id: str) -> ClassRecord | None:
    """Get class by ID.

    Returns:
        ClassRecord if found, None otherwise
    """
    with get_db() as conn:
        row = conn.execute("SELECT * FROM classes WHERE id = ?", (class_id,)).fetchone()

    if row is None:
        return None

    return ClassRecord(id=row["id"], name=row["name"], school_id=row["school_id"])
