"""Repository functions for the student_course_enrollments table.

All writes go through upsert_enrollment(), a single
INSERT ... ON CONFLICT(student_id, course_id) DO UPDATE statement.
"""

from __future__ import annotations

import sqlite3
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog

from learnboard.core.models import (
    CourseEnrollmentView,
    CourseSummary,
    Enrollment,
    EnrollmentStatus,
    StudentEnrollment,
)
from learnboard.db.database import get_db

logger = structlog.get_logger(__name__)


@dataclass
class UpsertOutcome:
    """Row state after an upsert and whether the write was applied."""

    enrollment: Enrollment
    applied: bool


def _status_order_sql(column: str) -> str:
    """SQL expression mapping a status column to its forward-path position."""
    cases = " ".join(f"WHEN '{s.value}' THEN {s.order}" for s in EnrollmentStatus)
    return f"(CASE {column} {cases} END)"


_UPSERT_SQL = f"""
    INSERT INTO student_course_enrollments (
        id, student_id, course_id, enrollment_status, progress_percentage,
        enrolled_at, completed_at, created_at, updated_at
    ) VALUES (
        :id, :student_id, :course_id, :status, COALESCE(:progress, 0),
        CASE WHEN :status IN ('enrolled', 'completed') THEN :now END,
        CASE WHEN :status = 'completed' THEN :now END,
        :now, :now
    )
    ON CONFLICT(student_id, course_id) DO UPDATE SET
        enrollment_status = excluded.enrollment_status,
        progress_percentage = COALESCE(:progress, progress_percentage),
        enrolled_at = CASE
            WHEN excluded.enrollment_status IN ('enrolled', 'completed')
            THEN COALESCE(enrolled_at, :now)
            ELSE enrolled_at
        END,
        completed_at = CASE
            WHEN excluded.enrollment_status = 'completed' THEN COALESCE(completed_at, :now)
            ELSE NULL
        END,
        updated_at = :now
    WHERE :allow_regression
        OR {_status_order_sql("excluded.enrollment_status")}
            >= {_status_order_sql("enrollment_status")}
"""


def upsert_enrollment(
    student_id: str,
    course_id: str,
    status: EnrollmentStatus,
    progress_percentage: int | None = None,
    allow_regression: bool = True,
) -> UpsertOutcome:
    """Create or update the enrollment for (student_id, course_id).

    progress_percentage=None leaves an existing value untouched (0 on
    insert). With allow_regression=False the update is skipped when it
    would move the status backwards; applied is then False and the returned
    enrollment is the unchanged row.

    Raises:
        sqlite3.IntegrityError: If student or course does not exist
        sqlite3.OperationalError: If the database stays locked
    """
    now = datetime.now(timezone.utc).isoformat()

    with get_db() as conn:
        cursor = conn.execute(
            _UPSERT_SQL,
            {
                "id": uuid.uuid4().hex,
                "student_id": student_id,
                "course_id": course_id,
                "status": status.value,
                "progress": progress_percentage,
                "now": now,
                "allow_regression": 1 if allow_regression else 0,
            },
        )
        applied = cursor.rowcount > 0

        row = conn.execute(
            """
            SELECT * FROM student_course_enrollments
            WHERE student_id = ? AND course_id = ?
            """,
            (student_id, course_id),
        ).fetchone()

    logger.debug(
        "enrollments.upserted",
        student_id=student_id,
        course_id=course_id,
        status=status.value,
        applied=applied,
    )

    return UpsertOutcome(enrollment=_row_to_enrollment(row), applied=applied)


def get_enrollment(student_id: str, course_id: str) -> Enrollment | None:
    """Get the enrollment for a student and course.

    Returns:
        Enrollment if found, None otherwise
    """
    with get_db() as conn:
        row = conn.execute(
            """
            SELECT * FROM student_course_enrollments
            WHERE student_id = ? AND course_id = ?
            """,
            (student_id, course_id),
        ).fetchone()

    if row is None:
        return None

    return _row_to_enrollment(row)


def count_enrollments(student_id: str, course_id: str) -> int:
    """Count rows for a (student, course) pair."""
    with get_db() as conn:
        row = conn.execute(
            """
            SELECT COUNT(*) FROM student_course_enrollments
            WHERE student_id = ? AND course_id = ?
            """,
            (student_id, course_id),
        ).fetchone()

    return int(row[0])


def get_student_enrollments(student_id: str) -> list[StudentEnrollment]:
    """Get all enrollments of a student with their course summary."""
    with get_db() as conn:
        rows = conn.execute(
            """
            SELECT e.*,
                   c.name AS course_name,
                   c.code AS course_code,
                   c.icon_image_url AS course_icon_image_url,
                   c.description AS course_description
            FROM student_course_enrollments e
            LEFT JOIN courses c ON c.id = e.course_id
            WHERE e.student_id = ?
            ORDER BY e.created_at, e.course_id
            """,
            (student_id,),
        ).fetchall()

    result = []
    for row in rows:
        base = _row_to_enrollment(row)
        course = None
        if row["course_name"] is not None:
            course = CourseSummary(
                id=row["course_id"],
                name=row["course_name"],
                code=row["course_code"],
                icon_image_url=row["course_icon_image_url"],
                description=row["course_description"],
            )
        result.append(StudentEnrollment(**base.__dict__, course=course))

    return result


def get_active_courses_with_enrollment(student_id: str) -> list[CourseEnrollmentView]:
    """Outer join of active courses with one student's enrollments.

    Returns one view per active course; courses without an enrollment row
    carry not_enrolled and 0 progress.
    """
    with get_db() as conn:
        rows = conn.execute(
            """
            SELECT c.id, c.name, c.code, c.icon_image_url, c.description,
                   e.enrollment_status, e.progress_percentage
            FROM courses c
            LEFT JOIN student_course_enrollments e
                ON e.course_id = c.id AND e.student_id = ?
            WHERE c.status = 'active'
            ORDER BY c.name, c.id
            """,
            (student_id,),
        ).fetchall()

    return [
        CourseEnrollmentView(
            course=CourseSummary(
                id=row["id"],
                name=row["name"],
                code=row["code"],
                icon_image_url=row["icon_image_url"],
                description=row["description"],
            ),
            enrollment_status=EnrollmentStatus(
                row["enrollment_status"] or EnrollmentStatus.NOT_ENROLLED.value
            ),
            progress_percentage=row["progress_percentage"] or 0,
        )
        for row in rows
    ]


def count_by_status(student_id: str) -> dict[str, int]:
    """Count a student's enrollment rows per status.

    Rows for inactive courses are included.
    """
    with get_db() as conn:
        rows = conn.execute(
            """
            SELECT enrollment_status, COUNT(*) AS n
            FROM student_course_enrollments
            WHERE student_id = ?
            GROUP BY enrollment_status
            """,
            (student_id,),
        ).fetchall()

    return {row["enrollment_status"]: int(row["n"]) for row in rows}


def _row_to_enrollment(row: sqlite3.Row) -> Enrollment:
    """Convert database row to Enrollment."""
    return Enrollment(
        id=row["id"],
        student_id=row["student_id"],
        course_id=row["course_id"],
        status=EnrollmentStatus(row["enrollment_status"]),
        progress_percentage=int(row["progress_percentage"]),
        updated_at=row["updated_at"],
        enrolled_at=row["enrolled_at"],
        completed_at=row["completed_at"],
    )
