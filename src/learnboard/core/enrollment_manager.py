"""Enrollment state manager.

Responsibilities:
- Read a student's enrollments, alone or joined against every active course
- Apply status/progress changes through one atomic upsert per call
- Roll up per-student enrollment counts

Status transitions are governed by can_transition(). The default policy
(enrollment.allow_regression in config) permits any status to any status;
the strict policy only allows not_enrolled -> enrolled -> completed, with
self-transitions. The strict guard runs inside the upsert statement.
"""

from __future__ import annotations

import sqlite3

import structlog

from learnboard.config.app_config import load_app_config
from learnboard.core.errors import ConflictError, NotFoundError, ValidationError
from learnboard.core.models import (
    CourseEnrollmentView,
    Enrollment,
    EnrollmentStats,
    EnrollmentStatus,
    StudentEnrollment,
)
from learnboard.db import catalog_repository, enrollments_repository

logger = structlog.get_logger(__name__)


# =============================================================================
# VALIDATION
# =============================================================================


def can_transition(
    current: EnrollmentStatus | None,
    target: EnrollmentStatus,
    allow_regression: bool = True,
) -> bool:
    """Check whether a status change is permitted.

    Args:
        current: Existing status, or None when no row exists yet
        target: Requested status
        allow_regression: Permit moving backwards (e.g. completed -> enrolled)
    """
    if current is None or allow_regression:
        return True
    return target.order >= current.order


def validate_progress(progress_percentage: int | None) -> int | None:
    """Validate an optional progress value.

    Raises:
        ValidationError: If not an integer in [0, 100]
    """
    if progress_percentage is None:
        return None

    if isinstance(progress_percentage, bool) or not isinstance(progress_percentage, int):
        raise ValidationError(
            f"progress_percentage must be an integer, got {progress_percentage!r}",
            field="progress_percentage",
        )

    if not 0 <= progress_percentage <= 100:
        raise ValidationError(
            f"progress_percentage out of range [0, 100]: {progress_percentage}",
            field="progress_percentage",
        )

    return progress_percentage


def _require_id(value: str, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required", field=field_name)
    return value


# =============================================================================
# READS
# =============================================================================


def get_student_enrollments(student_id: str) -> list[StudentEnrollment]:
    """Get a student's enrollments with embedded course summaries.

    An empty list is a valid result.

    Raises:
        NotFoundError: If the enrollment query fails
    """
    _require_id(student_id, "student_id")
    try:
        return enrollments_repository.get_student_enrollments(student_id)
    except sqlite3.Error as e:
        logger.error("enrollment.fetch_failed", student_id=student_id, error=str(e))
        raise NotFoundError("Failed to fetch enrollments") from e


def get_all_courses_with_enrollment_status(student_id: str) -> list[CourseEnrollmentView]:
    """Get every active course annotated with the student's enrollment.

    The result always has one entry per active course.

    Raises:
        NotFoundError: If the course or enrollment query fails
    """
    _require_id(student_id, "student_id")
    try:
        return enrollments_repository.get_active_courses_with_enrollment(student_id)
    except sqlite3.Error as e:
        logger.error("enrollment.courses_fetch_failed", student_id=student_id, error=str(e))
        raise NotFoundError("Failed to fetch courses") from e


def get_enrollment_stats(student_id: str) -> EnrollmentStats:
    """Count a student's enrollments.

    not_enrolled is the number of active courses without a row, floored at
    0 since rows may reference courses that are no longer active.

    Raises:
        NotFoundError: If either query fails
    """
    _require_id(student_id, "student_id")
    try:
        by_status = enrollments_repository.count_by_status(student_id)
        active_courses = catalog_repository.count_active_courses()
    except sqlite3.Error as e:
        logger.error("enrollment.stats_failed", student_id=student_id, error=str(e))
        raise NotFoundError("Failed to fetch enrollment stats") from e

    total = sum(by_status.values())
    return EnrollmentStats(
        total=total,
        enrolled=by_status.get(EnrollmentStatus.ENROLLED.value, 0),
        completed=by_status.get(EnrollmentStatus.COMPLETED.value, 0),
        not_enrolled=max(0, active_courses - total),
    )


# =============================================================================
# WRITES
# =============================================================================


def update_enrollment_status(
    student_id: str,
    course_id: str,
    status: str | EnrollmentStatus,
    progress_percentage: int | None = None,
    allow_regression: bool | None = None,
) -> Enrollment:
    """Create or update the enrollment for (student_id, course_id).

    Progress is only changed when explicitly supplied (0 for a new row).
    Calling twice with identical arguments leaves the same status and
    progress stored.

    Args:
        student_id: Student identifier
        course_id: Course identifier
        status: Target status
        progress_percentage: Optional progress, integer in [0, 100]
        allow_regression: Override for enrollment.allow_regression

    Returns:
        The stored Enrollment

    Raises:
        ValidationError: Invalid status/progress, or a backwards move under
            the strict policy
        NotFoundError: Unknown student/course or a failed write
        ConflictError: Database stayed locked by concurrent writers
    """
    _require_id(student_id, "student_id")
    _require_id(course_id, "course_id")
    target = EnrollmentStatus.parse(status)
    progress = validate_progress(progress_percentage)

    if allow_regression is None:
        allow_regression = load_app_config().enrollment.allow_regression

    try:
        outcome = enrollments_repository.upsert_enrollment(
            student_id=student_id,
            course_id=course_id,
            status=target,
            progress_percentage=progress,
            allow_regression=allow_regression,
        )
    except sqlite3.IntegrityError as e:
        logger.warning(
            "enrollment.write_rejected",
            student_id=student_id,
            course_id=course_id,
            error=str(e),
        )
        raise NotFoundError(
            f"Student '{student_id}' or course '{course_id}' not found"
        ) from e
    except sqlite3.OperationalError as e:
        if "locked" in str(e) or "busy" in str(e):
            logger.warning("enrollment.write_conflict", student_id=student_id, course_id=course_id)
            raise ConflictError(
                f"Concurrent update for ({student_id}, {course_id}) could not be applied"
            ) from e
        logger.error("enrollment.write_failed", student_id=student_id, error=str(e))
        raise NotFoundError("Failed to update enrollment") from e
    except sqlite3.Error as e:
        logger.error("enrollment.write_failed", student_id=student_id, error=str(e))
        raise NotFoundError("Failed to update enrollment") from e

    if not outcome.applied:
        current = outcome.enrollment.status
        if not can_transition(current, target, allow_regression):
            raise ValidationError(
                f"Transition {current.value} -> {target.value} is not allowed",
                field="status",
            )
        # Guard refused the write but the row now permits it: a concurrent
        # writer moved the status between the statement and the re-read.
        raise ConflictError(
            f"Concurrent update for ({student_id}, {course_id}) could not be applied"
        )

    logger.info(
        "enrollment.upserted",
        student_id=student_id,
        course_id=course_id,
        status=outcome.enrollment.status.value,
        progress=outcome.enrollment.progress_percentage,
    )
    return outcome.enrollment


def enroll(student_id: str, course_id: str) -> Enrollment:
    """Enroll a student in a course, leaving progress untouched."""
    return update_enrollment_status(student_id, course_id, EnrollmentStatus.ENROLLED)
