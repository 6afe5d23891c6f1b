"""Enrollment endpoints.

Handlers are plain functions: FastAPI runs them in its threadpool so the
blocking SQLite calls stay off the event loop.
"""

from fastapi import APIRouter

from learnboard.core import enrollment_manager
from learnboard.core.errors import LearnboardError
from learnboard.web.errors import to_http_exception
from learnboard.web.schemas import (
    CourseEnrollmentListResponse,
    CourseEnrollmentResponse,
    EnrollmentResponse,
    EnrollmentStatsResponse,
    EnrollmentUpdate,
    StudentEnrollmentListResponse,
    StudentEnrollmentResponse,
)

router = APIRouter(prefix="/api/enrollments", tags=["enrollments"])


@router.get("/student/{student_id}", response_model=StudentEnrollmentListResponse)
def list_student_enrollments(student_id: str) -> StudentEnrollmentListResponse:
    """List a student's enrollments with their courses."""
    try:
        enrollments = enrollment_manager.get_student_enrollments(student_id)
    except LearnboardError as e:
        raise to_http_exception(e) from e

    items = [StudentEnrollmentResponse(**e.to_dict()) for e in enrollments]
    return StudentEnrollmentListResponse(enrollments=items, count=len(items))


@router.get("/student/{student_id}/courses", response_model=CourseEnrollmentListResponse)
def list_courses_with_status(student_id: str) -> CourseEnrollmentListResponse:
    """List every active course with the student's enrollment state."""
    try:
        views = enrollment_manager.get_all_courses_with_enrollment_status(student_id)
    except LearnboardError as e:
        raise to_http_exception(e) from e

    courses = [CourseEnrollmentResponse(**v.to_dict()) for v in views]
    return CourseEnrollmentListResponse(courses=courses, count=len(courses))


@router.get("/student/{student_id}/stats", response_model=EnrollmentStatsResponse)
def get_enrollment_stats(student_id: str) -> EnrollmentStatsResponse:
    """Count a student's enrollments by status."""
    try:
        stats = enrollment_manager.get_enrollment_stats(student_id)
    except LearnboardError as e:
        raise to_http_exception(e) from e

    return EnrollmentStatsResponse(**stats.to_dict())


@router.put(
    "/student/{student_id}/course/{course_id}",
    response_model=EnrollmentResponse,
)
def update_enrollment(
    student_id: str,
    course_id: str,
    update: EnrollmentUpdate,
) -> EnrollmentResponse:
    """Create or update the enrollment of a student in a course."""
    try:
        enrollment = enrollment_manager.update_enrollment_status(
            student_id=student_id,
            course_id=course_id,
            status=update.status,
            progress_percentage=update.progress_percentage,
        )
    except LearnboardError as e:
        raise to_http_exception(e) from e

    return EnrollmentResponse(**enrollment.to_dict())
