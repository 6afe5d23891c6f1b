"""Pydantic schemas for Web API.

Serialization models for enrollments, quiz performance and leaderboards.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from learnboard.core.models import EnrollmentStatus
from learnboard.core.score_categorizer import ScoreCategory


# =============================================================================
# ENROLLMENT SCHEMAS
# =============================================================================


class CourseSummaryResponse(BaseModel):
    """Course fields embedded in enrollment responses."""

    id: str
    name: str
    code: str
    icon_image_url: str | None = None
    description: str | None = None


class EnrollmentUpdate(BaseModel):
    """Request body for updating an enrollment.

    Status and range checks happen in the engine so every caller gets the
    same errors.
    """

    status: str
    progress_percentage: int | None = None


class EnrollmentResponse(BaseModel):
    """Response for an enrollment."""

    id: str
    student_id: str
    course_id: str
    status: EnrollmentStatus
    progress_percentage: int
    enrolled_at: str | None = None
    completed_at: str | None = None
    updated_at: str


class StudentEnrollmentResponse(EnrollmentResponse):
    """Enrollment with its course."""

    course: CourseSummaryResponse | None = None


class StudentEnrollmentListResponse(BaseModel):
    """Response for a student's enrollments."""

    enrollments: list[StudentEnrollmentResponse]
    count: int


class CourseEnrollmentResponse(CourseSummaryResponse):
    """Active course annotated with the student's enrollment."""

    enrollment_status: EnrollmentStatus
    progress_percentage: int


class CourseEnrollmentListResponse(BaseModel):
    """Response for every active course with enrollment state."""

    courses: list[CourseEnrollmentResponse]
    count: int


class EnrollmentStatsResponse(BaseModel):
    """Per-student enrollment counts."""

    total: int
    enrolled: int
    completed: int
    not_enrolled: int = Field(..., ge=0)


# =============================================================================
# PERFORMANCE SCHEMAS
# =============================================================================


class ScoreCategoriesResponse(BaseModel):
    """Counts per score band."""

    below_expectation: int = 0
    approaching: int = 0
    meeting: int = 0
    exceeding: int = 0


class QuizPerformanceStatsResponse(BaseModel):
    """Aggregate over all matching attempts."""

    total_attempts: int
    completed_attempts: int
    passed_attempts: int
    failed_attempts: int
    average_score: float
    average_percentage: float
    total_students: int
    unique_quizzes: int
    score_categories: ScoreCategoriesResponse


class QuizPerformanceDataResponse(BaseModel):
    """Per-quiz rollup."""

    quiz_id: str
    quiz_title: str
    topic_name: str | None = None
    course_name: str | None = None
    level_name: str | None = None
    total_attempts: int
    completed_attempts: int
    passed_attempts: int
    failed_attempts: int
    average_score: float
    average_percentage: float
    pass_rate: float
    total_students: int
    best_score: float
    worst_score: float
    score_categories: ScoreCategoriesResponse


class StudentQuizPerformanceResponse(BaseModel):
    """Per-student rollup."""

    student_id: str
    student_name: str
    student_username: str
    class_id: str | None = None
    class_name: str | None = None
    school_name: str | None = None
    total_attempts: int
    completed_attempts: int
    passed_attempts: int
    highest_score: float
    highest_percentage: float
    average_score: float
    score_category: ScoreCategory
    total_points: float
    quizzes_completed: int
    quizzes_passed: int


class QuizPerformanceResponseSchema(BaseModel):
    """Response for a quiz performance query."""

    stats: QuizPerformanceStatsResponse
    quiz_data: list[QuizPerformanceDataResponse]
    student_data: list[StudentQuizPerformanceResponse]


# =============================================================================
# LEADERBOARD SCHEMAS
# =============================================================================


class LeaderboardStudentResponse(BaseModel):
    """Student shown on a leaderboard row."""

    id: str
    first_name: str
    last_name: str
    username: str


class LeaderboardEntryResponse(BaseModel):
    """Ranked leaderboard row."""

    rank: int = Field(..., ge=1)
    student: LeaderboardStudentResponse
    total_points: float
    quizzes_completed: int
    quizzes_passed: int
    average_score: float


class LeaderboardResponse(BaseModel):
    """Response for a leaderboard."""

    scope: str
    class_id: str | None = None
    entries: list[LeaderboardEntryResponse]
    count: int


# =============================================================================
# HEALTH SCHEMAS
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "0.1.0"
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
