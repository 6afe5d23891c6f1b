"""Record types exchanged between the engine, storage and API layers.

All records are plain dataclasses with a to_dict() producing JSON-ready
payloads. Derived views (performance, leaderboard) are never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Literal

from learnboard.core.errors import ValidationError
from learnboard.core.score_categorizer import ScoreCategory, empty_distribution

# =============================================================================
# ENROLLMENT
# =============================================================================


class EnrollmentStatus(str, Enum):
    """Student-course relationship state."""

    NOT_ENROLLED = "not_enrolled"
    ENROLLED = "enrolled"
    COMPLETED = "completed"

    @property
    def order(self) -> int:
        """Position in the forward path not_enrolled -> enrolled -> completed."""
        return list(EnrollmentStatus).index(self)

    @classmethod
    def parse(cls, value: str | EnrollmentStatus) -> EnrollmentStatus:
        """Parse a status value.

        Raises:
            ValidationError: If value is not one of the three statuses
        """
        if isinstance(value, EnrollmentStatus):
            return value
        try:
            return cls(value)
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise ValidationError(
                f"Invalid enrollment status '{value}'. Expected one of: {valid}",
                field="status",
            ) from None


@dataclass
class CourseSummary:
    """Course fields embedded in enrollment views."""

    id: str
    name: str
    code: str
    icon_image_url: str | None = None
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "icon_image_url": self.icon_image_url,
            "description": self.description,
        }


@dataclass
class Enrollment:
    """Stored enrollment row."""

    id: str
    student_id: str
    course_id: str
    status: EnrollmentStatus
    progress_percentage: int
    updated_at: str
    enrolled_at: str | None = None
    completed_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "student_id": self.student_id,
            "course_id": self.course_id,
            "status": self.status.value,
            "progress_percentage": self.progress_percentage,
            "enrolled_at": self.enrolled_at,
            "completed_at": self.completed_at,
            "updated_at": self.updated_at,
        }


@dataclass
class StudentEnrollment(Enrollment):
    """Enrollment with its course summary."""

    course: CourseSummary | None = None

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["course"] = self.course.to_dict() if self.course else None
        return result


@dataclass
class CourseEnrollmentView:
    """An active course annotated with one student's enrollment state."""

    course: CourseSummary
    enrollment_status: EnrollmentStatus = EnrollmentStatus.NOT_ENROLLED
    progress_percentage: int = 0

    def to_dict(self) -> dict[str, Any]:
        result = self.course.to_dict()
        result["enrollment_status"] = self.enrollment_status.value
        result["progress_percentage"] = self.progress_percentage
        return result


@dataclass
class EnrollmentStats:
    """Per-student enrollment counts."""

    total: int = 0
    enrolled: int = 0
    completed: int = 0
    not_enrolled: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "enrolled": self.enrolled,
            "completed": self.completed,
            "not_enrolled": self.not_enrolled,
        }


# =============================================================================
# QUIZ PERFORMANCE
# =============================================================================

AttemptStatusFilter = Literal["all", "passed", "failed", "in_progress"]

ATTEMPT_STATUS_FILTERS: tuple[str, ...] = ("all", "passed", "failed", "in_progress")


def _parse_bound(value: str, field_name: str) -> date | datetime:
    """Parse an ISO date or datetime filter bound. A trailing Z means UTC."""
    try:
        if len(value) == 10:
            return date.fromisoformat(value)
        if value[-1:] in ("Z", "z"):
            value = value[:-1] + "+00:00"
        return datetime.fromisoformat(value)
    except ValueError:
        raise ValidationError(
            f"Invalid ISO date for {field_name}: '{value}'", field=field_name
        ) from None


def _to_utc(value: date | datetime) -> datetime:
    """Bound as a UTC instant. Dates are midnight UTC; naive times are UTC."""
    if not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class QuizPerformanceFilter:
    """Conjunctive filter over quiz attempts.

    Equality filters are optional ids; date_from/date_to bound completed_at
    inclusively. A date-only date_to covers the whole day. Bounds without an
    offset are read as UTC.
    """

    school_id: str | None = None
    class_id: str | None = None
    course_id: str | None = None
    course_level_id: str | None = None
    topic_id: str | None = None
    quiz_id: str | None = None
    date_from: str | None = None
    date_to: str | None = None
    status: AttemptStatusFilter = "all"

    def __post_init__(self) -> None:
        if self.status not in ATTEMPT_STATUS_FILTERS:
            raise ValidationError(
                f"Invalid status filter '{self.status}'. "
                f"Expected one of: {', '.join(ATTEMPT_STATUS_FILTERS)}",
                field="status",
            )

        lower, upper, inclusive = self._utc_bounds()
        if lower is not None and upper is not None:
            if lower > upper or (lower == upper and not inclusive):
                raise ValidationError("date_from is after date_to", field="date_from")

    def _utc_bounds(self) -> tuple[datetime | None, datetime | None, bool]:
        lower = upper = None
        inclusive = True
        if self.date_from:
            lower = _to_utc(_parse_bound(self.date_from, "date_from"))
        if self.date_to:
            parsed = _parse_bound(self.date_to, "date_to")
            upper = _to_utc(parsed)
            if not isinstance(parsed, datetime):
                upper += timedelta(days=1)
                inclusive = False
        return lower, upper, inclusive

    def equality_filters(self) -> dict[str, str]:
        """Column -> value for every equality filter that is set."""
        candidates = {
            "school_id": self.school_id,
            "class_id": self.class_id,
            "course_id": self.course_id,
            "course_level_id": self.course_level_id,
            "topic_id": self.topic_id,
            "quiz_id": self.quiz_id,
        }
        return {k: v for k, v in candidates.items() if v}

    def completed_at_bounds(self) -> tuple[str | None, str | None, bool]:
        """UTC ISO bounds for completed_at.

        Returns:
            (lower, upper, upper_inclusive). A date-only date_to becomes the
            next midnight with upper_inclusive False.
        """
        lower, upper, inclusive = self._utc_bounds()
        return (
            lower.isoformat() if lower else None,
            upper.isoformat() if upper else None,
            inclusive,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "school_id": self.school_id,
            "class_id": self.class_id,
            "course_id": self.course_id,
            "course_level_id": self.course_level_id,
            "topic_id": self.topic_id,
            "quiz_id": self.quiz_id,
            "date_from": self.date_from,
            "date_to": self.date_to,
            "status": self.status,
        }


@dataclass
class QuizPerformanceStats:
    """Aggregate over all matching attempts."""

    total_attempts: int = 0
    completed_attempts: int = 0
    passed_attempts: int = 0
    failed_attempts: int = 0
    average_score: float = 0.0
    average_percentage: float = 0.0
    total_students: int = 0
    unique_quizzes: int = 0
    score_categories: dict[str, int] = field(default_factory=empty_distribution)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_attempts": self.total_attempts,
            "completed_attempts": self.completed_attempts,
            "passed_attempts": self.passed_attempts,
            "failed_attempts": self.failed_attempts,
            "average_score": self.average_score,
            "average_percentage": self.average_percentage,
            "total_students": self.total_students,
            "unique_quizzes": self.unique_quizzes,
            "score_categories": dict(self.score_categories),
        }


@dataclass
class QuizPerformanceData:
    """Per-quiz rollup."""

    quiz_id: str
    quiz_title: str
    topic_name: str | None = None
    course_name: str | None = None
    level_name: str | None = None
    total_attempts: int = 0
    completed_attempts: int = 0
    passed_attempts: int = 0
    failed_attempts: int = 0
    average_score: float = 0.0
    average_percentage: float = 0.0
    pass_rate: float = 0.0
    total_students: int = 0
    best_score: float = 0.0
    worst_score: float = 0.0
    score_categories: dict[str, int] = field(default_factory=empty_distribution)

    def to_dict(self) -> dict[str, Any]:
        return {
            "quiz_id": self.quiz_id,
            "quiz_title": self.quiz_title,
            "topic_name": self.topic_name,
            "course_name": self.course_name,
            "level_name": self.level_name,
            "total_attempts": self.total_attempts,
            "completed_attempts": self.completed_attempts,
            "passed_attempts": self.passed_attempts,
            "failed_attempts": self.failed_attempts,
            "average_score": self.average_score,
            "average_percentage": self.average_percentage,
            "pass_rate": self.pass_rate,
            "total_students": self.total_students,
            "best_score": self.best_score,
            "worst_score": self.worst_score,
            "score_categories": dict(self.score_categories),
        }


@dataclass
class StudentQuizPerformance:
    """Per-student rollup. score_category reflects the best percentage."""

    student_id: str
    student_name: str = ""
    student_username: str = ""
    class_id: str | None = None
    class_name: str | None = None
    school_name: str | None = None
    total_attempts: int = 0
    completed_attempts: int = 0
    passed_attempts: int = 0
    highest_score: float = 0.0
    highest_percentage: float = 0.0
    average_score: float = 0.0
    score_category: ScoreCategory = ScoreCategory.BELOW_EXPECTATION
    total_points: float = 0.0
    quizzes_completed: int = 0
    quizzes_passed: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "student_id": self.student_id,
            "student_name": self.student_name,
            "student_username": self.student_username,
            "class_id": self.class_id,
            "class_name": self.class_name,
            "school_name": self.school_name,
            "total_attempts": self.total_attempts,
            "completed_attempts": self.completed_attempts,
            "passed_attempts": self.passed_attempts,
            "highest_score": self.highest_score,
            "highest_percentage": self.highest_percentage,
            "average_score": self.average_score,
            "score_category": self.score_category.value,
            "total_points": self.total_points,
            "quizzes_completed": self.quizzes_completed,
            "quizzes_passed": self.quizzes_passed,
        }


@dataclass
class QuizPerformanceResponse:
    """Result of one aggregation call."""

    stats: QuizPerformanceStats = field(default_factory=QuizPerformanceStats)
    quiz_data: list[QuizPerformanceData] = field(default_factory=list)
    student_data: list[StudentQuizPerformance] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "stats": self.stats.to_dict(),
            "quiz_data": [q.to_dict() for q in self.quiz_data],
            "student_data": [s.to_dict() for s in self.student_data],
        }


# =============================================================================
# LEADERBOARD
# =============================================================================

LeaderboardScope = Literal["global", "class"]


@dataclass
class LeaderboardStudent:
    """Student identity shown on a leaderboard row."""

    id: str
    first_name: str = ""
    last_name: str = ""
    username: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "username": self.username,
        }


@dataclass
class LeaderboardCandidate:
    """Unranked leaderboard input."""

    student: LeaderboardStudent
    total_points: float
    quizzes_completed: int = 0
    quizzes_passed: int = 0
    average_score: float = 0.0
    class_id: str | None = None


@dataclass
class LeaderboardEntry:
    """Ranked leaderboard row."""

    rank: int
    student: LeaderboardStudent
    total_points: float
    quizzes_completed: int
    quizzes_passed: int
    average_score: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "rank": self.rank,
            "student": self.student.to_dict(),
            "total_points": self.total_points,
            "quizzes_completed": self.quizzes_completed,
            "quizzes_passed": self.quizzes_passed,
            "average_score": self.average_score,
        }
