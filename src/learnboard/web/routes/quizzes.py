"""Quiz performance and leaderboard endpoints."""

from fastapi import APIRouter, Query

from learnboard.core import leaderboard, performance_aggregator
from learnboard.core.errors import LearnboardError
from learnboard.core.models import LeaderboardEntry, QuizPerformanceFilter
from learnboard.web.errors import to_http_exception
from learnboard.web.schemas import (
    LeaderboardEntryResponse,
    LeaderboardResponse,
    QuizPerformanceResponseSchema,
)

router = APIRouter(prefix="/api/quizzes", tags=["quizzes"])


def _board_response(
    entries: list[LeaderboardEntry],
    scope: str,
    class_id: str | None = None,
) -> LeaderboardResponse:
    rows = [LeaderboardEntryResponse(**e.to_dict()) for e in entries]
    return LeaderboardResponse(scope=scope, class_id=class_id, entries=rows, count=len(rows))


@router.get("/performance", response_model=QuizPerformanceResponseSchema)
def get_quiz_performance(
    school_id: str | None = None,
    class_id: str | None = None,
    course_id: str | None = None,
    course_level_id: str | None = None,
    topic_id: str | None = None,
    quiz_id: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    status: str = "all",
) -> QuizPerformanceResponseSchema:
    """Aggregate quiz attempts matching every supplied filter."""
    try:
        performance_filter = QuizPerformanceFilter(
            school_id=school_id,
            class_id=class_id,
            course_id=course_id,
            course_level_id=course_level_id,
            topic_id=topic_id,
            quiz_id=quiz_id,
            date_from=date_from,
            date_to=date_to,
            status=status,
        )
        response = performance_aggregator.aggregate(performance_filter)
    except LearnboardError as e:
        raise to_http_exception(e) from e

    return QuizPerformanceResponseSchema(**response.to_dict())


@router.get("/leaderboard/global", response_model=LeaderboardResponse)
def get_global_leaderboard(limit: int | None = Query(default=None)) -> LeaderboardResponse:
    """Rank every student with completed attempts."""
    try:
        entries = leaderboard.get_leaderboard(limit=limit)
    except LearnboardError as e:
        raise to_http_exception(e) from e

    return _board_response(entries, scope="global")


@router.get("/leaderboard/class/{class_id}", response_model=LeaderboardResponse)
def get_class_leaderboard(
    class_id: str,
    limit: int | None = Query(default=None),
) -> LeaderboardResponse:
    """Rank students by their attempts made in one class."""
    try:
        entries = leaderboard.get_class_leaderboard(class_id, limit=limit)
    except LearnboardError as e:
        raise to_http_exception(e) from e

    return _board_response(entries, scope="class", class_id=class_id)
