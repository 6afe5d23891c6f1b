"""Leaderboard ranking.

Ordering is total_points desc, then average_score desc, then student id
asc, so identical input always yields identical output. Ranks are
positional (1..N): tied students get consecutive ranks, never a shared one.
"""

from __future__ import annotations

import sqlite3
from typing import Iterable

import structlog

from learnboard.config.app_config import load_app_config
from learnboard.core.errors import AggregationError, NotFoundError, ValidationError
from learnboard.core.models import (
    LeaderboardCandidate,
    LeaderboardEntry,
    LeaderboardScope,
    LeaderboardStudent,
    QuizPerformanceFilter,
    StudentQuizPerformance,
)
from learnboard.core.performance_aggregator import aggregate
from learnboard.db import catalog_repository

logger = structlog.get_logger(__name__)

SCOPES = ("global", "class")


def _sort_key(candidate: LeaderboardCandidate) -> tuple[float, float, str]:
    return (-candidate.total_points, -candidate.average_score, candidate.student.id)


def rank(
    entries: Iterable[LeaderboardCandidate],
    scope: LeaderboardScope = "global",
    class_id: str | None = None,
    limit: int | None = None,
) -> list[LeaderboardEntry]:
    """Order and rank leaderboard candidates.

    Args:
        entries: Unranked candidates
        scope: "global" or "class"
        class_id: Required for class scope; keeps only that class
        limit: Maximum number of rows returned

    Returns:
        LeaderboardEntry list with ranks 1..N

    Raises:
        ValidationError: Unknown scope, missing class_id, or limit < 1
    """
    if scope not in SCOPES:
        raise ValidationError(
            f"Invalid leaderboard scope '{scope}'. Expected one of: {', '.join(SCOPES)}",
            field="scope",
        )
    if scope == "class" and not class_id:
        raise ValidationError("class_id is required for class scope", field="class_id")
    if limit is not None and limit < 1:
        raise ValidationError(f"limit must be positive, got {limit}", field="limit")

    candidates = list(entries)
    if scope == "class":
        candidates = [c for c in candidates if c.class_id == class_id]

    ordered = sorted(candidates, key=_sort_key)
    if limit is not None:
        ordered = ordered[:limit]

    return [
        LeaderboardEntry(
            rank=position,
            student=c.student,
            total_points=c.total_points,
            quizzes_completed=c.quizzes_completed,
            quizzes_passed=c.quizzes_passed,
            average_score=c.average_score,
        )
        for position, c in enumerate(ordered, start=1)
    ]


def candidate_from_performance(performance: StudentQuizPerformance) -> LeaderboardCandidate:
    """Build a leaderboard candidate from a student rollup."""
    return LeaderboardCandidate(
        student=LeaderboardStudent(
            id=performance.student_id,
            username=performance.student_username,
        ),
        total_points=performance.total_points,
        quizzes_completed=performance.quizzes_completed,
        quizzes_passed=performance.quizzes_passed,
        average_score=performance.average_score,
        class_id=performance.class_id,
    )


def _with_student_names(board: list[LeaderboardEntry]) -> list[LeaderboardEntry]:
    """Fill first/last names from the students table for the ranked rows.

    Raises:
        AggregationError: If the students table cannot be read
    """
    for entry in board:
        try:
            record = catalog_repository.get_student_by_id(entry.student.id)
        except sqlite3.Error as e:
            logger.error(
                "leaderboard.student_lookup_failed", student_id=entry.student.id, error=str(e)
            )
            raise AggregationError(f"Failed to load student {entry.student.id}: {e}") from e
        if record is not None:
            entry.student = LeaderboardStudent(
                id=record.id,
                first_name=record.first_name,
                last_name=record.last_name,
                username=record.username,
            )
    return board


def _resolve_limit(limit: int | None) -> int:
    config = load_app_config().leaderboard
    if limit is None:
        return config.default_limit
    if limit < 1:
        raise ValidationError(f"limit must be positive, got {limit}", field="limit")
    return min(limit, config.max_limit)


def _candidates(performance_filter: QuizPerformanceFilter) -> list[LeaderboardCandidate]:
    """Candidates for every student with at least one completed attempt."""
    response = aggregate(performance_filter)
    return [
        candidate_from_performance(s)
        for s in response.student_data
        if s.completed_attempts > 0
    ]


def get_leaderboard(limit: int | None = None) -> list[LeaderboardEntry]:
    """Global leaderboard over all stored attempts.

    Raises:
        ValidationError: If limit < 1
        AggregationError: If the attempts cannot be read
    """
    resolved = _resolve_limit(limit)
    board = _with_student_names(
        rank(_candidates(QuizPerformanceFilter()), scope="global", limit=resolved)
    )
    logger.info("leaderboard.built", scope="global", rows=len(board))
    return board


def get_class_leaderboard(class_id: str, limit: int | None = None) -> list[LeaderboardEntry]:
    """Leaderboard over attempts made in one class.

    Raises:
        NotFoundError: If the class does not exist
        ValidationError: If limit < 1
        AggregationError: If the attempts or the class cannot be read
    """
    resolved = _resolve_limit(limit)
    try:
        class_record = catalog_repository.get_class_by_id(class_id)
    except sqlite3.Error as e:
        logger.error("leaderboard.class_lookup_failed", class_id=class_id, error=str(e))
        raise AggregationError(f"Failed to load class {class_id}: {e}") from e
    if class_record is None:
        raise NotFoundError(f"Class '{class_id}' not found")

    candidates = _candidates(QuizPerformanceFilter(class_id=class_id))
    # Rollups keep the first class seen; every attempt here is from class_id
    for candidate in candidates:
        candidate.class_id = class_id

    board = _with_student_names(
        rank(candidates, scope="class", class_id=class_id, limit=resolved)
    )
    logger.info("leaderboard.built", scope="class", class_id=class_id, rows=len(board))
    return board
