"""Quiz performance aggregation.

Responsibilities:
- Stream filtered quiz attempts in a single forward pass
- Maintain overall, per-quiz and per-student running counters
- Categorize completed attempts into score bands
- Publish a QuizPerformanceResponse only after the pass completes

Memory is bounded by distinct students, quizzes and (student, quiz) pairs,
never by the number of attempts.
"""

from __future__ import annotations

import math
import sqlite3
import threading
from contextlib import closing
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

import structlog

from learnboard.core.errors import (
    AggregationCancelledError,
    AggregationError,
    ValidationError,
)
from learnboard.core.models import (
    QuizPerformanceData,
    QuizPerformanceFilter,
    QuizPerformanceResponse,
    QuizPerformanceStats,
    StudentQuizPerformance,
)
from learnboard.core.score_categorizer import categorize, empty_distribution
from learnboard.db import attempts_repository

logger = structlog.get_logger(__name__)

UNKNOWN_QUIZ_TITLE = "Unknown Quiz"

# =============================================================================
# ROW PARSING
# =============================================================================


@dataclass
class _Attempt:
    """Validated view of one attempt row."""

    attempt_id: str | None
    student_id: str
    quiz_id: str
    completed: bool
    passed: bool
    score: float
    percentage: float
    row: Mapping[str, Any]


def _get(row: Mapping[str, Any], key: str) -> Any:
    """Read an optional column from a dict or sqlite3.Row."""
    try:
        return row[key]
    except (KeyError, IndexError):
        return None


def _number(value: Any, name: str, attempt_id: str | None) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise AggregationError(
            f"Attempt {attempt_id}: {name} is not a number ({value!r})", attempt_id=attempt_id
        )
    if not math.isfinite(value):
        raise AggregationError(f"Attempt {attempt_id}: {name} is not finite", attempt_id=attempt_id)
    return float(value)


def _parse_attempt(row: Mapping[str, Any]) -> _Attempt:
    """Validate an attempt row.

    In-progress attempts may carry no score; completed attempts need a
    score in [0, max_score] (max_score when present) and a percentage in
    [0, 100].

    Raises:
        AggregationError: If the row is malformed
    """
    attempt_id = _get(row, "id")
    student_id = _get(row, "student_id")
    quiz_id = _get(row, "quiz_id")

    if not student_id or not quiz_id:
        raise AggregationError(
            f"Attempt {attempt_id}: missing student_id or quiz_id", attempt_id=attempt_id
        )

    completed = bool(_get(row, "completed"))
    passed = completed and bool(_get(row, "passed"))

    score = 0.0
    percentage = 0.0
    if completed:
        score = _number(_get(row, "score"), "score", attempt_id)
        percentage = _number(_get(row, "percentage"), "percentage", attempt_id)
        if not 0 <= percentage <= 100:
            raise AggregationError(
                f"Attempt {attempt_id}: percentage out of range ({percentage})",
                attempt_id=attempt_id,
            )
        if score < 0:
            raise AggregationError(
                f"Attempt {attempt_id}: negative score ({score})", attempt_id=attempt_id
            )
        max_score = _get(row, "max_score")
        if max_score is not None and score > _number(max_score, "max_score", attempt_id):
            raise AggregationError(
                f"Attempt {attempt_id}: score {score} exceeds max_score {max_score}",
                attempt_id=attempt_id,
            )

    return _Attempt(
        attempt_id=attempt_id,
        student_id=str(student_id),
        quiz_id=str(quiz_id),
        completed=completed,
        passed=passed,
        score=score,
        percentage=percentage,
        row=row,
    )


def matches_status(completed: bool, passed: bool, status: str) -> bool:
    """Check an attempt against the status filter.

    passed: completed and passed; failed: completed and not passed;
    in_progress: not completed; all: everything.
    """
    if status == "passed":
        return completed and passed
    if status == "failed":
        return completed and not passed
    if status == "in_progress":
        return not completed
    return True


# =============================================================================
# ACCUMULATORS
# =============================================================================


def _average(total: float, count: int) -> float:
    return round(total / count, 2) if count else 0.0


@dataclass
class _QuizAccumulator:
    quiz_id: str
    quiz_title: str
    topic_name: str | None
    course_name: str | None
    level_name: str | None
    total_attempts: int = 0
    completed_attempts: int = 0
    passed_attempts: int = 0
    score_sum: float = 0.0
    percentage_sum: float = 0.0
    best_score: float | None = None
    worst_score: float | None = None
    students: set[str] = field(default_factory=set)
    categories: dict[str, int] = field(default_factory=empty_distribution)

    def add(self, attempt: _Attempt, category: str | None) -> None:
        self.total_attempts += 1
        self.students.add(attempt.student_id)
        if not attempt.completed:
            return
        self.completed_attempts += 1
        if attempt.passed:
            self.passed_attempts += 1
        self.score_sum += attempt.score
        self.percentage_sum += attempt.percentage
        if self.best_score is None or attempt.score > self.best_score:
            self.best_score = attempt.score
        if self.worst_score is None or attempt.score < self.worst_score:
            self.worst_score = attempt.score
        if category is not None:
            self.categories[category] += 1

    def publish(self) -> QuizPerformanceData:
        completed = self.completed_attempts
        return QuizPerformanceData(
            quiz_id=self.quiz_id,
            quiz_title=self.quiz_title,
            topic_name=self.topic_name,
            course_name=self.course_name,
            level_name=self.level_name,
            total_attempts=self.total_attempts,
            completed_attempts=completed,
            passed_attempts=self.passed_attempts,
            failed_attempts=completed - self.passed_attempts,
            average_score=_average(self.score_sum, completed),
            average_percentage=_average(self.percentage_sum, completed),
            pass_rate=round(self.passed_attempts * 100 / completed, 2) if completed else 0.0,
            total_students=len(self.students),
            best_score=self.best_score if self.best_score is not None else 0.0,
            worst_score=self.worst_score if self.worst_score is not None else 0.0,
            score_categories=dict(self.categories),
        )


@dataclass
class _StudentAccumulator:
    student_id: str
    student_name: str
    student_username: str
    class_id: str | None
    class_name: str | None
    school_name: str | None
    total_attempts: int = 0
    completed_attempts: int = 0
    passed_attempts: int = 0
    score_sum: float = 0.0
    highest_score: float | None = None
    highest_percentage: float = 0.0
    quizzes_completed: set[str] = field(default_factory=set)
    quizzes_passed: set[str] = field(default_factory=set)

    def add(self, attempt: _Attempt) -> None:
        self.total_attempts += 1
        if not attempt.completed:
            return
        self.completed_attempts += 1
        self.score_sum += attempt.score
        self.quizzes_completed.add(attempt.quiz_id)
        if attempt.passed:
            self.passed_attempts += 1
            self.quizzes_passed.add(attempt.quiz_id)
        if self.highest_score is None or attempt.score > self.highest_score:
            self.highest_score = attempt.score
        self.highest_percentage = max(self.highest_percentage, attempt.percentage)

    def publish(self) -> StudentQuizPerformance:
        return StudentQuizPerformance(
            student_id=self.student_id,
            student_name=self.student_name,
            student_username=self.student_username,
            class_id=self.class_id,
            class_name=self.class_name,
            school_name=self.school_name,
            total_attempts=self.total_attempts,
            completed_attempts=self.completed_attempts,
            passed_attempts=self.passed_attempts,
            highest_score=self.highest_score if self.highest_score is not None else 0.0,
            highest_percentage=self.highest_percentage,
            average_score=_average(self.score_sum, self.completed_attempts),
            # Best demonstrated performance, not the average
            score_category=categorize(self.highest_percentage),
            total_points=self.score_sum,
            quizzes_completed=len(self.quizzes_completed),
            quizzes_passed=len(self.quizzes_passed),
        )


def _new_quiz(attempt: _Attempt) -> _QuizAccumulator:
    return _QuizAccumulator(
        quiz_id=attempt.quiz_id,
        quiz_title=_get(attempt.row, "quiz_title") or UNKNOWN_QUIZ_TITLE,
        topic_name=_get(attempt.row, "topic_name"),
        course_name=_get(attempt.row, "course_name"),
        level_name=_get(attempt.row, "level_name"),
    )


def _new_student(attempt: _Attempt) -> _StudentAccumulator:
    first = _get(attempt.row, "student_first_name") or ""
    last = _get(attempt.row, "student_last_name") or ""
    return _StudentAccumulator(
        student_id=attempt.student_id,
        student_name=f"{first} {last}".strip(),
        student_username=_get(attempt.row, "student_username") or "",
        class_id=_get(attempt.row, "class_id"),
        class_name=_get(attempt.row, "class_name"),
        school_name=_get(attempt.row, "school_name"),
    )


# =============================================================================
# MAIN FUNCTIONS
# =============================================================================


def aggregate_attempts(
    rows: Iterable[Mapping[str, Any]],
    status: str = "all",
    cancel_event: threading.Event | None = None,
) -> QuizPerformanceResponse:
    """Aggregate attempt rows in one forward pass.

    Args:
        rows: Attempt rows (dicts or sqlite3.Row), already filtered by
            equality and date predicates
        status: Status filter (all, passed, failed, in_progress)
        cancel_event: When set, the pass stops and nothing is published

    Returns:
        QuizPerformanceResponse; zero-valued when no row matches

    Raises:
        AggregationError: On a malformed row
        AggregationCancelledError: If cancel_event is set during the pass
    """
    total_attempts = 0
    completed_attempts = 0
    passed_attempts = 0
    score_sum = 0.0
    percentage_sum = 0.0
    categories = empty_distribution()
    quizzes: dict[str, _QuizAccumulator] = {}
    students: dict[str, _StudentAccumulator] = {}

    for row in rows:
        if cancel_event is not None and cancel_event.is_set():
            raise AggregationCancelledError("Aggregation cancelled")

        attempt = _parse_attempt(row)
        if not matches_status(attempt.completed, attempt.passed, status):
            continue

        category: str | None = None
        if attempt.completed:
            try:
                category = categorize(attempt.percentage).value
            except ValidationError as e:
                raise AggregationError(str(e), attempt_id=attempt.attempt_id) from e

        total_attempts += 1
        if attempt.completed:
            completed_attempts += 1
            score_sum += attempt.score
            percentage_sum += attempt.percentage
            categories[category] += 1
            if attempt.passed:
                passed_attempts += 1

        quiz = quizzes.get(attempt.quiz_id)
        if quiz is None:
            quiz = quizzes[attempt.quiz_id] = _new_quiz(attempt)
        quiz.add(attempt, category)

        student = students.get(attempt.student_id)
        if student is None:
            student = students[attempt.student_id] = _new_student(attempt)
        student.add(attempt)

    stats = QuizPerformanceStats(
        total_attempts=total_attempts,
        completed_attempts=completed_attempts,
        passed_attempts=passed_attempts,
        failed_attempts=completed_attempts - passed_attempts,
        average_score=_average(score_sum, completed_attempts),
        average_percentage=_average(percentage_sum, completed_attempts),
        total_students=len(students),
        unique_quizzes=len(quizzes),
        score_categories=categories,
    )

    quiz_data = sorted(
        (q.publish() for q in quizzes.values()),
        key=lambda q: (-q.total_attempts, q.quiz_id),
    )
    student_data = sorted(
        (s.publish() for s in students.values()),
        key=lambda s: (-s.highest_percentage, s.student_id),
    )

    return QuizPerformanceResponse(stats=stats, quiz_data=quiz_data, student_data=student_data)


def aggregate(
    performance_filter: QuizPerformanceFilter | None = None,
    cancel_event: threading.Event | None = None,
) -> QuizPerformanceResponse:
    """Aggregate stored quiz attempts matching a filter.

    Args:
        performance_filter: Conjunctive filter; None means no filter
        cancel_event: Optional cancellation signal

    Returns:
        QuizPerformanceResponse with stats, quiz_data and student_data

    Raises:
        AggregationError: On a malformed row or a failed read
        AggregationCancelledError: If cancelled
    """
    performance_filter = performance_filter or QuizPerformanceFilter()

    try:
        with closing(attempts_repository.iter_attempts(performance_filter)) as rows:
            response = aggregate_attempts(rows, performance_filter.status, cancel_event)
    except AggregationCancelledError:
        logger.info("performance.cancelled", filters=performance_filter.to_dict())
        raise
    except AggregationError as e:
        logger.error(
            "performance.malformed_attempt",
            attempt_id=e.attempt_id,
            error=str(e),
        )
        raise
    except sqlite3.Error as e:
        logger.error("performance.fetch_failed", error=str(e))
        raise AggregationError(f"Failed to fetch quiz attempts: {e}") from e

    logger.info(
        "performance.aggregated",
        filters=performance_filter.to_dict(),
        total_attempts=response.stats.total_attempts,
        quizzes=len(response.quiz_data),
        students=len(response.student_data),
    )
    return response
