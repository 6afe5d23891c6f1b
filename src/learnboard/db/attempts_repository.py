"""Repository functions for the student_quiz_attempts table.

Attempts are immutable once written. iter_attempts() streams filtered rows
joined with their display labels (quiz, topic, level, course, student,
class, school) straight from the cursor.
"""

from __future__ import annotations

import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Any, Iterator

import structlog

from learnboard.core.models import QuizPerformanceFilter
from learnboard.db.database import get_db

logger = structlog.get_logger(__name__)

_SELECT_WITH_LABELS = """
    SELECT a.*,
           q.title AS quiz_title,
           t.name AS topic_name,
           l.name AS level_name,
           c.name AS course_name,
           s.first_name AS student_first_name,
           s.last_name AS student_last_name,
           s.username AS student_username,
           cl.name AS class_name,
           sc.name AS school_name
    FROM student_quiz_attempts a
    LEFT JOIN quizzes q ON q.id = a.quiz_id
    LEFT JOIN topics t ON t.id = q.topic_id
    LEFT JOIN course_levels l ON l.id = t.level_id
    LEFT JOIN courses c ON c.id = l.course_id
    LEFT JOIN students s ON s.id = a.student_id
    LEFT JOIN classes cl ON cl.id = a.class_id
    LEFT JOIN schools sc ON sc.id = a.school_id
"""


def record_attempt(
    student_id: str,
    quiz_id: str,
    score: float | None,
    max_score: float | None,
    percentage: float | None,
    completed: bool,
    passed: bool,
    completed_at: str | None = None,
    topic_id: str | None = None,
    course_id: str | None = None,
    course_level_id: str | None = None,
    school_id: str | None = None,
    class_id: str | None = None,
    attempt_id: str | None = None,
) -> str:
    """Insert a quiz attempt.

    completed_at defaults to now (UTC) for completed attempts.

    Returns:
        The attempt id
    """
    attempt_id = attempt_id or uuid.uuid4().hex
    if completed and completed_at is None:
        completed_at = datetime.now(timezone.utc).isoformat()

    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO student_quiz_attempts (
                id, student_id, quiz_id, topic_id, course_id, course_level_id,
                school_id, class_id, score, max_score, percentage,
                completed, passed, completed_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                attempt_id,
                student_id,
                quiz_id,
                topic_id,
                course_id,
                course_level_id,
                school_id,
                class_id,
                score,
                max_score,
                percentage,
                1 if completed else 0,
                1 if passed else 0,
                completed_at,
            ),
        )

    logger.debug("attempts.recorded", attempt_id=attempt_id, quiz_id=quiz_id)
    return attempt_id


def build_where(performance_filter: QuizPerformanceFilter) -> tuple[str, list[Any]]:
    """Build the WHERE clause for equality and date filters.

    Date bounds compare as UTC instants. The status filter is not included;
    it is applied during aggregation.

    Returns:
        (sql fragment starting with WHERE or empty, positional params)
    """
    clauses: list[str] = []
    params: list[Any] = []

    for column, value in performance_filter.equality_filters().items():
        clauses.append(f"a.{column} = ?")
        params.append(value)

    lower, upper, upper_inclusive = performance_filter.completed_at_bounds()
    if lower:
        clauses.append("julianday(a.completed_at) >= julianday(?)")
        params.append(lower)

    if upper:
        operator = "<=" if upper_inclusive else "<"
        clauses.append(f"julianday(a.completed_at) {operator} julianday(?)")
        params.append(upper)

    if not clauses:
        return "", params

    return "WHERE " + " AND ".join(clauses), params


def iter_attempts(performance_filter: QuizPerformanceFilter) -> Iterator[sqlite3.Row]:
    """Stream attempts matching the filter, with labels.

    The connection stays open until the generator is exhausted or closed.
    """
    where, params = build_where(performance_filter)
    sql = f"{_SELECT_WITH_LABELS} {where} ORDER BY a.completed_at, a.id"

    with get_db() as conn:
        cursor = conn.execute(sql, params)
        for row in cursor:
            yield row

