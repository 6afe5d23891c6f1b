"""Fixtures for F5 tests - Web API and CLI."""

import pytest
from fastapi.testclient import TestClient

from learnboard.db.attempts_repository import record_attempt
from learnboard.web.api import create_app


@pytest.fixture
def client(catalog):
    """Test client over the seeded catalog database."""
    return TestClient(create_app())


@pytest.fixture
def attempts(catalog):
    """A handful of attempts on quiz-1 and quiz-2."""
    rows = [
        ("ana", "quiz-1", 80, True, "class-a", "2026-03-01T09:00:00+00:00"),
        ("ana", "quiz-2", 40, False, "class-a", "2026-03-02T09:00:00+00:00"),
        ("ben", "quiz-1", 100, True, "class-a", "2026-03-03T09:00:00+00:00"),
        ("cleo", "quiz-1", 20, False, "class-b", "2026-03-04T09:00:00+00:00"),
    ]
    for student_id, quiz_id, score, passed, class_id, completed_at in rows:
        record_attempt(
            student_id=student_id,
            quiz_id=quiz_id,
            score=score,
            max_score=100,
            percentage=score,
            completed=True,
            passed=passed,
            completed_at=completed_at,
            class_id=class_id,
            school_id="school-1",
            course_id="math",
            topic_id="topic-1",
            course_level_id="level-1",
        )
    return catalog
