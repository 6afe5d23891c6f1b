"""Tests for the enrollment manager (F2)."""

import sqlite3

import pytest

from learnboard.config.app_config import clear_config_cache
from learnboard.core.enrollment_manager import (
    can_transition,
    enroll,
    get_all_courses_with_enrollment_status,
    get_enrollment_stats,
    get_student_enrollments,
    update_enrollment_status,
    validate_progress,
)
from learnboard.core.errors import ConflictError, NotFoundError, ValidationError
from learnboard.core.models import Enrollment, EnrollmentStatus
from learnboard.db import catalog_repository, enrollments_repository
from learnboard.db.enrollments_repository import UpsertOutcome, count_enrollments


class TestCanTransition:
    """Tests for the transition policy."""

    def test_new_row_accepts_any_status(self):
        """Without an existing row every status is allowed."""
        for target in EnrollmentStatus:
            assert can_transition(None, target, allow_regression=False)

    def test_permissive_allows_regression(self):
        """Default policy allows completed -> enrolled."""
        assert can_transition(EnrollmentStatus.COMPLETED, EnrollmentStatus.ENROLLED)

    def test_strict_forward_only(self):
        """Strict policy allows forward moves and self-transitions only."""
        assert can_transition(
            EnrollmentStatus.NOT_ENROLLED, EnrollmentStatus.COMPLETED, allow_regression=False
        )
        assert can_transition(
            EnrollmentStatus.ENROLLED, EnrollmentStatus.ENROLLED, allow_regression=False
        )
        assert not can_transition(
            EnrollmentStatus.COMPLETED, EnrollmentStatus.ENROLLED, allow_regression=False
        )
        assert not can_transition(
            EnrollmentStatus.ENROLLED, EnrollmentStatus.NOT_ENROLLED, allow_regression=False
        )


class TestValidateProgress:
    """Tests for validate_progress()."""

    @pytest.mark.parametrize("value", [0, 1, 50, 100, None])
    def test_valid_values(self, value):
        assert validate_progress(value) == value

    @pytest.mark.parametrize("value", [-1, 101, 50.5, "50", True])
    def test_invalid_values(self, value):
        with pytest.raises(ValidationError) as exc_info:
            validate_progress(value)
        assert exc_info.value.field == "progress_percentage"


class TestUpdateEnrollmentStatus:
    """Tests for update_enrollment_status()."""

    def test_creates_row(self, catalog):
        """First update inserts an enrolled row with 0 progress."""
        enrollment = update_enrollment_status("ana", "math", "enrolled")

        assert enrollment.status == EnrollmentStatus.ENROLLED
        assert enrollment.progress_percentage == 0
        assert enrollment.enrolled_at is not None
        assert enrollment.completed_at is None
        assert count_enrollments("ana", "math") == 1

    def test_idempotent(self, catalog):
        """Same call twice leaves one row with the same status and progress."""
        first = update_enrollment_status("ana", "math", "enrolled", 40)
        second = update_enrollment_status("ana", "math", "enrolled", 40)

        assert count_enrollments("ana", "math") == 1
        assert second.id == first.id
        assert second.status == first.status == EnrollmentStatus.ENROLLED
        assert second.progress_percentage == first.progress_percentage == 40

    def test_progress_kept_when_omitted(self, catalog):
        """Omitting progress leaves the stored value untouched."""
        update_enrollment_status("ana", "math", "enrolled", 30)
        enrollment = update_enrollment_status("ana", "math", "completed")

        assert enrollment.status == EnrollmentStatus.COMPLETED
        assert enrollment.progress_percentage == 30
        assert enrollment.completed_at is not None

    def test_regression_allowed_by_default(self, catalog):
        """completed -> enrolled succeeds and clears completed_at."""
        update_enrollment_status("ana", "math", "completed", 100)
        enrollment = update_enrollment_status("ana", "math", "enrolled")

        assert enrollment.status == EnrollmentStatus.ENROLLED
        assert enrollment.completed_at is None
        assert enrollment.enrolled_at is not None

    def test_strict_mode_rejects_regression(self, catalog):
        """With regression disabled the row is left as it was."""
        update_enrollment_status("ana", "math", "completed", 100)

        with pytest.raises(ValidationError) as exc_info:
            update_enrollment_status("ana", "math", "enrolled", 10, allow_regression=False)

        assert exc_info.value.field == "status"
        stored = enrollments_repository.get_enrollment("ana", "math")
        assert stored.status == EnrollmentStatus.COMPLETED
        assert stored.progress_percentage == 100

    def test_strict_mode_from_config(self, catalog, tmp_path):
        """enrollment.allow_regression: false in config enables strict mode."""
        config_dir = tmp_path / "data" / "config"
        config_dir.mkdir(parents=True)
        (config_dir / "app_config_v1.yaml").write_text(
            "enrollment:\n  allow_regression: false\n"
        )
        clear_config_cache()

        update_enrollment_status("ana", "math", "completed")
        with pytest.raises(ValidationError):
            update_enrollment_status("ana", "math", "not_enrolled")

    def test_strict_mode_allows_forward(self, catalog):
        """Forward moves still succeed in strict mode."""
        update_enrollment_status("ana", "math", "enrolled", allow_regression=False)
        enrollment = update_enrollment_status(
            "ana", "math", "completed", 100, allow_regression=False
        )
        assert enrollment.status == EnrollmentStatus.COMPLETED

    def test_invalid_status_writes_nothing(self, catalog):
        """Unknown status raises before any write."""
        with pytest.raises(ValidationError):
            update_enrollment_status("ana", "math", "graduated")
        assert count_enrollments("ana", "math") == 0

    def test_invalid_progress_writes_nothing(self, catalog):
        """Out-of-range progress raises before any write."""
        with pytest.raises(ValidationError):
            update_enrollment_status("ana", "math", "enrolled", 150)
        assert count_enrollments("ana", "math") == 0

    def test_unknown_course(self, catalog):
        """A course that does not exist raises NotFoundError."""
        with pytest.raises(NotFoundError):
            update_enrollment_status("ana", "no-such-course", "enrolled")

    def test_unknown_student(self, catalog):
        """A student that does not exist raises NotFoundError."""
        with pytest.raises(NotFoundError):
            update_enrollment_status("nobody", "math", "enrolled")

    def test_blank_ids_rejected(self, catalog):
        with pytest.raises(ValidationError):
            update_enrollment_status("", "math", "enrolled")
        with pytest.raises(ValidationError):
            update_enrollment_status("ana", "  ", "enrolled")

    def test_locked_database_is_conflict(self, catalog, monkeypatch):
        """A write that stays locked surfaces as ConflictError."""

        def locked(**kwargs):
            raise sqlite3.OperationalError("database is locked")

        monkeypatch.setattr(enrollments_repository, "upsert_enrollment", locked)

        with pytest.raises(ConflictError):
            update_enrollment_status("ana", "math", "enrolled")

    def test_refused_write_on_allowed_transition_is_conflict(self, catalog, monkeypatch):
        """Guard refusal with a row that now permits the move is a race."""
        row = Enrollment(
            id="e1",
            student_id="ana",
            course_id="math",
            status=EnrollmentStatus.ENROLLED,
            progress_percentage=0,
            updated_at="2026-01-01T00:00:00+00:00",
        )
        monkeypatch.setattr(
            enrollments_repository,
            "upsert_enrollment",
            lambda **kwargs: UpsertOutcome(enrollment=row, applied=False),
        )

        with pytest.raises(ConflictError):
            update_enrollment_status("ana", "math", "completed", allow_regression=False)

    def test_enroll_shortcut(self, catalog):
        """enroll() sets enrolled and leaves progress alone."""
        update_enrollment_status("ana", "math", "not_enrolled", 20)
        enrollment = enroll("ana", "math")
        assert enrollment.status == EnrollmentStatus.ENROLLED
        assert enrollment.progress_percentage == 20


class TestGetStudentEnrollments:
    """Tests for get_student_enrollments()."""

    def test_empty(self, catalog):
        """No rows is an empty list, not an error."""
        assert get_student_enrollments("ana") == []

    def test_includes_course(self, catalog):
        """Each enrollment embeds its course summary."""
        update_enrollment_status("ana", "art", "enrolled", 10)

        enrollments = get_student_enrollments("ana")
        assert len(enrollments) == 1
        assert enrollments[0].course.name == "Art"
        assert enrollments[0].course.icon_image_url == "/icons/art.png"
        assert enrollments[0].to_dict()["course"]["code"] == "ART"

    def test_only_own_rows(self, catalog):
        update_enrollment_status("ana", "art", "enrolled")
        update_enrollment_status("ben", "math", "enrolled")

        assert [e.course_id for e in get_student_enrollments("ben")] == ["math"]

    def test_storage_error_raises(self, catalog, monkeypatch):
        """A failed query raises NotFoundError instead of returning []."""

        def broken(student_id):
            raise sqlite3.OperationalError("no such table")

        monkeypatch.setattr(enrollments_repository, "get_student_enrollments", broken)

        with pytest.raises(NotFoundError):
            get_student_enrollments("ana")


class TestGetAllCoursesWithEnrollmentStatus:
    """Tests for get_all_courses_with_enrollment_status()."""

    def test_one_entry_per_active_course(self, catalog):
        """Length equals the number of active courses."""
        update_enrollment_status("ana", "math", "enrolled", 55)
        update_enrollment_status("ana", "latin", "completed")

        views = get_all_courses_with_enrollment_status("ana")

        assert [v.course.id for v in views] == ["art", "math", "science"]
        by_id = {v.course.id: v for v in views}
        assert by_id["math"].enrollment_status == EnrollmentStatus.ENROLLED
        assert by_id["math"].progress_percentage == 55
        assert by_id["art"].enrollment_status == EnrollmentStatus.NOT_ENROLLED
        assert by_id["art"].progress_percentage == 0

    def test_student_without_rows(self, catalog):
        views = get_all_courses_with_enrollment_status("cleo")
        assert len(views) == 3
        assert all(v.enrollment_status == EnrollmentStatus.NOT_ENROLLED for v in views)

    def test_deactivated_course_dropped(self, catalog):
        """A course deactivated after enrollment leaves the view."""
        update_enrollment_status("ana", "art", "enrolled")
        assert catalog_repository.set_course_status("art", "inactive")

        views = get_all_courses_with_enrollment_status("ana")
        assert [v.course.id for v in views] == ["math", "science"]
        assert get_enrollment_stats("ana").total == 1

    def test_to_dict_flattens_course(self, catalog):
        data = get_all_courses_with_enrollment_status("ana")[0].to_dict()
        assert data["id"] == "art"
        assert data["enrollment_status"] == "not_enrolled"
        assert data["progress_percentage"] == 0


class TestGetEnrollmentStats:
    """Tests for get_enrollment_stats()."""

    def test_no_rows(self, catalog):
        stats = get_enrollment_stats("ana")
        assert stats.to_dict() == {
            "total": 0,
            "enrolled": 0,
            "completed": 0,
            "not_enrolled": 3,
        }

    def test_counts(self, catalog):
        update_enrollment_status("ana", "math", "enrolled")
        update_enrollment_status("ana", "science", "completed")

        stats = get_enrollment_stats("ana")
        assert stats.total == 2
        assert stats.enrolled == 1
        assert stats.completed == 1
        assert stats.not_enrolled == 1

    def test_not_enrolled_never_negative(self, catalog):
        """Rows on inactive courses can push total above the active count."""
        for course_id in ("math", "science", "art", "latin"):
            update_enrollment_status("ana", course_id, "enrolled")

        stats = get_enrollment_stats("ana")
        assert stats.total == 4
        assert stats.not_enrolled == 0

    def test_explicit_not_enrolled_rows_count_in_total(self, catalog):
        update_enrollment_status("ana", "math", "not_enrolled")

        stats = get_enrollment_stats("ana")
        assert stats.total == 1
        assert stats.enrolled == 0
        assert stats.not_enrolled == 2

    def test_storage_error_raises(self, catalog, monkeypatch):
        """A failed count raises instead of reporting zeros."""

        def broken(student_id):
            raise sqlite3.OperationalError("disk I/O error")

        monkeypatch.setattr(enrollments_repository, "count_by_status", broken)

        with pytest.raises(NotFoundError):
            get_enrollment_stats("ana")

