"""Tests for score categorization (F1)."""

import math

import pytest

from learnboard.core.errors import ValidationError
from learnboard.core.score_categorizer import (
    ScoreCategory,
    categorize,
    empty_distribution,
)


class TestCategorize:
    """Tests for categorize()."""

    @pytest.mark.parametrize(
        "percentage,expected",
        [
            (0, ScoreCategory.BELOW_EXPECTATION),
            (25, ScoreCategory.BELOW_EXPECTATION),
            (25.01, ScoreCategory.APPROACHING),
            (50, ScoreCategory.APPROACHING),
            (50.5, ScoreCategory.MEETING),
            (75, ScoreCategory.MEETING),
            (75.01, ScoreCategory.EXCEEDING),
            (100, ScoreCategory.EXCEEDING),
        ],
    )
    def test_band_boundaries(self, percentage, expected):
        """Upper bounds 25, 50 and 75 belong to the lower band."""
        assert categorize(percentage) == expected

    def test_accepts_float_and_int(self):
        """Both ints and floats are categorized."""
        assert categorize(60) == categorize(60.0) == ScoreCategory.MEETING

    @pytest.mark.parametrize("value", [-0.01, 100.01, -5, 250])
    def test_out_of_range_rejected(self, value):
        """Percentages outside [0, 100] raise ValidationError."""
        with pytest.raises(ValidationError) as exc_info:
            categorize(value)
        assert exc_info.value.field == "percentage"

    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
    def test_non_finite_rejected(self, value):
        """NaN and infinities raise ValidationError."""
        with pytest.raises(ValidationError):
            categorize(value)

    @pytest.mark.parametrize("value", ["50", None, True, [50]])
    def test_non_numeric_rejected(self, value):
        """Strings, None and booleans are not percentages."""
        with pytest.raises(ValidationError):
            categorize(value)


class TestScoreCategory:
    """Tests for ScoreCategory ordering and counters."""

    def test_rank_is_ordinal(self):
        """Bands rank from lowest to highest."""
        ranks = [c.rank for c in ScoreCategory]
        assert ranks == [0, 1, 2, 3]
        assert ScoreCategory.EXCEEDING.rank > ScoreCategory.MEETING.rank

    def test_values_are_wire_names(self):
        """Enum values match the JSON keys."""
        assert ScoreCategory.BELOW_EXPECTATION.value == "below_expectation"
        assert ScoreCategory("approaching") is ScoreCategory.APPROACHING

    def test_empty_distribution(self):
        """Zeroed counters for every band, in order."""
        dist = empty_distribution()
        assert list(dist) == ["below_expectation", "approaching", "meeting", "exceeding"]
        assert sum(dist.values()) == 0

    def test_empty_distribution_is_fresh(self):
        """Each call returns an independent dict."""
        first = empty_distribution()
        first["meeting"] += 1
        assert empty_distribution()["meeting"] == 0
