"""Score categorization.

Maps a percentage in [0, 100] to one of four ordinal bands:

    below_expectation   0 <= p <= 25
    approaching        25 <  p <= 50
    meeting            50 <  p <= 75
    exceeding          75 <  p <= 100

Upper bounds are inclusive, so 25, 50 and 75 fall in the lower band.
"""

from __future__ import annotations

import math
from enum import Enum

from learnboard.core.errors import ValidationError


class ScoreCategory(str, Enum):
    """Performance band, ordered from lowest to highest."""

    BELOW_EXPECTATION = "below_expectation"
    APPROACHING = "approaching"
    MEETING = "meeting"
    EXCEEDING = "exceeding"

    @property
    def rank(self) -> int:
        """Ordinal position (0 = lowest band)."""
        return list(ScoreCategory).index(self)


# (inclusive upper bound, band), checked in order
_BANDS: tuple[tuple[float, ScoreCategory], ...] = (
    (25.0, ScoreCategory.BELOW_EXPECTATION),
    (50.0, ScoreCategory.APPROACHING),
    (75.0, ScoreCategory.MEETING),
    (100.0, ScoreCategory.EXCEEDING),
)


def categorize(percentage: float) -> ScoreCategory:
    """Categorize a percentage into its score band.

    Args:
        percentage: Score percentage, 0 to 100 inclusive

    Returns:
        The ScoreCategory whose band contains the percentage

    Raises:
        ValidationError: If percentage is not a finite number in [0, 100]
    """
    if isinstance(percentage, bool) or not isinstance(percentage, (int, float)):
        raise ValidationError(
            f"Percentage must be a number, got {type(percentage).__name__}",
            field="percentage",
        )

    if not math.isfinite(percentage):
        raise ValidationError(f"Percentage must be finite, got {percentage}", field="percentage")

    if percentage < 0 or percentage > 100:
        raise ValidationError(
            f"Percentage out of range [0, 100]: {percentage}", field="percentage"
        )

    for upper, category in _BANDS:
        if percentage <= upper:
            return category

    # Unreachable: 100 is the last upper bound
    return ScoreCategory.EXCEEDING


def empty_distribution() -> dict[str, int]:
    """Zeroed band counters, in band order."""
    return {category.value: 0 for category in ScoreCategory}
