"""Core engine modules.

- score_categorizer: percentage -> score band
- enrollment_manager: enrollment lifecycle and stats
- performance_aggregator: streaming quiz-attempt rollups
- leaderboard: deterministic ranking
- models: shared record types
- errors: error taxonomy
"""

__all__ = [
    "score_categorizer",
    "enrollment_manager",
    "performance_aggregator",
    "leaderboard",
    "models",
    "errors",
]
