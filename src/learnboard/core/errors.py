"""Error taxonomy shared by the engine components.

- ValidationError: malformed status, out-of-range progress or percentage
- NotFoundError: missing record, or a storage read/write that failed
- ConflictError: concurrent write the atomic upsert could not resolve
- AggregationError: malformed attempt row met during a streaming pass
"""

from __future__ import annotations


class LearnboardError(Exception):
    """Base class for engine errors."""

    pass


class ValidationError(LearnboardError):
    """Input rejected before any write."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class NotFoundError(LearnboardError):
    """Referenced record does not exist or could not be loaded."""

    pass


class ConflictError(LearnboardError):
    """Concurrent write could not be applied."""

    pass


class AggregationError(LearnboardError):
    """Aggregation aborted on an unreadable attempt row."""

    def __init__(self, message: str, attempt_id: str | None = None):
        self.attempt_id = attempt_id
        super().__init__(message)


class AggregationCancelledError(AggregationError):
    """Aggregation aborted because the caller cancelled it."""

    pass
