"""Translate engine errors into HTTP responses."""

from fastapi import HTTPException, status

from learnboard.core.errors import (
    ConflictError,
    LearnboardError,
    NotFoundError,
    ValidationError,
)


def to_http_exception(error: LearnboardError) -> HTTPException:
    """Map an engine error onto an HTTPException with the same message."""
    if isinstance(error, ValidationError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(error, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, ConflictError):
        code = status.HTTP_409_CONFLICT
    else:
        # AggregationError and anything unexpected
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(error))
