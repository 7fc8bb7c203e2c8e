"""Mapping from application errors to HTTP responses."""

from fastapi import HTTPException, status

from tenancy_watch.core.exceptions import (
    AppError,
    JobConflictError,
    JobNotFoundError,
    ValidationError,
)
from tenancy_watch.utils.logging import get_logger

LOGGER = get_logger(__name__)

_STATUS_BY_ERROR = [
    (ValidationError, status.HTTP_400_BAD_REQUEST, "ValidationError", "Invalid request parameters"),
    (JobNotFoundError, status.HTTP_404_NOT_FOUND, "JobNotFound", "No matching harvest job"),
    (JobConflictError, status.HTTP_409_CONFLICT, "JobConflict", "A harvest is already running"),
]


def to_http_exception(error: Exception, action: str) -> HTTPException:
    """Translate ``error`` raised while performing ``action``."""
    for error_type, status_code, name, message in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            LOGGER.warning(f"{action} rejected: {error}", extra={"error": str(error)})
            return HTTPException(
                status_code=status_code,
                detail={"error": name, "message": message, "detail": str(error)},
            )

    if isinstance(error, AppError):
        LOGGER.error(f"{action} failed", exc_info=True, extra={"error": str(error)})
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": type(error).__name__, "message": f"Failed to {action}", "detail": str(error)},
        )

    LOGGER.error(f"Unexpected error during {action}", exc_info=True, extra={"error": str(error)})
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "InternalError",
            "message": "An unexpected error occurred",
            "detail": "Please contact support if this persists",
        },
    )
