"""
Shared error handling for the Tasks service.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str


class TaskServiceException(Exception):
    """Base exception for Tasks service errors."""

    status_code: int = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(error=self.message)


class ValidationError(TaskServiceException):
    """A required field is missing or malformed."""

    status_code = 400

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class NotFoundError(TaskServiceException):
    """Referenced record does not exist."""

    status_code = 404

    def __init__(self, message: str = "Not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class CacheCommunicationError(TaskServiceException):
    """Cache backend unreachable or failed mid-call.

    Raised by cache backends; the caching layer absorbs it and falls back
    to the store.
    """

    status_code = 503

    def __init__(self, message: str = "Cache unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("CACHE_UNAVAILABLE", message, details)


class StoreError(TaskServiceException):
    """Persistence layer failure."""

    status_code = 500

    def __init__(self, message: str = "Store error", details: Optional[Dict[str, Any]] = None):
        super().__init__("STORE_ERROR", message, details)
