"""Domain errors raised by the adaptive engine.

Every error carries a stable ``error_code`` and the HTTP status the API
layer renders it with (see ``adaptive_engine.main``).
"""

from typing import Any


class AdaptiveEngineError(Exception):
    """Base class for all engine errors."""

    error_code = "ADAPTIVE_ENGINE_ERROR"
    status_code = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidAttempt(AdaptiveEngineError):
    """Malformed attempt payload; rejected before any state is touched."""

    error_code = "INVALID_ATTEMPT"
    status_code = 422


class InvalidCompletion(AdaptiveEngineError):
    error_code = "INVALID_COMPLETION"
    status_code = 422


class NotFound(AdaptiveEngineError):
    """The (student, course) enrollment does not exist."""

    error_code = "NOT_FOUND"
    status_code = 404


class NoCatalogAvailable(AdaptiveEngineError):
    """No topic catalog for the course, so no recommendation can be made."""

    error_code = "NO_CATALOG_AVAILABLE"
    status_code = 409


class StorageUnavailable(AdaptiveEngineError):
    """Backing store (database or lock server) unreachable; retry with backoff."""

    error_code = "STORAGE_UNAVAILABLE"
    status_code = 503
