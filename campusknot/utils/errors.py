"""Custom exceptions for CampusKnot.

Every error carries a short, user-presentable ``message`` and an HTTP
``status_code``. ``details`` is for logs only and never leaves the server.
"""

from typing import Any, Dict, Optional


class CampusKnotError(Exception):
    """Base exception for all CampusKnot errors."""

    status_code: int = 500

    def __init__(
        self, message: str, status_code: Optional[int] = None, details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details: Dict[str, Any] = dict(details or {})


class DatabaseError(CampusKnotError):
    """A write or connection failed in a way the caller cannot fix."""


class ValidationError(CampusKnotError):
    """Input is missing, malformed or oversized."""

    status_code = 400


class AuthenticationError(CampusKnotError):
    """A credential is missing, invalid or expired."""

    status_code = 401


class ForbiddenError(CampusKnotError):
    """The caller acts on a resource it does not own or belong to."""

    status_code = 403


class NotFoundError(CampusKnotError):
    status_code = 404


class ConflictError(CampusKnotError):
    """A write collides with an existing record."""

    status_code = 409


class RateLimitError(CampusKnotError):
    status_code = 429


class ExternalServiceError(CampusKnotError):
    """Email delivery or another outbound call failed."""

    status_code = 502

    def __init__(self, message: str, service: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, details={**(details or {}), "service": service})
