from __future__ import annotations

from typing import Any, Optional


class DomainError(Exception):
    """Base exception for business rule violations.

    ``details`` carries structured data the UI needs to render a message
    (window boundaries, remaining balance, ...).
    """

    http_status = 400

    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, **self.details}


class ValidationError(DomainError):
    """Raised when input data is missing or malformed."""

    http_status = 400


class NotFoundError(DomainError):
    """Raised when a referenced entity does not exist."""

    http_status = 404


class ForbiddenError(DomainError):
    """Raised on role/ownership/organization mismatch or a closed time window."""

    http_status = 403


class PreconditionError(DomainError):
    """Raised when the record is in the wrong state for the transition."""

    http_status = 409


class ConflictError(DomainError):
    """Raised when a concurrent write won, or a commit would break a balance invariant."""

    http_status = 409


class AuthenticationError(DomainError):
    """Raised at the HTTP edge when no caller identity is present."""

    http_status = 401
