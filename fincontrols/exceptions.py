"""
Typed errors for the financial controls services.

Every error carries a stable ``code`` and the HTTP status the API layer
answers with, so callers catch by type and clients branch on ``code``.
The FastAPI app renders them as ``{"error": {"code", "message", "details"}}``.
"""

from typing import Any, Optional


class FinancialControlsError(Exception):
    """Base class. Subclasses set ``code`` and ``status_code``."""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details or {}

    def to_dict(self) -> dict:
        body: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return {"error": body}


class ValidationError(FinancialControlsError):
    """Malformed input: missing field, negative money, bad policy data."""

    code = "VALIDATION_ERROR"
    status_code = 422


class NotFoundError(FinancialControlsError):
    code = "NOT_FOUND"
    status_code = 404


class AuthorizationError(FinancialControlsError):
    code = "INSUFFICIENT_PERMISSIONS"
    status_code = 403


class ConflictError(FinancialControlsError):
    """Transition attempted on a record that is no longer in the expected state."""

    code = "CONFLICT"
    status_code = 409


class DependencyError(FinancialControlsError):
    """The data store or the notification sink failed."""

    code = "DEPENDENCY_ERROR"
    status_code = 503
