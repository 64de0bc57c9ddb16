"""
Domain error taxonomy for the task engine.

Every error carries the HTTP status it is rendered with at the API
boundary, so services can raise without knowing about FastAPI.
"""

from typing import Optional, Dict, Any


class VendorConnectError(Exception):
    """Base exception for all domain errors."""

    status_code: int = 500

    def __init__(self, message: str, errors: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": False, "message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(VendorConnectError):
    """Malformed or missing input."""
    status_code = 422


class BusinessRuleError(VendorConnectError):
    """Request is well-formed but violates a business rule."""
    status_code = 400


class AuthorizationError(VendorConnectError):
    """Role, ownership or strict-deadline denial."""
    status_code = 403


class NotFoundError(VendorConnectError):
    """Referenced entity does not exist or is not visible."""
    status_code = 404


class CollaboratorUnavailable(VendorConnectError):
    """The store or the language-model oracle failed or timed out."""
    status_code = 503


class AssistantTimeout(CollaboratorUnavailable):
    """The assistant exceeded its wall-clock budget."""
    status_code = 504
