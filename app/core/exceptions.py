"""
Base exception classes for application-wide error handling.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Input rejected at a service boundary
    ├── NotFoundError - Resource not found
    ├── ConflictError - State conflicts (already linked, illegal transition)
    └── ExternalServiceError - Third-party service failures

Domain apps subclass these, so views can pick an HTTP status from the base
class and render the body with to_dict().

Usage:
    from core.exceptions import NotFoundError

    try:
        ...
    except NotFoundError as e:
        return Response(e.to_dict(), status=404)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, ids, ...)
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Payment 8f3a... not found",
                "error_code": "PAYMENT_NOT_FOUND",
                "details": {"payment_id": "8f3a..."}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """Raised when input fails validation. HTTP 400."""

    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    """Raised when a requested resource does not exist. HTTP 404."""

    default_error_code: str = "NOT_FOUND"


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with the current state.

    Use for duplicate attribution and illegal state transitions. HTTP 409.
    """

    default_error_code: str = "CONFLICT"


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Log the original error for debugging; don't expose internal details to
    clients. HTTP 502 Bad Gateway.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
