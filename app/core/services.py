"""
Base service layer patterns.

- ServiceResult: Standard result wrapper for expected success/failure
- BaseService: Base class with logging and transaction helpers

Pattern Comparison:
    - ServiceResult: Use for expected failures (validation, gateway refusals)
    - Exceptions: Use for unexpected failures (database errors, bugs)

Usage:
    from core.services import BaseService, ServiceResult

    class CheckoutService(BaseService):
        @classmethod
        def create_order(cls, params) -> ServiceResult[CreateOrderResult]:
            if params.amount <= 0:
                return ServiceResult.failure("Amount must be positive", "ORDER_VALIDATION_ERROR")
            ...
            return ServiceResult.success(result)

    # In view
    result = CheckoutService.create_order(params)
    if result.success:
        return Response(..., status=201)
    return Response(result.to_response(), status=400)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for client handling
        errors: Field-level errors for validation failures
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Example:
            return ServiceResult.failure(
                "Description is required",
                error_code="ORDER_VALIDATION_ERROR",
                errors={"description": ["This field may not be blank."]},
            )
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
        )

    @classmethod
    def from_exception(cls, exc: Exception, error_code: str | None = None) -> ServiceResult[T]:
        """
        Create a failed result from an exception.

        Application errors keep their message and error code; anything else
        falls back to str(exc) and the upper-cased class name.
        """
        return cls(
            success=False,
            error=getattr(exc, "message", str(exc)),
            error_code=error_code
            or getattr(exc, "error_code", None)
            or exc.__class__.__name__.upper(),
        )

    def to_response(self) -> dict[str, Any]:
        """Convert to a dict suitable for returning from a DRF view."""
        if self.success:
            return {"success": True, "data": self.data}

        response: dict[str, Any] = {
            "success": False,
            "error": self.error,
        }
        if self.error_code:
            response["error_code"] = self.error_code
        if self.errors:
            response["errors"] = self.errors
        return response

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Design Notes:
        - Use @staticmethod or @classmethod (no instance state)
        - Use ServiceResult for expected failures
        - Raise exceptions for unexpected failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Logger named after the service class for easy filtering."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        Example:
            with cls.atomic():
                order = Order.objects.create(...)
                # If a later statement fails, the order is rolled back too
        """
        with transaction.atomic():
            yield

    @classmethod
    def handle_exception(
        cls,
        exc: Exception,
        context: str = "",
        log_level: int = logging.ERROR,
    ) -> ServiceResult:
        """
        Log an exception and convert it to a failed ServiceResult.

        Example:
            try:
                adapter.create_payment_link(request)
            except GatewayError as e:
                return cls.handle_exception(e, "payment link", logging.WARNING)
        """
        message = f"{context}: {exc}" if context else str(exc)
        cls.get_logger().log(log_level, message, exc_info=log_level >= logging.ERROR)
        return ServiceResult.from_exception(exc)
