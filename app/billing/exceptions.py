"""
Billing-specific exceptions.

All billing exceptions inherit from the core exception base class so views
can render them consistently via to_dict().

Exception Hierarchy:
    BillingError (base)
    ├── OrderValidationError - createOrder input rejected at the boundary
    ├── OrderNotFound - OrderRegistry lookup miss
    ├── InvalidNotification - gateway payload cannot be correlated
    ├── InvalidSignature - gateway payload failed authenticity checks
    ├── PaymentNotFound - ledger lookup miss
    ├── PaymentAlreadyLinked - payment already attributed to a subscriber
    ├── InvalidPaymentTransition - illegal status change
    └── GatewayError - gateway HTTP call failed or returned an error
        └── GatewayNotConfigured - credentials missing

Usage:
    from billing.exceptions import OrderValidationError

    raise OrderValidationError(
        "Description is required",
        details={"description": ["This field may not be blank."]},
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)

if TYPE_CHECKING:
    from typing import Any


class BillingError(BaseApplicationError):
    """Base exception for all billing operations."""

    default_error_code: str = "BILLING_ERROR"


class OrderValidationError(BillingError, ValidationError):
    """
    Raised when order creation input is invalid.

    Covers amounts below the minimum, empty descriptions and order ids that
    are empty or longer than the gateway limit.
    """

    default_error_code: str = "ORDER_VALIDATION_ERROR"


class OrderNotFound(BillingError, NotFoundError):
    default_error_code: str = "ORDER_NOT_FOUND"


class InvalidNotification(BillingError, ValidationError):
    """
    Raised when a gateway notification carries nothing to correlate on.

    A notification with neither an operation id nor an order id cannot be
    deduplicated, so it is refused instead of risking a double booking.
    """

    default_error_code: str = "INVALID_NOTIFICATION"


class InvalidSignature(BillingError, ValidationError):
    """
    Raised when a gateway notification fails its authenticity check.

    Also raised when the verification secret is not configured, so an
    unverifiable notification never reaches the ledger. HTTP 401.
    """

    default_error_code: str = "INVALID_SIGNATURE"


class PaymentNotFound(BillingError, NotFoundError):
    default_error_code: str = "PAYMENT_NOT_FOUND"


class PaymentAlreadyLinked(BillingError, ConflictError):
    default_error_code: str = "PAYMENT_ALREADY_LINKED"


class InvalidPaymentTransition(BillingError, ConflictError):
    """
    Raised when a status change is not allowed from the current state.

    Wraps django_fsm.TransitionNotAllowed so callers only deal with
    BaseApplicationError subclasses.
    """

    default_error_code: str = "INVALID_PAYMENT_TRANSITION"

    def __init__(
        self,
        payment_id: Any,
        current_status: str,
        action: str,
    ):
        self.payment_id = payment_id
        self.current_status = current_status
        self.action = action
        super().__init__(
            f"Cannot {action} payment {payment_id} in status '{current_status}'",
            details={
                "payment_id": str(payment_id),
                "current_status": current_status,
                "action": action,
            },
        )


class GatewayError(BillingError, ExternalServiceError):
    """
    Raised when a payment gateway call fails.

    Network errors, non-2xx responses and gateway-level rejections all
    surface as this error with the gateway name in details.
    """

    default_error_code: str = "GATEWAY_ERROR"


class GatewayNotConfigured(GatewayError):
    default_error_code: str = "GATEWAY_NOT_CONFIGURED"
