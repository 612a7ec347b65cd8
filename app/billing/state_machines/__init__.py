"""
Billing enums.

Usage:
    from billing.state_machines import PaymentStatus, PaymentKind
"""

from .states import (
    Gateway,
    LateFeeType,
    OrderKind,
    PaymentKind,
    PaymentMethod,
    PaymentStatus,
    SubscriberStatus,
)

__all__ = [
    "Gateway",
    "LateFeeType",
    "OrderKind",
    "PaymentKind",
    "PaymentMethod",
    "PaymentStatus",
    "SubscriberStatus",
]
