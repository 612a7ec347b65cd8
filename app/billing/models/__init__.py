"""
Billing models.

Usage:
    from billing.models import Payment, LateFee, Order, Subscriber
"""

from .late_fee import LateFee
from .order import ORDER_ID_MAX_LENGTH, Order
from .payment import Payment
from .setting import BillingSetting
from .subscriber import PendingSubscriber, Subscriber

__all__ = [
    "BillingSetting",
    "LateFee",
    "ORDER_ID_MAX_LENGTH",
    "Order",
    "Payment",
    "PendingSubscriber",
    "Subscriber",
]
