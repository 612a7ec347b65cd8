"""
Payment ledger: the canonical store of Payment and LateFee rows.

Usage:
    from billing.ledger import ledger, Money

    payment, created = ledger.record_charge(subscriber, 13000, "2025-11")
"""

from .services import PaymentLedger, ledger
from .types import (
    Money,
    RecordGatewayPaymentParams,
    RecordLateFeeParams,
    gateway_correlation_key,
)

__all__ = [
    "Money",
    "PaymentLedger",
    "RecordGatewayPaymentParams",
    "RecordLateFeeParams",
    "gateway_correlation_key",
    "ledger",
]
