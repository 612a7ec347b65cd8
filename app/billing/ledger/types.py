"""
Data types for ledger operations.

Types:
    Money: Monetary amount in cents
    RecordGatewayPaymentParams: A reconciled gateway payment to insert
    RecordLateFeeParams: A late fee to append

Functions:
    gateway_correlation_key: Dedupe key for a gateway payment

Usage:
    from billing.ledger.types import Money

    fee = Money.from_decimal("6.50")
    print(fee)  # "$6.50"
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

CENT = Decimal("0.01")


def gateway_correlation_key(
    gateway: str,
    order_id: str | None = None,
    operation_id: str | None = None,
) -> str:
    """
    Dedupe key for a gateway payment.

    Keyed on the order id when there is one, so a webhook and a return
    redirect for the same order collide even when only one of them carries
    the gateway operation id. Falls back to the operation id.

    Raises:
        ValueError: If neither id is given
    """
    if order_id:
        return f"{gateway}:order:{order_id}"
    if operation_id:
        return f"{gateway}:{operation_id}"
    raise ValueError("order_id or operation_id is required")


@dataclass(frozen=True)
class Money:
    """
    A monetary amount stored in cents.

    Amounts are kept as integer cents so sums never drift. Conversion from
    decimals rounds half up to the nearest cent.

    Example:
        Money.from_decimal(Decimal("130")).cents  # 13000
        Money(650).amount                         # Decimal("6.50")
    """

    cents: int

    @classmethod
    def from_decimal(cls, value: Decimal | str | int) -> Money:
        amount = Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
        return cls(int(amount * 100))

    @property
    def amount(self) -> Decimal:
        return (Decimal(self.cents) / 100).quantize(CENT)

    def __str__(self) -> str:
        return f"${self.amount}"

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.cents + other.cents)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.cents - other.cents)


@dataclass
class RecordGatewayPaymentParams:
    """
    Parameters for inserting an approved gateway payment.

    Exactly one of subscriber_id / pending_subject_ref is set: a confirmed
    subscriber gets the payment directly, a pending one has it parked under
    pending_subject_ref until staff confirmation.

    Attributes:
        correlation_key: Unique dedupe key, see gateway_correlation_key()
        amount_cents: Amount paid in cents
        kind: enrollment, monthly or custom
        method: Gateway the money arrived through
        subscriber_id: Confirmed subscriber (optional)
        pending_subject_ref: Pending subscriber id (optional)
        period: Billing month, if any
        gateway_order_id: Order id echoed by the gateway
        payment_date: Business date (defaults to today)
        notes: Free text for staff
        metadata: Correlation markers
    """

    correlation_key: str
    amount_cents: int
    kind: str
    method: str
    subscriber_id: uuid.UUID | None = None
    pending_subject_ref: str | None = None
    period: str | None = None
    gateway_order_id: str | None = None
    payment_date: date | None = None
    notes: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.amount_cents <= 0:
            raise ValueError("amount_cents must be positive")
        if not self.correlation_key:
            raise ValueError("correlation_key is required")
        if (self.subscriber_id is None) == (self.pending_subject_ref is None):
            raise ValueError(
                "exactly one of subscriber_id and pending_subject_ref is required"
            )


@dataclass
class RecordLateFeeParams:
    subscriber_id: uuid.UUID
    period: str
    original_amount_cents: int
    fee_amount_cents: int
    fee_type: str
    rate: Decimal
    days_overdue: int
    payment_id: uuid.UUID | None = None
    is_reapplication: bool = False

    def __post_init__(self) -> None:
        if self.fee_amount_cents <= 0:
            raise ValueError("fee_amount_cents must be positive")
