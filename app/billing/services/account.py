"""
Account balance for a subscriber.

    balance = total charges + total late fees - total paid

Charges count unless Rejected or Cancelled. Paid counts non-charge payments
that are Approved or Pending.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from django.db.models import Sum
from django.utils import timezone

from billing.config import BillingConfig, load_billing_config
from billing.exceptions import PaymentNotFound
from billing.ledger import Money
from billing.models import LateFee, Payment, Subscriber
from billing.periods import deadline_date
from billing.state_machines import PaymentKind, PaymentStatus

VOID_STATUSES = (PaymentStatus.REJECTED, PaymentStatus.CANCELLED)
PAID_STATUSES = (PaymentStatus.APPROVED, PaymentStatus.PENDING)
OPEN_STATUSES = (PaymentStatus.PENDING, PaymentStatus.OVERDUE)


@dataclass
class AccountBalance:
    subscriber_id: uuid.UUID
    total_charges: Money
    total_late_fees: Money
    total_paid: Money
    pending_charges: int = 0
    overdue_periods: list[str] = field(default_factory=list)

    @property
    def balance(self) -> Money:
        return self.total_charges + self.total_late_fees - self.total_paid

    def to_dict(self) -> dict[str, Any]:
        return {
            "subscriber_id": str(self.subscriber_id),
            "total_charges": str(self.total_charges.amount),
            "total_late_fees": str(self.total_late_fees.amount),
            "total_paid": str(self.total_paid.amount),
            "balance": str(self.balance.amount),
            "pending_charges": self.pending_charges,
            "overdue_periods": list(self.overdue_periods),
        }


def _sum_cents(queryset, field_name: str) -> Money:
    return Money(queryset.aggregate(total=Sum(field_name))["total"] or 0)


def account_balance(
    subscriber_id: uuid.UUID,
    today: date | None = None,
    config: BillingConfig | None = None,
) -> AccountBalance:
    """
    Compute the balance of a subscriber.

    Raises:
        PaymentNotFound: If the subscriber doesn't exist
    """
    if not Subscriber.objects.filter(id=subscriber_id).exists():
        raise PaymentNotFound(
            f"Subscriber {subscriber_id} not found",
            error_code="SUBSCRIBER_NOT_FOUND",
            details={"subscriber_id": str(subscriber_id)},
        )
    today = today or timezone.localdate()
    config = config or load_billing_config()

    payments = Payment.objects.filter(subscriber_id=subscriber_id)
    charges = payments.filter(kind=PaymentKind.CHARGE).exclude(status__in=VOID_STATUSES)
    paid = payments.exclude(kind=PaymentKind.CHARGE).filter(status__in=PAID_STATUSES)
    open_charges = charges.filter(status__in=OPEN_STATUSES)

    overdue_periods = sorted(
        {
            period
            for period in open_charges.exclude(period__isnull=True).values_list("period", flat=True)
            if today > deadline_date(period, config.payment_deadline_day)
        }
    )

    return AccountBalance(
        subscriber_id=subscriber_id,
        total_charges=_sum_cents(charges, "amount_cents"),
        total_late_fees=_sum_cents(
            LateFee.objects.filter(subscriber_id=subscriber_id), "fee_amount_cents"
        ),
        total_paid=_sum_cents(paid, "amount_cents"),
        pending_charges=open_charges.count(),
        overdue_periods=overdue_periods,
    )
