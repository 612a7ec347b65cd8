"""
LateFeeEngine: appends a late fee to charges unpaid past their deadline.

For each Pending/Overdue charge:

    mark Pending charges Overdue once days_overdue > 0
    deadline     = payment_deadline_day of the month after the period
    days_overdue = today - deadline
    skip if days_overdue <= grace_days
    skip if a fee exists for (subscriber, period), unless force
    fee          = amount * rate / 100 (percentage) or rate (fixed)
    skip if fee <= 0

Example:
    rate 5%, grace 5, deadline day 1, charge 130.00 for 2025-11
    2025-12-06 -> 5 days overdue, no fee
    2025-12-07 -> 6 days overdue, fee 6.50
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

from django.utils import timezone

from core.services import BaseService

from billing.config import BillingConfig, load_billing_config
from billing.ledger import Money, RecordLateFeeParams, ledger
from billing.periods import deadline_date, parse_period
from billing.state_machines import LateFeeType, PaymentStatus


@dataclass
class LateFeeRunResult:
    success: bool = True
    enabled: bool = True
    applied: int = 0
    skipped: int = 0
    marked_overdue: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "enabled": self.enabled,
            "applied": self.applied,
            "skipped": self.skipped,
            "marked_overdue": self.marked_overdue,
            "errors": list(self.errors),
        }


def compute_late_fee(original_amount_cents: int, fee_type: str, rate: Decimal) -> int:
    """
    Return the late fee in cents (may be <= 0, meaning no fee).

    Percentage fees round half up to the cent; fixed fees ignore the
    original amount.
    """
    if fee_type == LateFeeType.FIXED:
        return Money.from_decimal(rate).cents
    original = Decimal(original_amount_cents) / 100
    return Money.from_decimal(original * rate / 100).cents


def days_overdue(period: str, payment_day: int, today: date) -> int:
    return (today - deadline_date(period, payment_day)).days


class LateFeeEngine(BaseService):
    """Apply late fees to overdue charges, once per (subscriber, period)."""

    @classmethod
    def apply(
        cls,
        period: str | None = None,
        force: bool = False,
        today: date | None = None,
        config: BillingConfig | None = None,
    ) -> LateFeeRunResult:
        """
        Scan overdue charges and append late fees.

        Args:
            period: Only consider charges for this month (default: all)
            force: Append a fee even if one exists for the period
            today: Override the current date
            config: Config snapshot (loaded once if not provided)

        Raises:
            ValueError: If period is given but not a valid "YYYY-MM" string
        """
        logger = cls.get_logger()
        if period:
            parse_period(period)
        today = today or timezone.localdate()
        config = config or load_billing_config()

        result = LateFeeRunResult(enabled=config.late_fee_enabled)
        if not config.late_fee_enabled:
            logger.info("Late fees disabled, only marking overdue charges")

        for charge in ledger.overdue_candidates(period):
            try:
                overdue = days_overdue(charge.period, config.payment_deadline_day, today)
                if overdue > 0 and charge.status == PaymentStatus.PENDING:
                    ledger.mark_overdue(charge.id)
                    result.marked_overdue += 1

                if not config.late_fee_enabled:
                    continue
                if overdue <= config.grace_days:
                    result.skipped += 1
                    continue

                already_applied = ledger.late_fee_exists(charge.subscriber_id, charge.period)
                if already_applied and not force:
                    result.skipped += 1
                    continue

                fee_cents = compute_late_fee(
                    charge.amount_cents, config.late_fee_type, config.late_fee_value
                )
                if fee_cents <= 0:
                    result.skipped += 1
                    continue

                _, created = ledger.record_late_fee(
                    RecordLateFeeParams(
                        payment_id=charge.id,
                        subscriber_id=charge.subscriber_id,
                        period=charge.period,
                        original_amount_cents=charge.amount_cents,
                        fee_amount_cents=fee_cents,
                        fee_type=config.late_fee_type,
                        rate=config.late_fee_value,
                        days_overdue=overdue,
                        is_reapplication=already_applied,
                    )
                )
                if created:
                    result.applied += 1
                else:
                    result.skipped += 1
            except Exception as e:
                logger.exception(
                    "Late fee failed for charge",
                    extra={"payment_id": str(charge.id), "period": charge.period},
                )
                result.errors.append(f"Error applying late fee to charge {charge.id}: {e}")

        result.success = not result.errors
        logger.info(
            "Late fee run finished",
            extra={
                "period": period,
                "applied": result.applied,
                "skipped": result.skipped,
                "marked_overdue": result.marked_overdue,
                "errors": len(result.errors),
            },
        )
        return result
