"""
ChargeGenerator: monthly batch that bills every active subscriber once.

Re-running for the same month is safe: subscribers that already have a
charge for the period are skipped, and the ledger's unique constraint
catches a concurrent run that slips past the check.

Usage:
    from billing.services import ChargeGenerator

    result = ChargeGenerator.generate("2025-11")
    print(result.generated, result.skipped, result.errors)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

from django.utils import timezone

from core.services import BaseService

from billing.config import BillingConfig, load_billing_config
from billing.ledger import ledger
from billing.models import Subscriber
from billing.periods import format_period, parse_period
from billing.state_machines import SubscriberStatus

from .fees import monthly_fee_for

SEASON_INACTIVE = "season_inactive"


@dataclass
class ChargeRunResult:
    """
    Summary of a charge generation run.

    Attributes:
        period: Billing month processed
        season_active: False when the season guard stopped the run
        generated: Charges inserted
        skipped: Subscribers skipped (existing charge or zero fee)
        errors: One message per subscriber that failed
    """

    period: str
    season_active: bool = True
    generated: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def signal(self) -> str | None:
        return None if self.season_active else SEASON_INACTIVE

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": self.period,
            "season_active": self.season_active,
            "signal": self.signal,
            "success": self.success,
            "generated": self.generated,
            "skipped": self.skipped,
            "errors": list(self.errors),
        }


class ChargeGenerator(BaseService):
    """Generate one Pending charge per active subscriber per month."""

    @classmethod
    def generate(
        cls,
        period: str | None = None,
        force: bool = False,
        today: date | None = None,
        config: BillingConfig | None = None,
    ) -> ChargeRunResult:
        """
        Run charge generation.

        Args:
            period: Target month "YYYY-MM" (default: current month)
            force: Ignore the season window guard
            today: Override the current date (defaults to the local date)
            config: Config snapshot (loaded once if not provided)

        Returns:
            ChargeRunResult; per-subscriber failures are collected in errors

        Raises:
            ValueError: If period is not a valid "YYYY-MM" string
        """
        logger = cls.get_logger()
        today = today or timezone.localdate()
        period = period or format_period(today)
        parse_period(period)
        config = config or load_billing_config()

        result = ChargeRunResult(period=period)

        if config.has_season and not config.is_season_active(today) and not force:
            result.season_active = False
            logger.info(
                "Season inactive, skipping charge generation",
                extra={
                    "period": period,
                    "season_start": str(config.season_start),
                    "season_end": str(config.season_end),
                },
            )
            return result

        subscribers = Subscriber.objects.filter(
            status=SubscriberStatus.ACTIVE
        ).order_by("created_at", "id")

        for subscriber in subscribers:
            try:
                if ledger.charge_exists(subscriber.id, period):
                    result.skipped += 1
                    continue

                fee = monthly_fee_for(subscriber, config)
                if fee.cents <= 0:
                    result.skipped += 1
                    continue

                _, created = ledger.record_charge(subscriber, fee.cents, period)
                if created:
                    result.generated += 1
                else:
                    result.skipped += 1
            except Exception as e:
                logger.exception(
                    "Charge generation failed for subscriber",
                    extra={"subscriber_id": str(subscriber.id), "period": period},
                )
                result.errors.append(
                    f"Error creating charge for {subscriber.full_name} "
                    f"({subscriber.id}): {e}"
                )

        logger.info(
            "Charge generation finished",
            extra={
                "period": period,
                "generated": result.generated,
                "skipped": result.skipped,
                "errors": len(result.errors),
            },
        )
        return result
