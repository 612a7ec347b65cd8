"""
Billing configuration snapshot.

Business settings live in the BillingSetting key/value table. Each batch run
loads them once into an immutable BillingConfig and passes it through the job,
so a change made mid-run never affects a run already in progress.

Keys (and defaults):
    late_fee_enabled        false
    late_fee_type           percentage
    late_fee_value          5
    late_fee_grace_days     5
    statement_payment_day   1
    season_start_date       (unset = unrestricted)
    season_end_date         (unset = unrestricted)
    price_monthly           settings.BILLING_DEFAULT_MONTHLY_FEE
    price_monthly_family    settings.BILLING_DEFAULT_FAMILY_MONTHLY_FEE

Usage:
    from billing.config import load_billing_config

    config = load_billing_config()
    if config.is_season_active(timezone.localdate()):
        ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation

from django.conf import settings

from billing.state_machines import LateFeeType

logger = logging.getLogger(__name__)

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class BillingConfig:
    """
    Immutable billing settings for one run.

    Attributes:
        late_fee_enabled: Whether the late fee engine applies fees
        late_fee_type: percentage or fixed
        late_fee_value: Percent rate, or fixed amount in currency units
        grace_days: Days after the deadline before a fee accrues
        payment_deadline_day: Day of the following month charges are due
        season_start: First day of the billing season (None = open)
        season_end: Last day of the billing season (None = open)
        price_monthly: Default monthly fee
        price_monthly_family: Monthly fee for second and later siblings
    """

    late_fee_enabled: bool = False
    late_fee_type: str = LateFeeType.PERCENTAGE
    late_fee_value: Decimal = Decimal("5")
    grace_days: int = 5
    payment_deadline_day: int = 1
    season_start: date | None = None
    season_end: date | None = None
    price_monthly: Decimal = Decimal("130.00")
    price_monthly_family: Decimal = Decimal("110.50")

    @property
    def has_season(self) -> bool:
        return self.season_start is not None or self.season_end is not None

    def is_season_active(self, today: date) -> bool:
        """Return True if today falls inside [season_start, season_end]."""
        if self.season_start is not None and today < self.season_start:
            return False
        if self.season_end is not None and today > self.season_end:
            return False
        return True


def _parse_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ValueError(f"not a boolean: {raw!r}")


def _parse_decimal(raw: str) -> Decimal:
    try:
        return Decimal(raw.strip())
    except InvalidOperation as e:
        raise ValueError(f"not a decimal: {raw!r}") from e


def _parse_date(raw: str) -> date | None:
    raw = raw.strip()
    if not raw:
        return None
    return date.fromisoformat(raw[:10])


def _parse_fee_type(raw: str) -> str:
    value = raw.strip().lower()
    if value not in LateFeeType.values:
        raise ValueError(f"unknown late fee type: {raw!r}")
    return value


# key -> (BillingConfig field, parser)
SETTING_PARSERS = {
    "late_fee_enabled": ("late_fee_enabled", _parse_bool),
    "late_fee_type": ("late_fee_type", _parse_fee_type),
    "late_fee_value": ("late_fee_value", _parse_decimal),
    "late_fee_grace_days": ("grace_days", int),
    "statement_payment_day": ("payment_deadline_day", int),
    "season_start_date": ("season_start", _parse_date),
    "season_end_date": ("season_end", _parse_date),
    "price_monthly": ("price_monthly", _parse_decimal),
    "price_monthly_family": ("price_monthly_family", _parse_decimal),
}


def build_billing_config(raw_settings: dict[str, str]) -> BillingConfig:
    """
    Build a BillingConfig from raw key/value strings.

    Unknown keys are ignored. Values that fail to parse are logged and the
    default is kept.
    """
    values = {
        "price_monthly": Decimal(str(settings.BILLING_DEFAULT_MONTHLY_FEE)),
        "price_monthly_family": Decimal(
            str(settings.BILLING_DEFAULT_FAMILY_MONTHLY_FEE)
        ),
    }
    for key, (field_name, parser) in SETTING_PARSERS.items():
        if key not in raw_settings or raw_settings[key] is None:
            continue
        try:
            values[field_name] = parser(str(raw_settings[key]))
        except ValueError as e:
            logger.warning(
                f"Ignoring invalid billing setting {key}",
                extra={"key": key, "value": raw_settings[key], "error": str(e)},
            )
    return BillingConfig(**values)


def load_billing_config() -> BillingConfig:
    """Read the BillingSetting table once and return a snapshot."""
    from billing.models import BillingSetting

    raw = dict(BillingSetting.objects.values_list("key", "value"))
    return build_billing_config(raw)
