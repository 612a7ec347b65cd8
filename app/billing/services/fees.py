"""
Monthly fee rule.

Order of precedence:
    1. Per-subscriber custom fee
    2. Scholarship subscribers pay nothing
    3. Second and later siblings of a family pay price_monthly_family
    4. Everyone else pays price_monthly
"""

from __future__ import annotations

from billing.config import BillingConfig
from billing.ledger import Money
from billing.models import Subscriber
from billing.state_machines import SubscriberStatus

BILLABLE_FAMILY_STATUSES = (SubscriberStatus.ACTIVE, SubscriberStatus.SCHOLARSHIP)


def family_position(subscriber: Subscriber) -> int:
    """Zero-based position of a subscriber among confirmed siblings, oldest first."""
    if not subscriber.family_ref:
        return 0
    sibling_ids = list(
        Subscriber.objects.filter(
            family_ref=subscriber.family_ref,
            status__in=BILLABLE_FAMILY_STATUSES,
        )
        .order_by("created_at", "id")
        .values_list("id", flat=True)
    )
    try:
        return sibling_ids.index(subscriber.id)
    except ValueError:
        return 0


def monthly_fee_for(subscriber: Subscriber, config: BillingConfig) -> Money:
    if subscriber.custom_monthly_fee_cents is not None:
        return Money(subscriber.custom_monthly_fee_cents)
    if subscriber.status == SubscriberStatus.SCHOLARSHIP:
        return Money(0)
    if family_position(subscriber) >= 1:
        return Money.from_decimal(config.price_monthly_family)
    return Money.from_decimal(config.price_monthly)
