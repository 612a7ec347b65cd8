"""
Celery tasks for billing batch jobs.

Schedules are stored in django-celery-beat (see migration
0002_add_billing_schedules):
    - generate_monthly_charges: 1st of each month
    - apply_late_fees: daily
    - purge_expired_orders: daily

Usage:
    from billing.tasks import generate_monthly_charges

    generate_monthly_charges.delay("2025-11")
"""

from __future__ import annotations

import logging

from celery import shared_task

from billing.services import ChargeGenerator, LateFeeEngine, OrderRegistry

logger = logging.getLogger(__name__)


@shared_task
def generate_monthly_charges(period: str | None = None, force: bool = False) -> dict:
    """
    Generate monthly charges for the given period (default: current month).

    Returns:
        ChargeRunResult as a dict
    """
    result = ChargeGenerator.generate(period=period, force=force)
    if result.errors:
        logger.warning(
            "Charge generation finished with errors",
            extra={"period": result.period, "errors": result.errors},
        )
    return result.to_dict()


@shared_task
def apply_late_fees(period: str | None = None, force: bool = False) -> dict:
    result = LateFeeEngine.apply(period=period, force=force)
    if result.errors:
        logger.warning(
            "Late fee run finished with errors",
            extra={"period": period, "errors": result.errors},
        )
    return result.to_dict()


@shared_task
def purge_expired_orders() -> dict:
    """Delete orders past their expiry."""
    deleted = OrderRegistry.purge_expired()
    return {"deleted": deleted}
