"""
Pytest fixtures for billing tests.

Usage:
    def test_late_fee(late_fee_config, pending_charge):
        result = LateFeeEngine.apply(today=date(2025, 12, 7), config=late_fee_config)
        assert result.applied == 1
"""

from decimal import Decimal

import pytest
from rest_framework.test import APIRequestFactory

from billing.config import BillingConfig
from billing.state_machines import LateFeeType, PaymentStatus
from billing.tests.factories import (
    ChargeFactory,
    PendingSubscriberFactory,
    StaffUserFactory,
    SubscriberFactory,
)


# =============================================================================
# Subscribers
# =============================================================================


@pytest.fixture
def subscriber(db):
    return SubscriberFactory()


@pytest.fixture
def pending_subscriber(db):
    return PendingSubscriberFactory()


@pytest.fixture
def staff_user(db):
    return StaffUserFactory()


# =============================================================================
# Charges
# =============================================================================


@pytest.fixture
def pending_charge(db, subscriber):
    """Pending 130.00 charge for 2025-11."""
    return ChargeFactory(subscriber=subscriber, period="2025-11")


@pytest.fixture
def overdue_charge(db, subscriber):
    return ChargeFactory(
        subscriber=subscriber,
        period="2025-10",
        status=PaymentStatus.OVERDUE,
    )


# =============================================================================
# Config Snapshots
# =============================================================================


@pytest.fixture
def billing_config():
    """Defaults: late fees off, no season window."""
    return BillingConfig()


@pytest.fixture
def late_fee_config():
    """5% late fee, 5 grace days, deadline on the 1st of the next month."""
    return BillingConfig(
        late_fee_enabled=True,
        late_fee_type=LateFeeType.PERCENTAGE,
        late_fee_value=Decimal("5"),
        grace_days=5,
        payment_deadline_day=1,
    )


# =============================================================================
# HTTP
# =============================================================================


@pytest.fixture
def api_rf():
    return APIRequestFactory()


@pytest.fixture
def webhook_secrets(settings):
    """Secrets used to sign and verify gateway notifications."""
    settings.PAGUELOFACIL_WEBHOOK_SECRET = "pf-webhook-secret"
    settings.YAPPY_SECRET_KEY = "yappy-secret"
    settings.YAPPY_DOMAIN_URL = "https://club.example.com"
    return settings
