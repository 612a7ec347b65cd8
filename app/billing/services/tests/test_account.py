"""Tests for account balance computation."""

import uuid
from datetime import date

import pytest

from billing.exceptions import PaymentNotFound
from billing.services import account_balance
from billing.state_machines import PaymentKind, PaymentStatus
from billing.tests.factories import ChargeFactory, GatewayPaymentFactory, LateFeeFactory


@pytest.fixture
def account(db, subscriber, pending_charge, overdue_charge):
    """Two open charges, one late fee, one payment received, plus void rows."""
    ChargeFactory(subscriber=subscriber, period="2025-09", status=PaymentStatus.CANCELLED)
    LateFeeFactory(payment=overdue_charge)
    GatewayPaymentFactory(subscriber=subscriber, amount_cents=13000, kind=PaymentKind.MONTHLY)
    GatewayPaymentFactory(subscriber=subscriber, amount_cents=9999, status=PaymentStatus.REJECTED)
    return subscriber


class TestAccountBalance:
    def test_totals(self, account, billing_config):
        balance = account_balance(account.id, today=date(2025, 12, 15), config=billing_config)

        assert balance.total_charges.cents == 26000
        assert balance.total_late_fees.cents == 650
        assert balance.total_paid.cents == 13000
        assert balance.balance.cents == 13650
        assert balance.pending_charges == 2

    def test_overdue_periods(self, account, billing_config):
        early = account_balance(account.id, today=date(2025, 11, 15), config=billing_config)
        late = account_balance(account.id, today=date(2025, 12, 15), config=billing_config)

        assert early.overdue_periods == ["2025-10"]
        assert late.overdue_periods == ["2025-10", "2025-11"]

    def test_to_dict(self, account, billing_config):
        data = account_balance(account.id, today=date(2025, 12, 15), config=billing_config).to_dict()

        assert data["subscriber_id"] == str(account.id)
        assert data["total_charges"] == "260.00"
        assert data["total_late_fees"] == "6.50"
        assert data["total_paid"] == "130.00"
        assert data["balance"] == "136.50"

    def test_empty_account(self, subscriber, billing_config):
        balance = account_balance(subscriber.id, config=billing_config)

        assert balance.balance.cents == 0
        assert balance.overdue_periods == []

    def test_settled_charge_not_open(self, subscriber, billing_config):
        ChargeFactory(subscriber=subscriber, status=PaymentStatus.APPROVED)

        balance = account_balance(subscriber.id, today=date(2026, 1, 1), config=billing_config)

        assert balance.total_charges.cents == 13000
        assert balance.pending_charges == 0
        assert balance.overdue_periods == []

    def test_unknown_subscriber(self, db):
        with pytest.raises(PaymentNotFound) as exc_info:
            account_balance(uuid.uuid4())

        assert exc_info.value.error_code == "SUBSCRIBER_NOT_FOUND"
