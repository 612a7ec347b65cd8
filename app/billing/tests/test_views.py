"""
Tests for billing API views.

Views are called directly through APIRequestFactory with
force_authenticate.
"""

import uuid
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
from freezegun import freeze_time
from rest_framework.test import force_authenticate

from billing.adapters import PaymentLinkResult
from billing.exceptions import GatewayError
from billing.models import LateFee, Order, Payment
from billing.state_machines import PaymentKind, PaymentStatus
from billing.tests.factories import (
    BillingSettingFactory,
    GatewayPaymentFactory,
    StaffUserFactory,
    SubscriberFactory,
)
from billing.views import (
    AccountBalanceView,
    ApplyLateFeesView,
    CreateOrderView,
    GenerateChargesView,
    LinkPaymentView,
)


@pytest.fixture
def member_user(db):
    return StaffUserFactory(is_staff=False)


@pytest.fixture
def mock_adapter():
    adapter = MagicMock()
    adapter.minimum_amount = Decimal("1.00")
    adapter.create_payment_link.return_value = PaymentLinkResult(
        payment_url="https://sandbox.paguelofacil.com/pay/abc",
    )
    with patch("billing.services.checkout.get_adapter", return_value=adapter):
        yield adapter


def call(view_class, request, user=None, **kwargs):
    if user is not None:
        force_authenticate(request, user=user)
    return view_class.as_view()(request, **kwargs)


# =============================================================================
# Create Order
# =============================================================================


class TestCreateOrderView:
    path = "/api/v1/billing/orders/"

    def payload(self, **overrides):
        payload = {
            "gateway": "paguelofacil",
            "amount": "130.00",
            "description": "Mensualidad noviembre",
            "order_id": "ord-00001",
            "return_url": "https://example.com/pagos/retorno",
            "subject_ref": "8f3a",
            "kind": "monthly",
            "extra": {"period": "2025-11"},
        }
        payload.update(overrides)
        return payload

    def test_creates_order(self, api_rf, member_user, mock_adapter):
        request = api_rf.post(self.path, self.payload(), format="json")

        response = call(CreateOrderView, request, user=member_user)

        assert response.status_code == 201
        assert response.data == {
            "order_id": "ord-00001",
            "payment_url": "https://sandbox.paguelofacil.com/pay/abc",
            "gateway": "paguelofacil",
        }
        assert Order.objects.filter(order_id="ord-00001").exists()

    def test_requires_authentication(self, api_rf, db):
        response = call(CreateOrderView, api_rf.post(self.path, self.payload(), format="json"))

        assert response.status_code == 403

    def test_serializer_validation(self, api_rf, member_user, mock_adapter):
        request = api_rf.post(
            self.path,
            self.payload(gateway="bitcoin", order_id="x" * 16),
            format="json",
        )

        response = call(CreateOrderView, request, user=member_user)

        assert response.status_code == 400
        assert "gateway" in response.data
        assert "order_id" in response.data

    def test_service_validation(self, api_rf, member_user, mock_adapter):
        request = api_rf.post(self.path, self.payload(description=""), format="json")

        response = call(CreateOrderView, request, user=member_user)

        assert response.status_code == 400
        assert response.data["error_code"] == "ORDER_VALIDATION_ERROR"
        assert "description" in response.data["errors"]

    def test_gateway_error(self, api_rf, member_user, mock_adapter):
        mock_adapter.create_payment_link.side_effect = GatewayError("PagueloFacil HTTP 500")
        request = api_rf.post(self.path, self.payload(), format="json")

        response = call(CreateOrderView, request, user=member_user)

        assert response.status_code == 502
        assert response.data["error_code"] == "GATEWAY_ERROR"


# =============================================================================
# Batch Jobs
# =============================================================================


class TestGenerateChargesView:
    path = "/api/v1/billing/charges/generate/"

    def test_generates(self, api_rf, staff_user):
        SubscriberFactory.create_batch(2)
        request = api_rf.post(self.path, {"period": "2025-11"}, format="json")

        response = call(GenerateChargesView, request, user=staff_user)

        assert response.status_code == 200
        assert response.data["period"] == "2025-11"
        assert response.data["generated"] == 2
        assert response.data["success"] is True
        assert Payment.objects.filter(kind=PaymentKind.CHARGE).count() == 2

    def test_season_signal(self, api_rf, staff_user, subscriber):
        BillingSettingFactory(key="season_end_date", value="2000-01-01")
        request = api_rf.post(self.path, {"period": "2025-11"}, format="json")

        response = call(GenerateChargesView, request, user=staff_user)

        assert response.data["season_active"] is False
        assert response.data["signal"] == "season_inactive"
        assert Payment.objects.count() == 0

    def test_invalid_period(self, api_rf, staff_user):
        request = api_rf.post(self.path, {"period": "2025-13"}, format="json")

        response = call(GenerateChargesView, request, user=staff_user)

        assert response.status_code == 400
        assert "period" in response.data

    def test_staff_only(self, api_rf, member_user):
        request = api_rf.post(self.path, {}, format="json")

        response = call(GenerateChargesView, request, user=member_user)

        assert response.status_code == 403


class TestApplyLateFeesView:
    path = "/api/v1/billing/late-fees/apply/"

    @freeze_time("2025-12-07 17:00:00")
    def test_applies(self, api_rf, staff_user, pending_charge):
        BillingSettingFactory(key="late_fee_enabled", value="true")
        request = api_rf.post(self.path, {}, format="json")

        response = call(ApplyLateFeesView, request, user=staff_user)

        assert response.status_code == 200
        assert response.data["enabled"] is True
        assert response.data["applied"] == 1
        assert LateFee.objects.get().fee_amount_cents == 650

    def test_disabled(self, api_rf, staff_user, pending_charge):
        request = api_rf.post(self.path, {"force": True}, format="json")

        response = call(ApplyLateFeesView, request, user=staff_user)

        assert response.data["enabled"] is False
        assert LateFee.objects.count() == 0


# =============================================================================
# Accounts & Attribution
# =============================================================================


class TestAccountBalanceView:
    def test_balance(self, api_rf, staff_user, pending_charge):
        subscriber_id = pending_charge.subscriber_id
        request = api_rf.get(f"/api/v1/billing/subscribers/{subscriber_id}/balance/")

        response = call(AccountBalanceView, request, user=staff_user, subscriber_id=subscriber_id)

        assert response.status_code == 200
        assert response.data["total_charges"] == "130.00"
        assert response.data["balance"] == "130.00"
        assert response.data["pending_charges"] == 1

    def test_unknown_subscriber(self, api_rf, staff_user):
        subscriber_id = uuid.uuid4()
        request = api_rf.get(f"/api/v1/billing/subscribers/{subscriber_id}/balance/")

        response = call(AccountBalanceView, request, user=staff_user, subscriber_id=subscriber_id)

        assert response.status_code == 404
        assert response.data["error_code"] == "SUBSCRIBER_NOT_FOUND"


class TestLinkPaymentView:
    def path(self, payment_id):
        return f"/api/v1/billing/payments/{payment_id}/link/"

    def test_links(self, api_rf, staff_user, subscriber, pending_subscriber):
        payment = GatewayPaymentFactory(
            subscriber=None,
            pending_subject_ref=str(pending_subscriber.id),
            status=PaymentStatus.PENDING,
        )
        request = api_rf.post(
            self.path(payment.id), {"subscriber_id": str(subscriber.id)}, format="json"
        )

        response = call(LinkPaymentView, request, user=staff_user, payment_id=payment.id)

        assert response.status_code == 200
        assert response.data["subscriber"] == subscriber.id
        assert response.data["status"] == PaymentStatus.APPROVED
        assert response.data["pending_subject_ref"] is None

    def test_already_linked(self, api_rf, staff_user, subscriber):
        payment = GatewayPaymentFactory(subscriber=subscriber)
        request = api_rf.post(
            self.path(payment.id), {"subscriber_id": str(subscriber.id)}, format="json"
        )

        response = call(LinkPaymentView, request, user=staff_user, payment_id=payment.id)

        assert response.status_code == 409
        assert response.data["error_code"] == "PAYMENT_ALREADY_LINKED"

    def test_payment_not_found(self, api_rf, staff_user, subscriber):
        payment_id = uuid.uuid4()
        request = api_rf.post(
            self.path(payment_id), {"subscriber_id": str(subscriber.id)}, format="json"
        )

        response = call(LinkPaymentView, request, user=staff_user, payment_id=payment_id)

        assert response.status_code == 404
        assert response.data["error_code"] == "PAYMENT_NOT_FOUND"

    def test_invalid_body(self, api_rf, staff_user):
        payment_id = uuid.uuid4()
        request = api_rf.post(self.path(payment_id), {"subscriber_id": "nope"}, format="json")

        response = call(LinkPaymentView, request, user=staff_user, payment_id=payment_id)

        assert response.status_code == 400
