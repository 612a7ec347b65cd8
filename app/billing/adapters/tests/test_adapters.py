"""
Tests for gateway adapters.

HTTP calls go through httpx.MockTransport; no network access.
"""

import json
from decimal import Decimal
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from billing.adapters import (
    PagueloFacilAdapter,
    PaymentLinkRequest,
    YappyAdapter,
    get_adapter,
)
from billing.adapters.base import sign
from billing.adapters.paguelofacil import PRODUCTION_LINK_URL, SANDBOX_LINK_URL, encode_return_url
from billing.adapters.yappy import map_status
from billing.exceptions import GatewayError, GatewayNotConfigured, InvalidSignature


def link_request(**overrides):
    defaults = {
        "order_id": "ord-00001",
        "amount": Decimal("130"),
        "description": "Mensualidad noviembre",
        "return_url": "https://example.com/pagos/retorno",
        "custom_params": {
            "subject_ref": "8f3a",
            "kind": "monthly",
            "amount": "130.00",
            "period": "2025-11",
        },
    }
    defaults.update(overrides)
    return PaymentLinkRequest(**defaults)


class RecordingTransport:
    """Builds an httpx.MockTransport and keeps the requests it saw."""

    def __init__(self, handler):
        self.requests = []
        self._handler = handler

    def __call__(self):
        def handle(request):
            self.requests.append(request)
            return self._handler(request)

        return httpx.MockTransport(handle)


@pytest.fixture
def paguelofacil_settings(settings):
    settings.PAGUELOFACIL_CCLW = "CCLW-TEST"
    settings.PAGUELOFACIL_WEBHOOK_SECRET = "pf-secret"
    settings.PAGUELOFACIL_SANDBOX = True
    settings.PAGUELOFACIL_LINK_EXPIRES_SECONDS = 3600
    return settings


@pytest.fixture
def yappy_settings(settings):
    settings.YAPPY_MERCHANT_ID = "MERCHANT-1"
    settings.YAPPY_SECRET_KEY = "secret"
    settings.YAPPY_DOMAIN_URL = "https://club.example.com/"
    settings.YAPPY_CHECKOUT_URL = "https://club.example.com/pagar/yappy"
    settings.YAPPY_SANDBOX = True
    settings.BILLING_PUBLIC_BASE_URL = "https://api.example.com/"
    return settings


# =============================================================================
# Registry
# =============================================================================


class TestGetAdapter:
    def test_known_gateways(self):
        assert isinstance(get_adapter("paguelofacil"), PagueloFacilAdapter)
        assert isinstance(get_adapter("yappy"), YappyAdapter)

    def test_unknown_gateway(self):
        with pytest.raises(GatewayNotConfigured) as exc_info:
            get_adapter("bitcoin")

        assert exc_info.value.error_code == "UNKNOWN_GATEWAY"


class TestPaymentLinkRequest:
    def test_rejects_non_positive_amount(self):
        with pytest.raises(ValueError):
            link_request(amount=Decimal("0"))

    def test_rejects_missing_order_id(self):
        with pytest.raises(ValueError):
            link_request(order_id="")


# =============================================================================
# PagueloFacil
# =============================================================================


class TestPagueloFacilNormalize:
    def test_webhook_payload(self):
        notification = PagueloFacilAdapter().normalize(
            {
                "codOper": "OP-123",
                "status": "1",
                "authStatus": "00",
                "totalPay": "130.00",
                "messageSys": "Aprobada",
                "PARM_1": "ord-00001",
                "PARM_2": "8f3a",
                "PARM_3": "monthly",
                "PARM_4": "130.00",
                "PARM_5": "2025-11",
            }
        )

        assert notification.gateway == "paguelofacil"
        assert notification.operation_id == "OP-123"
        assert notification.order_id == "ord-00001"
        assert notification.status_code == 1
        assert notification.auth_status_code == "00"
        assert notification.total_paid == "130.00"
        assert notification.human_message == "Aprobada"
        assert notification.custom_params == {
            "subject_ref": "8f3a",
            "kind": "monthly",
            "amount": "130.00",
            "period": "2025-11",
        }

    def test_return_url_payload(self):
        notification = PagueloFacilAdapter().normalize(
            {
                "Oper": "OP-9",
                "TotalPagado": "25.00",
                "Estado": "Aprobada",
                "Razon": "Transaccion aprobada",
                "PARM_1": "ord-00002",
            }
        )

        assert notification.operation_id == "OP-9"
        assert notification.total_paid == "25.00"
        assert notification.status_code is None
        assert notification.auth_status_code == ""
        assert notification.human_message == "Aprobada Transaccion aprobada"
        assert notification.custom_params == {}

    def test_non_numeric_status(self):
        notification = PagueloFacilAdapter().normalize({"codOper": "X", "status": "ok"})

        assert notification.status_code is None

    def test_list_values_from_query_dicts(self):
        notification = PagueloFacilAdapter().normalize({"codOper": ["OP-1"], "status": ["0"]})

        assert notification.operation_id == "OP-1"
        assert notification.status_code == 0


class TestPagueloFacilPaymentLink:
    def test_encode_return_url(self):
        assert encode_return_url("https://a.b") == "68747470733A2F2F612E62"

    def test_link_url_by_environment(self, settings):
        settings.PAGUELOFACIL_SANDBOX = True
        assert PagueloFacilAdapter().link_url == SANDBOX_LINK_URL

        settings.PAGUELOFACIL_SANDBOX = False
        assert PagueloFacilAdapter().link_url == PRODUCTION_LINK_URL

    def test_creates_link(self, paguelofacil_settings):
        transport = RecordingTransport(
            lambda request: httpx.Response(
                200,
                json={
                    "success": True,
                    "data": {"url": "https://sandbox.paguelofacil.com/pay/abc", "code": "LK-1"},
                },
            )
        )

        result = PagueloFacilAdapter(transport=transport()).create_payment_link(link_request())

        assert result.payment_url == "https://sandbox.paguelofacil.com/pay/abc"
        assert result.code == "LK-1"

        sent = transport.requests[0]
        assert str(sent.url) == SANDBOX_LINK_URL
        form = {k: v[0] for k, v in parse_qs(sent.content.decode()).items()}
        assert form["CCLW"] == "CCLW-TEST"
        assert form["CMTN"] == "130.00"
        assert form["CDSC"] == "Mensualidad noviembre"
        assert form["EXPIRES_IN"] == "3600"
        assert form["PARM_1"] == "ord-00001"
        assert form["PARM_2"] == "8f3a"
        assert form["PARM_5"] == "2025-11"
        assert form["RETURN_URL"] == encode_return_url("https://example.com/pagos/retorno")
        assert form["PARM_6"] == sign("pf-secret", "ord-00001|8f3a|monthly|130.00|2025-11")

    def test_truncates_description(self, paguelofacil_settings):
        transport = RecordingTransport(
            lambda request: httpx.Response(200, json={"success": True, "data": {"url": "u"}})
        )

        PagueloFacilAdapter(transport=transport()).create_payment_link(
            link_request(description="x" * 300)
        )

        form = parse_qs(transport.requests[0].content.decode())
        assert len(form["CDSC"][0]) == 150

    def test_gateway_rejection(self, paguelofacil_settings):
        transport = RecordingTransport(
            lambda request: httpx.Response(200, json={"success": False, "message": "CCLW invalido"})
        )

        with pytest.raises(GatewayError, match="CCLW invalido"):
            PagueloFacilAdapter(transport=transport()).create_payment_link(link_request())

    def test_http_error(self, paguelofacil_settings):
        transport = RecordingTransport(lambda request: httpx.Response(500, text="boom"))

        with pytest.raises(GatewayError) as exc_info:
            PagueloFacilAdapter(transport=transport()).create_payment_link(link_request())

        assert exc_info.value.details["status_code"] == 500

    def test_non_json_response(self, paguelofacil_settings):
        transport = RecordingTransport(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(GatewayError, match="non-JSON"):
            PagueloFacilAdapter(transport=transport()).create_payment_link(link_request())

    def test_network_error(self, paguelofacil_settings):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(GatewayError, match="request failed"):
            PagueloFacilAdapter(transport=httpx.MockTransport(handler)).create_payment_link(
                link_request()
            )

    def test_missing_credentials(self, settings):
        settings.PAGUELOFACIL_CCLW = ""

        with pytest.raises(GatewayNotConfigured):
            PagueloFacilAdapter().create_payment_link(link_request())

    def test_missing_webhook_secret(self, paguelofacil_settings):
        paguelofacil_settings.PAGUELOFACIL_WEBHOOK_SECRET = ""

        with pytest.raises(GatewayNotConfigured):
            PagueloFacilAdapter().create_payment_link(link_request())


class TestPagueloFacilVerify:
    def signed_payload(self, **overrides):
        payload = {
            "codOper": "OP-1",
            "status": "1",
            "PARM_1": "ord-00001",
            "PARM_2": "8f3a",
            "PARM_3": "monthly",
            "PARM_4": "130.00",
            "PARM_5": "2025-11",
            "PARM_6": sign("pf-secret", "ord-00001|8f3a|monthly|130.00|2025-11"),
        }
        payload.update(overrides)
        return payload

    def test_valid_signature(self, paguelofacil_settings):
        PagueloFacilAdapter().verify_notification(self.signed_payload())

    def test_uppercase_signature_accepted(self, paguelofacil_settings):
        payload = self.signed_payload()
        payload["PARM_6"] = payload["PARM_6"].upper()

        PagueloFacilAdapter().verify_notification(payload)

    def test_unsigned_fields_may_change(self, paguelofacil_settings):
        PagueloFacilAdapter().verify_notification(
            self.signed_payload(status="0", totalPay="130.00", codOper="OP-2")
        )

    @pytest.mark.parametrize(
        "overrides",
        [
            {"PARM_2": "other"},
            {"PARM_4": "1.00"},
            {"PARM_6": ""},
            {"PARM_6": "deadbeef"},
            {"PARM_6": "ñ" * 64},
        ],
    )
    def test_tampered_payload_rejected(self, paguelofacil_settings, overrides):
        with pytest.raises(InvalidSignature) as exc_info:
            PagueloFacilAdapter().verify_notification(self.signed_payload(**overrides))

        assert exc_info.value.error_code == "INVALID_SIGNATURE"

    def test_missing_secret_rejects(self, paguelofacil_settings):
        paguelofacil_settings.PAGUELOFACIL_WEBHOOK_SECRET = ""

        with pytest.raises(InvalidSignature):
            PagueloFacilAdapter().verify_notification(self.signed_payload())


# =============================================================================
# Yappy
# =============================================================================


class TestYappyNormalize:
    @pytest.mark.parametrize(
        "raw,expected",
        [("E", 1), ("Ejecutado", 1), ("R", 0), ("C", 0), ("X", 0), ("", None)],
    )
    def test_map_status(self, raw, expected):
        assert map_status(raw) == expected

    def test_ipn_payload(self):
        notification = YappyAdapter().normalize(
            {
                "orderId": "ord-00003",
                "confirmationNumber": "YP-77",
                "status": "E",
                "amount": "45.00",
                "metadata": {"subjectRef": "8f3a", "paymentType": "custom"},
            }
        )

        assert notification.gateway == "yappy"
        assert notification.operation_id == "YP-77"
        assert notification.order_id == "ord-00003"
        assert notification.status_code == 1
        assert notification.auth_status_code == ""
        assert notification.total_paid == "45.00"
        assert notification.custom_params["subject_ref"] == "8f3a"
        assert notification.custom_params["kind"] == "custom"

    def test_metadata_as_json_string(self):
        notification = YappyAdapter().normalize(
            {
                "orderId": "ord-00004",
                "transactionId": "T-1",
                "status": "R",
                "metadata": json.dumps({"period": "2025-11"}),
            }
        )

        assert notification.operation_id == "T-1"
        assert notification.status_code == 0
        assert notification.custom_params["period"] == "2025-11"

    def test_invalid_metadata_string_ignored(self):
        notification = YappyAdapter().normalize(
            {"orderId": "ord-00005", "status": "E", "metadata": "{not json"}
        )

        assert notification.custom_params == {}


class TestYappyPaymentLink:
    def _handler(self, order_response):
        def handler(request):
            path = urlparse(str(request.url)).path
            if path == "/payments/validate/merchant":
                return httpx.Response(
                    200,
                    json={"status": {"code": "0000"}, "body": {"token": "TKN", "epochTime": 1700000000}},
                )
            return httpx.Response(200, json=order_response)

        return handler

    def test_creates_order_and_checkout_url(self, yappy_settings):
        transport = RecordingTransport(
            self._handler(
                {
                    "status": {"code": "0000", "description": "OK"},
                    "body": {"transactionId": "TX-1", "token": "PAY-TKN", "documentName": "doc"},
                }
            )
        )

        result = YappyAdapter(transport=transport()).create_payment_link(link_request())

        parsed = urlparse(result.payment_url)
        query = {k: v[0] for k, v in parse_qs(parsed.query).items()}
        assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == "https://club.example.com/pagar/yappy"
        assert query == {
            "orderId": "ord-00001",
            "transactionId": "TX-1",
            "token": "PAY-TKN",
            "documentName": "doc",
        }
        assert result.code == "TX-1"

        validate, order = transport.requests
        assert json.loads(validate.content) == {
            "merchantId": "MERCHANT-1",
            "urlDomain": "https://club.example.com/",
        }
        sent = json.loads(order.content)
        assert order.headers["Authorization"] == "TKN"
        assert sent["domain"] == "club.example.com"
        assert sent["total"] == "130.00"
        assert sent["paymentDate"] == 1700000000
        assert sent["ipnUrl"] == "https://api.example.com/api/v1/billing/webhooks/yappy/"

    def test_order_rejected(self, yappy_settings):
        transport = RecordingTransport(
            self._handler({"status": {"code": "E002", "description": "Monto invalido"}, "body": {}})
        )

        with pytest.raises(GatewayError, match="Monto invalido"):
            YappyAdapter(transport=transport()).create_payment_link(link_request())

    def test_merchant_validation_failure(self, yappy_settings):
        transport = RecordingTransport(
            lambda request: httpx.Response(200, json={"status": {"code": "E001"}, "body": {}})
        )

        with pytest.raises(GatewayError, match="merchant validation"):
            YappyAdapter(transport=transport()).create_payment_link(link_request())

        assert len(transport.requests) == 1

    def test_missing_credentials(self, settings):
        settings.YAPPY_MERCHANT_ID = ""

        with pytest.raises(GatewayNotConfigured):
            YappyAdapter().create_payment_link(link_request())


class TestYappyVerify:
    def hashed(self, payload, secret="secret"):
        message = payload["orderId"] + payload["status"] + "club.example.com" + payload.get(
            "confirmationNumber", ""
        )
        return {**payload, "hash": sign(secret, message)}

    def test_valid_ipn_hash(self, yappy_settings):
        YappyAdapter().verify_notification(
            self.hashed({"orderId": "ord-00001", "status": "E", "confirmationNumber": "CONF-1"})
        )

    def test_return_without_confirmation_number(self, yappy_settings):
        YappyAdapter().verify_notification(self.hashed({"orderId": "ord-00001", "status": "E"}))

    def test_domain_from_payload(self, yappy_settings):
        payload = {"orderId": "ord-00001", "status": "E", "domain": "other.example.com"}
        payload["hash"] = sign("secret", "ord-00001Eother.example.com")

        YappyAdapter().verify_notification(payload)

    def test_status_tampering_rejected(self, yappy_settings):
        payload = self.hashed({"orderId": "ord-00001", "status": "R", "confirmationNumber": "CONF-1"})
        payload["status"] = "E"

        with pytest.raises(InvalidSignature):
            YappyAdapter().verify_notification(payload)

    def test_wrong_secret_rejected(self, yappy_settings):
        payload = self.hashed({"orderId": "ord-00001", "status": "E"}, secret="guess")

        with pytest.raises(InvalidSignature):
            YappyAdapter().verify_notification(payload)

    def test_missing_hash_rejected(self, yappy_settings):
        with pytest.raises(InvalidSignature):
            YappyAdapter().verify_notification({"orderId": "ord-00001", "status": "E"})

    def test_missing_secret_rejects(self, yappy_settings):
        yappy_settings.YAPPY_SECRET_KEY = ""
        payload = self.hashed({"orderId": "ord-00001", "status": "E"})

        with pytest.raises(InvalidSignature):
            YappyAdapter().verify_notification(payload)
