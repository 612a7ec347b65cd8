"""
Yappy gateway adapter.

Yappy checkout is a two-step call: validate the merchant to obtain a
short-lived token, then register the order with /payments/payment-wc. The
payer completes the payment on our checkout page, which hosts the Yappy
button for the returned transaction.

Yappy does not echo custom parameters, so reconciliation of Yappy payments
relies on the OrderRegistry entry stored before the order is created.

Status values: E (Ejecutado) means executed; R (Rechazado), C (Cancelado)
and X (Expirado) are failures.

Notifications carry a hash: hex HMAC-SHA256 under YAPPY_SECRET_KEY of
orderId + status + domain + confirmationNumber.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from decimal import Decimal
from typing import Any
from urllib.parse import urlencode

from django.conf import settings
from django.utils import timezone

from billing.exceptions import GatewayError, GatewayNotConfigured, InvalidSignature
from billing.state_machines import Gateway

from .base import (
    GatewayAdapter,
    NormalizedNotification,
    PaymentLinkRequest,
    PaymentLinkResult,
    first_value,
    signature_matches,
)

logger = logging.getLogger(__name__)

SANDBOX_API_URL = "https://api-comecom-uat.yappycloud.com"
PRODUCTION_API_URL = "https://apipagosbg.bgeneral.cloud"

APPROVED_STATUSES = {"e", "ejecutado", "approved", "completed", "success"}
SUCCESS_CODE = "0000"

# metadata key aliases -> canonical custom parameter key
METADATA_ALIASES = {
    "subject_ref": ("subjectRef", "subject_ref", "playerId"),
    "kind": ("kind", "paymentType"),
    "amount": ("amount",),
    "period": ("period", "monthYear"),
}


def map_status(raw_status: str) -> int | None:
    """Map a Yappy status to 1 (approved), 0 (not approved) or None (absent)."""
    if not raw_status:
        return None
    return 1 if raw_status.strip().lower() in APPROVED_STATUSES else 0


def _domain() -> str:
    return (
        settings.YAPPY_DOMAIN_URL.removeprefix("https://")
        .removeprefix("http://")
        .rstrip("/")
    )


def _metadata(payload: Mapping[str, Any]) -> Mapping[str, Any]:
    metadata = payload.get("metadata") or {}
    if isinstance(metadata, str):
        try:
            metadata = json.loads(metadata)
        except ValueError:
            return {}
    return metadata if isinstance(metadata, Mapping) else {}


class YappyAdapter(GatewayAdapter):
    name = Gateway.YAPPY.value
    minimum_amount = Decimal("0.01")

    @property
    def api_url(self) -> str:
        return SANDBOX_API_URL if settings.YAPPY_SANDBOX else PRODUCTION_API_URL

    def verify_notification(self, payload: Mapping[str, Any]) -> None:
        secret = settings.YAPPY_SECRET_KEY
        if not secret:
            raise InvalidSignature(
                "Yappy secret key not configured",
                details={"gateway": self.name},
            )
        message = "".join(
            (
                first_value(payload, "orderId", "orderID"),
                first_value(payload, "status"),
                first_value(payload, "domain") or _domain(),
                first_value(payload, "confirmationNumber", "transactionId"),
            )
        )
        if not signature_matches(secret, message, first_value(payload, "hash")):
            raise InvalidSignature(
                "Yappy notification hash mismatch",
                details={"gateway": self.name},
            )

    def normalize(self, payload: Mapping[str, Any]) -> NormalizedNotification:
        metadata = _metadata(payload)
        custom_params = {}
        for key, aliases in METADATA_ALIASES.items():
            value = first_value(metadata, *aliases) or first_value(payload, *aliases)
            if value:
                custom_params[key] = value

        return NormalizedNotification(
            gateway=self.name,
            operation_id=first_value(payload, "confirmationNumber", "transactionId"),
            order_id=first_value(payload, "orderId", "orderID"),
            status_code=map_status(first_value(payload, "status")),
            total_paid=first_value(payload, "amount", "total"),
            human_message=first_value(payload, "message", "description"),
            custom_params=custom_params,
            raw=dict(payload),
        )

    def _validate_merchant(self) -> tuple[str, Any]:
        body = self._request(
            "POST",
            f"{self.api_url}/payments/validate/merchant",
            json={
                "merchantId": settings.YAPPY_MERCHANT_ID,
                "urlDomain": settings.YAPPY_DOMAIN_URL,
            },
        )
        data = body.get("body") or {}
        token = data.get("token")
        if not token:
            raise GatewayError(
                "Yappy merchant validation failed",
                details={"gateway": self.name, "status": body.get("status")},
            )
        return token, data.get("epochTime")

    def create_payment_link(self, request: PaymentLinkRequest) -> PaymentLinkResult:
        """
        Register the order with Yappy and return our checkout page URL.

        Raises:
            GatewayNotConfigured: If merchant credentials or URLs are unset
            GatewayError: If validation or order creation fails
        """
        if not (
            settings.YAPPY_MERCHANT_ID
            and settings.YAPPY_SECRET_KEY
            and settings.YAPPY_DOMAIN_URL
            and settings.YAPPY_CHECKOUT_URL
        ):
            raise GatewayNotConfigured(
                "Yappy credentials not configured",
                details={"gateway": self.name},
            )

        token, epoch_time = self._validate_merchant()

        total = str(request.amount.quantize(Decimal("0.01")))
        payload = {
            "merchantId": settings.YAPPY_MERCHANT_ID,
            "orderId": request.order_id[:15],
            "domain": _domain(),
            "paymentDate": epoch_time or int(timezone.now().timestamp()),
            "ipnUrl": f"{settings.BILLING_PUBLIC_BASE_URL.rstrip('/')}"
            f"/api/v1/billing/webhooks/{self.name}/",
            "shipping": "0.00",
            "discount": "0.00",
            "taxes": "0.00",
            "subtotal": total,
            "total": total,
        }

        logger.info(
            "Creating Yappy order",
            extra={"gateway": self.name, "order_id": request.order_id},
        )
        body = self._request(
            "POST",
            f"{self.api_url}/payments/payment-wc",
            json=payload,
            headers={"Authorization": token},
        )

        status = body.get("status") or {}
        data = body.get("body") or {}
        transaction_id = data.get("transactionId")
        if not transaction_id or (
            status.get("code") != SUCCESS_CODE and not body.get("success")
        ):
            message = status.get("description") or body.get("message") or "Order rejected"
            raise GatewayError(
                f"Yappy: {message}",
                details={"gateway": self.name, "order_id": request.order_id},
            )

        query = urlencode(
            {
                "orderId": request.order_id,
                "transactionId": transaction_id,
                "token": data.get("token", ""),
                "documentName": data.get("documentName", ""),
            }
        )
        return PaymentLinkResult(
            payment_url=f"{settings.YAPPY_CHECKOUT_URL}?{query}",
            code=str(transaction_id),
            raw=body,
        )
