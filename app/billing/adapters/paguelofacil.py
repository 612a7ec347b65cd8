"""
PagueloFacil gateway adapter.

Payment links are created through the LinkDeamon form endpoint. The gateway
echoes up to six PARM_n custom fields back in both the webhook and the
return-URL redirect; this adapter uses them as:

    PARM_1  order id
    PARM_2  subject ref
    PARM_3  kind
    PARM_4  amount
    PARM_5  period
    PARM_6  signature of PARM_1..PARM_5

Webhook payloads use codOper/status/authStatus/totalPay/messageSys. The
browser return path uses Oper/TotalPagado/Estado/Razon instead; both are
normalized here.

PagueloFacil does not sign its notifications, so links carry PARM_6, a hex
HMAC-SHA256 under PAGUELOFACIL_WEBHOOK_SECRET of the other PARM values
joined with "|". A notification whose PARM_6 does not match is rejected.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from django.conf import settings

from billing.exceptions import GatewayError, GatewayNotConfigured, InvalidSignature
from billing.state_machines import Gateway

from .base import (
    GatewayAdapter,
    NormalizedNotification,
    PaymentLinkRequest,
    PaymentLinkResult,
    first_value,
    parse_status_code,
    sign,
    signature_matches,
)

logger = logging.getLogger(__name__)

SANDBOX_LINK_URL = "https://sandbox.paguelofacil.com/LinkDeamon.cfm"
PRODUCTION_LINK_URL = "https://secure.paguelofacil.com/LinkDeamon.cfm"

DESCRIPTION_MAX_LENGTH = 150
PARAM_MAX_LENGTH = 150

# custom parameter key -> PARM slot (PARM_1 is the order id)
PARAM_SLOTS = {
    "subject_ref": "PARM_2",
    "kind": "PARM_3",
    "amount": "PARM_4",
    "period": "PARM_5",
}
SIGNATURE_SLOT = "PARM_6"
SIGNED_SLOTS = ("PARM_1", *PARAM_SLOTS.values())


def signed_message(params: Mapping[str, Any]) -> str:
    return "|".join(first_value(params, slot) for slot in SIGNED_SLOTS)


def encode_return_url(url: str) -> str:
    """LinkDeamon expects RETURN_URL as uppercase hex of its UTF-8 bytes."""
    return url.encode("utf-8").hex().upper()


class PagueloFacilAdapter(GatewayAdapter):
    name = Gateway.PAGUELOFACIL.value
    minimum_amount = Decimal("1.00")

    @property
    def link_url(self) -> str:
        return SANDBOX_LINK_URL if settings.PAGUELOFACIL_SANDBOX else PRODUCTION_LINK_URL

    def verify_notification(self, payload: Mapping[str, Any]) -> None:
        secret = settings.PAGUELOFACIL_WEBHOOK_SECRET
        if not secret:
            raise InvalidSignature(
                "PagueloFacil webhook secret not configured",
                details={"gateway": self.name},
            )
        received = first_value(payload, SIGNATURE_SLOT)
        if not signature_matches(secret, signed_message(payload), received):
            raise InvalidSignature(
                "PagueloFacil notification signature mismatch",
                details={"gateway": self.name},
            )

    def normalize(self, payload: Mapping[str, Any]) -> NormalizedNotification:
        custom_params = {
            key: first_value(payload, slot)
            for key, slot in PARAM_SLOTS.items()
            if first_value(payload, slot)
        }
        message = " ".join(
            part
            for part in (
                first_value(payload, "messageSys"),
                first_value(payload, "Estado"),
                first_value(payload, "Razon"),
            )
            if part
        )
        return NormalizedNotification(
            gateway=self.name,
            operation_id=first_value(payload, "codOper", "Oper", "CodOper"),
            order_id=first_value(payload, "PARM_1", "orderId"),
            status_code=parse_status_code(first_value(payload, "status")),
            auth_status_code=first_value(payload, "authStatus"),
            total_paid=first_value(payload, "totalPay", "TotalPagado"),
            human_message=message,
            custom_params=custom_params,
            raw=dict(payload),
        )

    def create_payment_link(self, request: PaymentLinkRequest) -> PaymentLinkResult:
        """
        Create a hosted payment link via LinkDeamon.

        Raises:
            GatewayNotConfigured: If PAGUELOFACIL_CCLW or the webhook secret
                is unset
            GatewayError: If the call fails or the gateway rejects it
        """
        cclw = settings.PAGUELOFACIL_CCLW
        secret = settings.PAGUELOFACIL_WEBHOOK_SECRET
        if not (cclw and secret):
            raise GatewayNotConfigured(
                "PagueloFacil credentials not configured",
                details={"gateway": self.name},
            )

        form = {
            "CCLW": cclw,
            "CMTN": str(request.amount.quantize(Decimal("0.01"))),
            "CDSC": request.description[:DESCRIPTION_MAX_LENGTH],
            "EXPIRES_IN": str(settings.PAGUELOFACIL_LINK_EXPIRES_SECONDS),
            "PARM_1": request.order_id,
        }
        if request.return_url:
            form["RETURN_URL"] = encode_return_url(request.return_url)
        for key, slot in PARAM_SLOTS.items():
            value = request.custom_params.get(key)
            if value:
                form[slot] = str(value)[:PARAM_MAX_LENGTH]
        form[SIGNATURE_SLOT] = sign(secret, signed_message(form))

        logger.info(
            "Creating PagueloFacil payment link",
            extra={"gateway": self.name, "order_id": request.order_id},
        )
        body = self._request(
            "POST",
            self.link_url,
            data=form,
            headers={"Accept": "*/*"},
        )

        data = body.get("data") or {}
        if body.get("success") and data.get("url"):
            return PaymentLinkResult(
                payment_url=data["url"],
                code=str(data.get("code") or ""),
                raw=body,
            )

        message = body.get("message") or body.get("error") or "Payment link rejected"
        raise GatewayError(
            f"PagueloFacil: {message}",
            details={"gateway": self.name, "order_id": request.order_id},
        )
