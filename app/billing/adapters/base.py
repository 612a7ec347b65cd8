"""
Gateway adapter base types.

Each gateway sends notifications with its own field names. Adapters turn a
raw payload into a NormalizedNotification at the boundary, so the approval
rule and the reconciler never look at gateway-specific keys.

Canonical custom parameter keys:
    subject_ref, kind, amount, period
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import httpx
from django.conf import settings

from billing.exceptions import GatewayError

logger = logging.getLogger(__name__)

CUSTOM_PARAM_KEYS = ("subject_ref", "kind", "amount", "period")


# =============================================================================
# Data Types
# =============================================================================


@dataclass(frozen=True)
class NormalizedNotification:
    """
    A gateway notification in gateway-independent form.

    Attributes:
        gateway: Gateway name (paguelofacil, yappy)
        operation_id: Gateway transaction/operation id ("" if absent)
        order_id: Order id echoed back by the gateway ("" if absent)
        status_code: 1 approved, 0 not approved, None if the gateway sent none
        auth_status_code: Two-character authorization code ("00" = approved)
        total_paid: Amount paid as a decimal string ("" if absent)
        human_message: Free text status message
        custom_params: Canonical custom parameters (see CUSTOM_PARAM_KEYS)
        raw: Original payload, kept for audit logging
    """

    gateway: str
    operation_id: str = ""
    order_id: str = ""
    status_code: int | None = None
    auth_status_code: str = ""
    total_paid: str = ""
    human_message: str = ""
    custom_params: dict[str, str] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass
class PaymentLinkRequest:
    """
    Parameters for issuing a payment link.

    Attributes:
        order_id: Gateway-visible order id (max 15 chars)
        amount: Amount to charge
        description: Shown to the payer
        return_url: Where the browser is sent after paying
        custom_params: Canonical custom parameters echoed back by the gateway
    """

    order_id: str
    amount: Decimal
    description: str
    return_url: str
    custom_params: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError("amount must be positive")
        if not self.order_id:
            raise ValueError("order_id is required")


@dataclass
class PaymentLinkResult:
    payment_url: str
    code: str = ""
    raw: dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Helpers
# =============================================================================


def first_value(payload: Mapping[str, Any], *keys: str) -> str:
    """Return the first non-empty value among keys, as a stripped string."""
    for key in keys:
        value = payload.get(key)
        if isinstance(value, (list, tuple)):
            value = value[0] if value else None
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return ""


def sign(secret: str, message: str) -> str:
    """Hex HMAC-SHA256 of message under secret."""
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


def signature_matches(secret: str, message: str, received: str) -> bool:
    return bool(received) and hmac.compare_digest(
        sign(secret, message).encode("utf-8"),
        received.strip().lower().encode("utf-8"),
    )


def parse_status_code(value: str) -> int | None:
    if value == "":
        return None
    try:
        return int(value)
    except ValueError:
        return None


# =============================================================================
# Adapter Base
# =============================================================================


class GatewayAdapter:
    """
    Base class for payment gateway adapters.

    Subclasses implement verify_notification(), normalize() and
    create_payment_link(). HTTP calls go
    through _request(), which applies the configured timeout and translates
    transport failures and error responses into GatewayError.

    Args:
        transport: Optional httpx transport (tests pass httpx.MockTransport)
    """

    name: str = ""
    minimum_amount: Decimal = Decimal("0.01")

    def __init__(self, transport: httpx.BaseTransport | None = None):
        self._transport = transport

    def verify_notification(self, payload: Mapping[str, Any]) -> None:
        """
        Check that a notification payload really comes from the gateway.

        Raises:
            InvalidSignature: If the payload fails the check or the
                verification secret is not configured
        """
        raise NotImplementedError

    def normalize(self, payload: Mapping[str, Any]) -> NormalizedNotification:
        raise NotImplementedError

    def create_payment_link(self, request: PaymentLinkRequest) -> PaymentLinkResult:
        raise NotImplementedError

    def _client(self) -> httpx.Client:
        return httpx.Client(
            timeout=settings.BILLING_GATEWAY_TIMEOUT_SECONDS,
            transport=self._transport,
            headers={"Accept": "application/json"},
        )

    def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        """
        Send a request and return the decoded JSON body.

        Raises:
            GatewayError: On network failure, HTTP status >= 400 or a body
                that is not a JSON object
        """
        try:
            with self._client() as client:
                response = client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(
                f"{self.name} request failed: {type(e).__name__}",
                extra={"gateway": self.name, "url": url},
            )
            raise GatewayError(
                f"{self.name} request failed: {e}",
                details={"gateway": self.name},
            ) from e

        if response.status_code >= 400:
            raise GatewayError(
                f"{self.name} HTTP {response.status_code}: {response.text[:200]}",
                details={"gateway": self.name, "status_code": response.status_code},
            )

        try:
            body = response.json()
        except ValueError as e:
            raise GatewayError(
                f"{self.name} returned a non-JSON response",
                details={"gateway": self.name, "body": response.text[:200]},
            ) from e
        if not isinstance(body, dict):
            raise GatewayError(
                f"{self.name} returned an unexpected response",
                details={"gateway": self.name},
            )
        return body
