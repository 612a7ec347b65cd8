"""
Webhook and return-URL endpoints for payment gateways.

Both endpoints verify the payload signature, normalize it with the gateway
adapter and run the same idempotent reconciliation, since the
server-to-server webhook and the browser redirect can race for the same
order.

Response codes:
    200: Acknowledged (recorded, duplicate, denied or unattributed)
    400: Unparseable body, or nothing to correlate on
    401: Payload failed the gateway authenticity check
    404: Unknown gateway
    503: Storage failure; the gateway should retry

Usage:
    # In urls.py
    path("webhooks/<str:gateway>/", gateway_webhook, name="gateway_webhook"),
"""

from __future__ import annotations

import json
import logging
from typing import Any

from django.db import DatabaseError
from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods, require_POST

from billing.adapters import get_adapter
from billing.exceptions import (
    GatewayNotConfigured,
    InvalidNotification,
    InvalidSignature,
)

from .reconciler import WebhookReconciler

logger = logging.getLogger(__name__)


def parse_payload(request: HttpRequest) -> dict[str, Any]:
    """
    Read the notification payload from a request.

    JSON bodies are decoded; form bodies and query strings are flattened
    to single values.

    Raises:
        ValueError: If a JSON body cannot be decoded or is not an object
    """
    content_type = request.content_type or ""
    if content_type == "application/json":
        body = json.loads(request.body or b"{}")
        if not isinstance(body, dict):
            raise ValueError("JSON body must be an object")
        return body

    payload: dict[str, Any] = {}
    if request.method == "GET":
        payload.update(request.GET.dict())
    else:
        payload.update(request.GET.dict())
        payload.update(request.POST.dict())
    return payload


def _handle(request: HttpRequest, gateway: str, source: str) -> JsonResponse:
    try:
        adapter = get_adapter(gateway)
    except GatewayNotConfigured as e:
        return JsonResponse(e.to_dict(), status=404)

    try:
        payload = parse_payload(request)
    except ValueError as e:
        logger.warning(
            "Gateway notification body could not be parsed",
            extra={"gateway": gateway, "source": source, "error": str(e)},
        )
        return JsonResponse({"error": "Invalid payload"}, status=400)

    try:
        adapter.verify_notification(payload)
    except InvalidSignature as e:
        logger.warning(
            "Gateway notification signature verification failed",
            extra={"gateway": gateway, "source": source, "error": e.message},
        )
        return JsonResponse(e.to_dict(), status=401)

    notification = adapter.normalize(payload)

    try:
        result = WebhookReconciler.reconcile(notification, source=source)
    except InvalidNotification as e:
        logger.warning(
            "Gateway notification rejected",
            extra={"gateway": gateway, "source": source, "error": e.message},
        )
        return JsonResponse(e.to_dict(), status=400)
    except DatabaseError:
        logger.error(
            "Storage failure during reconciliation",
            exc_info=True,
            extra={
                "gateway": gateway,
                "source": source,
                "operation_id": notification.operation_id,
                "order_id": notification.order_id,
            },
        )
        return JsonResponse({"error": "Temporarily unavailable"}, status=503)

    return JsonResponse(result.to_dict(), status=200)


@csrf_exempt
@require_POST
def gateway_webhook(request: HttpRequest, gateway: str) -> JsonResponse:
    """Receive a server-to-server payment notification."""
    return _handle(request, gateway, source="webhook")


@csrf_exempt
@require_http_methods(["GET", "POST"])
def gateway_return(request: HttpRequest, gateway: str) -> JsonResponse:
    """
    Receive the browser return-URL callback.

    Carries the same parameters as the webhook but may never arrive, so it
    is reconciled with identical idempotent logic and never relied upon.
    """
    return _handle(request, gateway, source="return")
