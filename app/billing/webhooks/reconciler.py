"""
WebhookReconciler: turns gateway notifications into ledger mutations.

Both the server-to-server webhook and the browser return-URL callback go
through reconcile(). Each attempt ends in exactly one of:

    recorded      - a new Approved payment was inserted
    duplicate     - the order (or operation) was already recorded; no-op
    denied        - the approval rule said no; nothing is recorded
    unattributed  - approved, but no subject or amount could be resolved;
                    acknowledged and logged, money is not recorded

Storage errors propagate so the HTTP layer can answer non-200 and the
gateway retries. Retrying is safe because the insert is keyed on the
correlation key.

A recorded monthly payment also settles the subscriber's open charge for
the same period, in the same transaction.
Usage:
    from billing.adapters import get_adapter
    from billing.webhooks.reconciler import WebhookReconciler

    notification = get_adapter("paguelofacil").normalize(payload)
    result = WebhookReconciler.reconcile(notification)
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from typing import Any

from core.services import BaseService

from billing.adapters import NormalizedNotification
from billing.exceptions import InvalidNotification
from billing.ledger import (
    Money,
    RecordGatewayPaymentParams,
    gateway_correlation_key,
    ledger,
)
from billing.models import PendingSubscriber, Subscriber
from billing.periods import is_valid_period
from billing.services.order_registry import OrderIntent, OrderRegistry
from billing.state_machines import OrderKind

from .approval import ApprovalDecision, decide_notification, parse_amount

ORDER_SUBJECT_RE = re.compile(r"^payment-([^-]+)-")

RECORDED = "recorded"
DUPLICATE = "duplicate"
DENIED = "denied"
UNATTRIBUTED = "unattributed"


@dataclass
class ReconciliationResult:
    """
    Outcome of one reconciliation attempt.

    Every outcome is an acknowledgement; only exceptions mean "retry me".
    """

    outcome: str
    correlation_key: str
    payment_id: uuid.UUID | None = None
    subject_ref: str | None = None
    decision: ApprovalDecision | None = None

    @property
    def approved(self) -> bool:
        return self.decision is not None and self.decision.approved

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome": self.outcome,
            "approved": self.approved,
            "payment_id": str(self.payment_id) if self.payment_id else None,
        }


@dataclass
class ResolvedSubject:
    subject_ref: str | None
    amount_cents: int
    kind: str
    period: str | None


def correlation_key_for(notification: NormalizedNotification) -> str:
    """
    Derive the dedupe key for a notification.

    Raises:
        InvalidNotification: If it carries neither order id nor operation id
    """
    try:
        return gateway_correlation_key(
            notification.gateway,
            order_id=notification.order_id,
            operation_id=notification.operation_id,
        )
    except ValueError:
        raise InvalidNotification(
            "Notification has no operation id or order id",
            details={"gateway": notification.gateway},
        )


def subject_from_order_id(order_id: str) -> str | None:
    """Extract the subject from an order id shaped "payment-{subject}-{ts}"."""
    match = ORDER_SUBJECT_RE.match(order_id or "")
    return match.group(1) if match else None


def _as_uuid(value: str | None) -> uuid.UUID | None:
    if not value:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class WebhookReconciler(BaseService):
    """Reconcile normalized gateway notifications into the payment ledger."""

    @classmethod
    def resolve(
        cls,
        notification: NormalizedNotification,
        intent: OrderIntent | None,
    ) -> ResolvedSubject:
        """
        Resolve subject, amount, kind and period.

        Custom parameters win, then the stored order intent, then the
        structured order id (subject only) and the paid total (amount only).
        """
        params = notification.custom_params
        extra = intent.extra if intent else {}

        subject_ref = (
            params.get("subject_ref")
            or (intent.subject_ref if intent else None)
            or subject_from_order_id(notification.order_id)
        )

        amount = parse_amount(params.get("amount", ""))
        if amount > 0:
            amount_cents = Money.from_decimal(amount).cents
        elif intent is not None:
            amount_cents = intent.amount_cents
        else:
            amount_cents = Money.from_decimal(parse_amount(notification.total_paid)).cents

        kind = params.get("kind") or (intent.kind if intent else "")
        if kind not in OrderKind.values:
            kind = OrderKind.CUSTOM

        period = params.get("period") or extra.get("period")
        if not is_valid_period(period):
            period = None

        return ResolvedSubject(
            subject_ref=subject_ref,
            amount_cents=amount_cents,
            kind=kind,
            period=period,
        )

    @classmethod
    def reconcile(
        cls,
        notification: NormalizedNotification,
        source: str = "webhook",
    ) -> ReconciliationResult:
        """
        Reconcile one notification.

        Raises:
            InvalidNotification: If the notification cannot be correlated
            DatabaseError: On storage failure (caller should answer non-200)
        """
        logger = cls.get_logger()
        correlation_key = correlation_key_for(notification)
        log_extra = {
            "gateway": notification.gateway,
            "operation_id": notification.operation_id,
            "order_id": notification.order_id,
            "correlation_key": correlation_key,
            "source": source,
        }

        decision = decide_notification(notification)
        logger.info(
            "Gateway notification classified",
            extra={**log_extra, **decision.as_log_fields()},
        )
        if not decision.approved:
            return ReconciliationResult(
                outcome=DENIED,
                correlation_key=correlation_key,
                decision=decision,
            )

        existing = ledger.find_gateway_payment(correlation_key)
        if existing is not None:
            logger.info(
                "Gateway notification already recorded",
                extra={**log_extra, "payment_id": str(existing.id)},
            )
            return ReconciliationResult(
                outcome=DUPLICATE,
                correlation_key=correlation_key,
                payment_id=existing.id,
                decision=decision,
            )

        intent = OrderRegistry.find_active(notification.order_id)
        resolved = cls.resolve(notification, intent)

        if not resolved.subject_ref or resolved.amount_cents <= 0:
            logger.warning(
                "Approved payment could not be attributed",
                extra={
                    **log_extra,
                    "subject_ref": resolved.subject_ref,
                    "amount_cents": resolved.amount_cents,
                    "total_paid": notification.total_paid,
                },
            )
            return ReconciliationResult(
                outcome=UNATTRIBUTED,
                correlation_key=correlation_key,
                subject_ref=resolved.subject_ref,
                decision=decision,
            )

        subject_id = _as_uuid(resolved.subject_ref)
        subscriber = (
            Subscriber.objects.filter(id=subject_id).first() if subject_id else None
        )
        pending = None
        if subscriber is None and subject_id:
            pending = PendingSubscriber.objects.filter(id=subject_id).first()

        if subscriber is None and pending is None:
            logger.warning(
                "Approved payment for unknown subject",
                extra={
                    **log_extra,
                    "subject_ref": resolved.subject_ref,
                    "amount_cents": resolved.amount_cents,
                },
            )
            return ReconciliationResult(
                outcome=UNATTRIBUTED,
                correlation_key=correlation_key,
                subject_ref=resolved.subject_ref,
                decision=decision,
            )

        params = RecordGatewayPaymentParams(
            correlation_key=correlation_key,
            amount_cents=resolved.amount_cents,
            kind=resolved.kind,
            method=notification.gateway,
            subscriber_id=subscriber.id if subscriber else None,
            pending_subject_ref=str(pending.id) if pending else None,
            period=resolved.period,
            gateway_order_id=notification.order_id or None,
            notes=f"Paid via {notification.gateway} (operation {notification.operation_id or '-'})",
            metadata={
                "gateway": notification.gateway,
                "operation_id": notification.operation_id,
                "order_id": notification.order_id,
                "total_paid": notification.total_paid,
                "source": source,
            },
        )
        with cls.atomic():
            payment, created = ledger.record_gateway_payment(params)
            if created:
                ledger.settle_open_charge(payment)
            if notification.order_id:
                OrderRegistry.consume(notification.order_id)

        return ReconciliationResult(
            outcome=RECORDED if created else DUPLICATE,
            correlation_key=correlation_key,
            payment_id=payment.id,
            subject_ref=resolved.subject_ref,
            decision=decision,
        )
