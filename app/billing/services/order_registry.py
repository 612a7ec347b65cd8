"""
OrderRegistry: correlation table from gateway order id to billing intent.

An intent is stored before a payment link is issued, because gateways cap
the visible order id at 15 characters and not every gateway echoes custom
parameters back. The reconciler looks the intent up when the notification
arrives and consumes it afterwards. Consumed or expired intents are never
used for attribution.

Usage:
    from billing.services.order_registry import OrderIntent, OrderRegistry

    OrderRegistry.put("pay-8f3a-1702", OrderIntent(
        subject_ref=str(subscriber.id),
        amount_cents=13000,
        kind=OrderKind.MONTHLY,
        extra={"period": "2025-11"},
    ))
    intent = OrderRegistry.get("pay-8f3a-1702")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from django.conf import settings
from django.utils import timezone

from core.services import BaseService

from billing.exceptions import OrderNotFound, OrderValidationError
from billing.models import ORDER_ID_MAX_LENGTH, Order
from billing.state_machines import OrderKind


@dataclass
class OrderIntent:
    """
    The billing intent behind a gateway order.

    Attributes:
        subject_ref: Subscriber or pending subscriber id (optional)
        amount_cents: Intended amount in cents
        kind: enrollment, monthly or custom
        extra: Opaque string parameters (period, description, ...)
        order_id: Set on intents returned by get()
        created_at: Set on intents returned by get()
        consumed: True once a reconciliation consumed the order
    """

    amount_cents: int
    kind: str = OrderKind.MONTHLY
    subject_ref: str | None = None
    extra: dict[str, str] = field(default_factory=dict)
    order_id: str | None = None
    created_at: datetime | None = None
    consumed: bool = False

    @classmethod
    def from_model(cls, order: Order) -> OrderIntent:
        return cls(
            amount_cents=order.amount_cents,
            kind=order.kind,
            subject_ref=order.subject_ref,
            extra=dict(order.extra or {}),
            order_id=order.order_id,
            created_at=order.created_at,
            consumed=order.consumed_at is not None,
        )


class OrderRegistry(BaseService):
    """Store and look up order intents. Storage errors propagate to callers."""

    @classmethod
    def validate_order_id(cls, order_id: str) -> None:
        if not order_id or not order_id.strip():
            raise OrderValidationError(
                "Order id is required",
                details={"order_id": ["This field may not be blank."]},
            )
        if len(order_id) > ORDER_ID_MAX_LENGTH:
            raise OrderValidationError(
                f"Order id must be at most {ORDER_ID_MAX_LENGTH} characters",
                details={"order_id": [f"Ensure this field has no more than {ORDER_ID_MAX_LENGTH} characters."]},
            )

    @classmethod
    def expiry_for(cls, now: datetime) -> datetime | None:
        ttl_days = settings.BILLING_ORDER_TTL_DAYS
        if ttl_days is None:
            return None
        return now + timedelta(days=ttl_days)

    @classmethod
    def put(cls, order_id: str, intent: OrderIntent) -> Order:
        """
        Upsert the intent for an order id.

        Overwrites an existing entry, since a new checkout attempt may reuse
        the same truncated id.

        Raises:
            OrderValidationError: If the order id is empty or too long
            DatabaseError: If the store is unavailable
        """
        cls.validate_order_id(order_id)
        now = timezone.now()
        order, created = Order.objects.update_or_create(
            order_id=order_id,
            defaults={
                "subject_ref": intent.subject_ref,
                "amount_cents": intent.amount_cents,
                "kind": intent.kind,
                "extra": {k: str(v) for k, v in (intent.extra or {}).items()},
                "expires_at": cls.expiry_for(now),
                "consumed_at": None,
            },
        )
        cls.get_logger().info(
            "Order stored" if created else "Order overwritten",
            extra={"order_id": order_id, "subject_ref": intent.subject_ref},
        )
        return order

    @classmethod
    def find(cls, order_id: str) -> OrderIntent | None:
        if not order_id:
            return None
        order = Order.objects.filter(order_id=order_id).first()
        return OrderIntent.from_model(order) if order else None

    @classmethod
    def find_active(cls, order_id: str) -> OrderIntent | None:
        """Like find(), but ignores orders that are consumed or past their expiry."""
        if not order_id:
            return None
        order = Order.objects.filter(order_id=order_id, consumed_at__isnull=True).first()
        if order is None or order.is_expired:
            return None
        return OrderIntent.from_model(order)

    @classmethod
    def get(cls, order_id: str) -> OrderIntent:
        """
        Raises:
            OrderNotFound: If no intent is stored for the order id
        """
        intent = cls.find(order_id)
        if intent is None:
            raise OrderNotFound(
                f"Order {order_id} not found",
                details={"order_id": order_id},
            )
        return intent

    @classmethod
    def consume(cls, order_id: str) -> bool:
        """Mark an order as consumed. Returns False if it was already consumed or absent."""
        updated = Order.objects.filter(
            order_id=order_id,
            consumed_at__isnull=True,
        ).update(consumed_at=timezone.now())
        return updated > 0

    @classmethod
    def purge_expired(cls, now: datetime | None = None) -> int:
        """Delete orders past their expiry. Returns the number deleted."""
        now = now or timezone.now()
        deleted, _ = Order.objects.filter(
            expires_at__isnull=False,
            expires_at__lte=now,
        ).delete()
        if deleted:
            cls.get_logger().info(
                f"Purged {deleted} expired orders",
                extra={"deleted": deleted},
            )
        return deleted
