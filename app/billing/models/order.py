"""
Order model: correlation between a gateway order id and a billing intent.

Gateways cap the externally visible order id at 15 characters, so the
original intent (subject, amount, kind, extra parameters) is stored here
before a payment link is issued and looked up again when the gateway
notifies us.
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.utils import timezone

from core.models import BaseModel

from billing.state_machines import OrderKind

ORDER_ID_MAX_LENGTH = 15


class Order(BaseModel):
    """
    Ephemeral billing intent keyed by the gateway order id.

    Fields:
        order_id: Externally visible id (primary key, max 15 chars)
        subject_ref: Subscriber or pending subscriber id (optional)
        amount_cents: Intended amount in cents
        kind: enrollment, monthly or custom
        extra: Opaque string parameters (period, description, ...)
        expires_at: When the order may be purged (null = never)
        consumed_at: When a reconciliation consumed the order
    """

    order_id = models.CharField(
        max_length=ORDER_ID_MAX_LENGTH,
        primary_key=True,
        help_text="Gateway-visible order id",
    )

    subject_ref = models.CharField(max_length=64, null=True, blank=True)

    amount_cents = models.PositiveBigIntegerField()

    kind = models.CharField(
        max_length=20,
        choices=OrderKind.choices,
        default=OrderKind.MONTHLY,
    )

    extra = models.JSONField(default=dict, blank=True)

    expires_at = models.DateTimeField(null=True, blank=True, db_index=True)
    consumed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Order"
        verbose_name_plural = "Orders"

    def __str__(self) -> str:
        return f"Order({self.order_id}, {self.kind}, {self.amount})"

    @property
    def amount(self) -> Decimal:
        return Decimal(self.amount_cents) / 100

    @property
    def is_expired(self) -> bool:
        return self.expires_at is not None and timezone.now() >= self.expires_at
