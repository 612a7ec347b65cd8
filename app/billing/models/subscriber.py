"""
Subscriber models: the confirmed and pending subject sets.

Subscriber is a confirmed, staff-approved member who can be billed.
PendingSubscriber is an enrollment awaiting staff confirmation; payments
received for it are held unattributed until the approval workflow links
them (see PaymentLedger.link_pending_payments).
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from billing.state_machines import SubscriberStatus


class Subscriber(UUIDPrimaryKeyMixin, BaseModel):
    """
    A confirmed subscriber that recurring charges are generated for.

    Fields:
        first_name/last_name: Display name
        status: Billing status (only ACTIVE is charged monthly)
        family_ref: Optional grouping key for siblings; the second and later
            subscriber of a family pays the family rate
        custom_monthly_fee_cents: Per-subscriber fee override
    """

    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100, blank=True, default="")

    status = models.CharField(
        max_length=20,
        choices=SubscriberStatus.choices,
        default=SubscriberStatus.ACTIVE,
        db_index=True,
        help_text="Billing status; only active subscribers are charged",
    )

    family_ref = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        db_index=True,
        help_text="Grouping key shared by siblings for the family rate",
    )

    custom_monthly_fee_cents = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        help_text="Monthly fee override in cents (null = computed)",
    )

    class Meta:
        ordering = ["created_at"]
        verbose_name = "Subscriber"
        verbose_name_plural = "Subscribers"

    def __str__(self) -> str:
        return self.full_name

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def custom_monthly_fee(self) -> Decimal | None:
        if self.custom_monthly_fee_cents is None:
            return None
        return Decimal(self.custom_monthly_fee_cents) / 100


class PendingSubscriber(UUIDPrimaryKeyMixin, BaseModel):
    """
    An enrollment that has not been confirmed by staff yet.

    Gateway payments for a pending subscriber are recorded with no
    subscriber and the pending id stored in Payment.pending_subject_ref.
    """

    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100, blank=True, default="")
    family_ref = models.CharField(max_length=64, null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Pending Subscriber"
        verbose_name_plural = "Pending Subscribers"

    def __str__(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
