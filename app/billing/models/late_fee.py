"""
LateFee model.

A late fee is appended once per (subscriber, period) when a charge stays
unpaid past its deadline plus grace days. Rows are immutable once created.
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from billing.state_machines import LateFeeType


class LateFee(UUIDPrimaryKeyMixin, BaseModel):
    """
    A penalty applied to an overdue charge.

    At most one regular fee exists per (subscriber, period); rows created by a
    forced re-run carry is_reapplication=True and fall outside that
    constraint.

    Fields:
        payment: The overdue charge this fee was computed from
        subscriber: Subscriber being penalised
        period: Billing month of the charge ("YYYY-MM")
        original_amount_cents: Charge amount the fee was computed from
        fee_amount_cents: Fee amount in cents
        fee_type: percentage or fixed
        rate: Configured value (percent, or fixed amount in currency units)
        days_overdue: Days past the deadline when the fee was applied
        applied_at: When the fee was applied
        is_reapplication: Created by a forced re-run
    """

    payment = models.ForeignKey(
        "billing.Payment",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="late_fees",
    )

    subscriber = models.ForeignKey(
        "billing.Subscriber",
        on_delete=models.PROTECT,
        related_name="late_fees",
    )

    period = models.CharField(max_length=7, db_index=True)

    original_amount_cents = models.PositiveBigIntegerField()
    fee_amount_cents = models.PositiveBigIntegerField()

    fee_type = models.CharField(max_length=20, choices=LateFeeType.choices)
    rate = models.DecimalField(max_digits=10, decimal_places=2)
    days_overdue = models.PositiveIntegerField()

    applied_at = models.DateTimeField(default=timezone.now)

    is_reapplication = models.BooleanField(
        default=False,
        help_text="Created by a forced re-run (exempt from the one-per-period rule)",
    )

    class Meta:
        ordering = ["-applied_at"]
        verbose_name = "Late Fee"
        verbose_name_plural = "Late Fees"
        indexes = [
            models.Index(fields=["subscriber", "period"], name="billing_lat_subscri_9a4e27_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(fee_amount_cents__gt=0),
                name="billing_late_fee_amount_positive",
            ),
            models.UniqueConstraint(
                fields=["subscriber", "period"],
                condition=models.Q(is_reapplication=False),
                name="billing_one_late_fee_per_subscriber_period",
            ),
        ]

    def __str__(self) -> str:
        return f"LateFee({self.subscriber_id}, {self.period}, {self.fee_amount})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Late fees are immutable once created")
        super().save(*args, **kwargs)

    @property
    def fee_amount(self) -> Decimal:
        return Decimal(self.fee_amount_cents) / 100

    @property
    def original_amount(self) -> Decimal:
        return Decimal(self.original_amount_cents) / 100
