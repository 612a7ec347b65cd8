"""
Payment model: the canonical ledger row.

A Payment is either a billed obligation (kind=charge, created Pending by the
charge generator) or money received (enrollment/monthly/custom, created
Approved by the webhook reconciler or recorded by staff).

Usage:
    from billing.models import Payment
    from billing.state_machines import PaymentKind, PaymentStatus

    charge = Payment.objects.create(
        subscriber=subscriber,
        amount_cents=13000,
        kind=PaymentKind.CHARGE,
        period="2025-11",
        payment_date=date(2025, 11, 1),
    )

    # State transitions using django-fsm
    charge.approve()
    charge.save()
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from billing.state_machines import PaymentKind, PaymentMethod, PaymentStatus


class Payment(UUIDPrimaryKeyMixin, BaseModel):
    """
    A single ledger entry for money owed or received.

    Rows are never deleted; REJECTED and CANCELLED rows stay for audit.

    State Flow:
        PENDING -> APPROVED
        PENDING -> OVERDUE -> APPROVED
        PENDING -> REJECTED
        PENDING/OVERDUE -> CANCELLED

    Fields:
        subscriber: Confirmed subscriber (null while attribution is pending)
        pending_subject_ref: Pending subscriber id awaiting confirmation
        amount_cents: Amount in cents, always positive
        kind: enrollment, monthly, custom or charge
        method: How the money arrived (null for charges)
        status: Current FSM state
        payment_date: Business date of the payment or charge
        period: Billing month as "YYYY-MM" (null when not month-bound)
        correlation_key: Unique gateway correlation key, the dedupe guard
            for at-least-once notification delivery
        gateway_order_id: Order id the gateway echoed back
        notes: Free text for staff
        metadata: Raw correlation markers (gateway, operation id, order id)
    """

    # ==========================================================================
    # Attribution
    # ==========================================================================

    subscriber = models.ForeignKey(
        "billing.Subscriber",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="payments",
        help_text="Confirmed subscriber this payment belongs to",
    )

    pending_subject_ref = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        db_index=True,
        help_text="Pending subscriber id, kept until staff confirmation links it",
    )

    # ==========================================================================
    # Amount, Kind & State
    # ==========================================================================

    amount_cents = models.PositiveBigIntegerField(
        help_text="Amount in cents",
    )

    kind = models.CharField(
        max_length=20,
        choices=PaymentKind.choices,
        db_index=True,
    )

    method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        null=True,
        blank=True,
        help_text="Payment method (null for charges)",
    )

    status = FSMField(
        default=PaymentStatus.PENDING,
        choices=PaymentStatus.choices,
        db_index=True,
        help_text="Current status (managed by FSM)",
    )

    payment_date = models.DateField(
        default=timezone.localdate,
    )

    period = models.CharField(
        max_length=7,
        null=True,
        blank=True,
        db_index=True,
        help_text='Billing month as "YYYY-MM"',
    )

    # ==========================================================================
    # Gateway Correlation
    # ==========================================================================

    correlation_key = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Gateway correlation key (gateway:operation_id)",
    )

    gateway_order_id = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        db_index=True,
    )

    notes = models.TextField(blank=True, default="")

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Correlation markers captured from the gateway",
    )

    # ==========================================================================
    # Timestamps
    # ==========================================================================

    approved_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment"
        verbose_name_plural = "Payments"
        indexes = [
            models.Index(fields=["subscriber", "status"], name="billing_pay_subscri_6c1f0e_idx"),
            models.Index(fields=["kind", "status", "period"], name="billing_pay_kind_3b9d52_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount_cents__gt=0),
                name="billing_payment_amount_positive",
            ),
            models.UniqueConstraint(
                fields=["subscriber", "period"],
                condition=models.Q(kind=PaymentKind.CHARGE),
                name="billing_one_charge_per_subscriber_period",
            ),
        ]

    def __str__(self) -> str:
        return f"Payment({self.id}, {self.kind}, {self.status}, {self.amount})"

    @property
    def amount(self) -> Decimal:
        return Decimal(self.amount_cents) / 100

    @property
    def is_charge(self) -> bool:
        return self.kind == PaymentKind.CHARGE

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=[PaymentStatus.PENDING, PaymentStatus.OVERDUE],
        target=PaymentStatus.APPROVED,
    )
    def approve(self):
        """Mark as paid. Transition: PENDING/OVERDUE -> APPROVED"""
        self.approved_at = timezone.now()

    @transition(
        field=status,
        source=PaymentStatus.PENDING,
        target=PaymentStatus.REJECTED,
    )
    def reject(self, reason: str | None = None):
        """Transition: PENDING -> REJECTED"""
        self.rejected_at = timezone.now()
        if reason:
            self.notes = f"{self.notes}\n{reason}".strip()

    @transition(
        field=status,
        source=[PaymentStatus.PENDING, PaymentStatus.OVERDUE],
        target=PaymentStatus.CANCELLED,
    )
    def cancel(self):
        """Transition: PENDING/OVERDUE -> CANCELLED"""
        self.cancelled_at = timezone.now()

    @transition(
        field=status,
        source=PaymentStatus.PENDING,
        target=PaymentStatus.OVERDUE,
    )
    def mark_overdue(self):
        """Transition: PENDING -> OVERDUE"""
