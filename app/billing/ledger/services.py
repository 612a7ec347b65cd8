"""
Payment ledger service.

PaymentLedger is the only writer of Payment and LateFee rows. Every write is a
single-row insert or transition inside its own transaction, so the batch jobs
and the webhook reconciler never need broader locks.

Idempotency:
    - One charge per (subscriber, period): partial unique constraint
    - One regular late fee per (subscriber, period): partial unique constraint
    - One gateway payment per order (or operation): unique correlation key

    Inserts catch IntegrityError from those constraints and return the row
    that won the race with created=False, so a duplicate is a no-op rather
    than an error.

Usage:
    from billing.ledger import ledger

    payment, created = ledger.record_gateway_payment(params)
    ledger.settle_open_charge(payment)
"""

from __future__ import annotations

import logging
import uuid

from django.db import IntegrityError, transaction
from django.utils import timezone
from django_fsm import TransitionNotAllowed

from billing.exceptions import (
    InvalidPaymentTransition,
    PaymentAlreadyLinked,
    PaymentNotFound,
)
from billing.models import LateFee, Payment, Subscriber
from billing.periods import first_day
from billing.state_machines import PaymentKind, PaymentStatus

from .types import (
    RecordGatewayPaymentParams,
    RecordLateFeeParams,
    gateway_correlation_key,
)

logger = logging.getLogger(__name__)


class PaymentLedger:
    """
    Service class for ledger writes and lookups.

    All methods are static - no instance state is maintained.
    """

    # ==========================================================================
    # Lookups
    # ==========================================================================

    @staticmethod
    def get_payment(payment_id: uuid.UUID) -> Payment:
        """
        Raises:
            PaymentNotFound: If the payment doesn't exist
        """
        try:
            return Payment.objects.get(id=payment_id)
        except Payment.DoesNotExist:
            raise PaymentNotFound(
                f"Payment {payment_id} not found",
                details={"payment_id": str(payment_id)},
            )

    @staticmethod
    def charge_exists(subscriber_id: uuid.UUID, period: str) -> bool:
        return Payment.objects.filter(
            subscriber_id=subscriber_id,
            period=period,
            kind=PaymentKind.CHARGE,
        ).exists()

    @staticmethod
    def late_fee_exists(subscriber_id: uuid.UUID, period: str) -> bool:
        return LateFee.objects.filter(
            subscriber_id=subscriber_id,
            period=period,
        ).exists()

    @staticmethod
    def find_gateway_payment(correlation_key: str) -> Payment | None:
        return Payment.objects.filter(correlation_key=correlation_key).first()

    @staticmethod
    def gateway_payment_exists(gateway: str, order_id: str) -> bool:
        """True if a payment was already recorded for this gateway order."""
        return Payment.objects.filter(
            correlation_key=gateway_correlation_key(gateway, order_id=order_id)
        ).exists()

    @staticmethod
    def overdue_candidates(period: str | None = None):
        """Charges still unpaid (Pending or Overdue), optionally for one period."""
        queryset = Payment.objects.filter(
            kind=PaymentKind.CHARGE,
            status__in=[PaymentStatus.PENDING, PaymentStatus.OVERDUE],
            subscriber__isnull=False,
            period__isnull=False,
        ).order_by("period", "created_at")
        if period:
            queryset = queryset.filter(period=period)
        return queryset

    # ==========================================================================
    # Inserts
    # ==========================================================================

    @staticmethod
    def record_charge(
        subscriber: Subscriber,
        amount_cents: int,
        period: str,
        notes: str = "",
    ) -> tuple[Payment, bool]:
        """
        Insert a Pending monthly charge unless one exists for the period.

        Returns:
            (payment, created) - created is False if the charge already existed
        """
        try:
            with transaction.atomic():
                payment = Payment.objects.create(
                    subscriber=subscriber,
                    amount_cents=amount_cents,
                    kind=PaymentKind.CHARGE,
                    method=None,
                    status=PaymentStatus.PENDING,
                    payment_date=first_day(period),
                    period=period,
                    notes=notes or f"Monthly charge {period}",
                )
            return payment, True
        except IntegrityError:
            existing = Payment.objects.filter(
                subscriber=subscriber,
                period=period,
                kind=PaymentKind.CHARGE,
            ).first()
            if existing is None:
                raise
            return existing, False

    @staticmethod
    def record_gateway_payment(
        params: RecordGatewayPaymentParams,
    ) -> tuple[Payment, bool]:
        """
        Insert an Approved gateway payment if its correlation key is new.

        The unique correlation_key column makes this an atomic
        insert-if-absent: concurrent deliveries of the same notification
        race on the insert and exactly one wins.

        Returns:
            (payment, created) - created is False for a duplicate delivery
        """
        try:
            with transaction.atomic():
                payment = Payment.objects.create(
                    correlation_key=params.correlation_key,
                    subscriber_id=params.subscriber_id,
                    pending_subject_ref=params.pending_subject_ref,
                    amount_cents=params.amount_cents,
                    kind=params.kind,
                    method=params.method,
                    status=PaymentStatus.APPROVED,
                    approved_at=timezone.now(),
                    payment_date=params.payment_date or timezone.localdate(),
                    period=params.period,
                    gateway_order_id=params.gateway_order_id,
                    notes=params.notes,
                    metadata=params.metadata,
                )
        except IntegrityError:
            existing = Payment.objects.filter(
                correlation_key=params.correlation_key
            ).first()
            if existing is None:
                raise
            logger.info(
                "Duplicate gateway payment ignored",
                extra={
                    "correlation_key": params.correlation_key,
                    "payment_id": str(existing.id),
                },
            )
            return existing, False

        logger.info(
            "Gateway payment recorded",
            extra={
                "correlation_key": params.correlation_key,
                "payment_id": str(payment.id),
                "subscriber_id": str(params.subscriber_id or ""),
                "pending_subject_ref": params.pending_subject_ref,
                "amount_cents": params.amount_cents,
            },
        )
        return payment, True

    @staticmethod
    def record_late_fee(params: RecordLateFeeParams) -> tuple[LateFee, bool]:
        """
        Append a late fee row.

        Regular fees are limited to one per (subscriber, period) by a partial
        unique constraint; forced re-applications bypass it.

        Returns:
            (late_fee, created) - created is False if a regular fee already
            existed for the period
        """
        try:
            with transaction.atomic():
                late_fee = LateFee.objects.create(
                    payment_id=params.payment_id,
                    subscriber_id=params.subscriber_id,
                    period=params.period,
                    original_amount_cents=params.original_amount_cents,
                    fee_amount_cents=params.fee_amount_cents,
                    fee_type=params.fee_type,
                    rate=params.rate,
                    days_overdue=params.days_overdue,
                    is_reapplication=params.is_reapplication,
                )
            return late_fee, True
        except IntegrityError:
            existing = LateFee.objects.filter(
                subscriber_id=params.subscriber_id,
                period=params.period,
                is_reapplication=False,
            ).first()
            if existing is None or params.is_reapplication:
                raise
            return existing, False

    # ==========================================================================
    # Transitions
    # ==========================================================================

    @staticmethod
    def _transition(payment_id: uuid.UUID, action: str, **kwargs) -> Payment:
        with transaction.atomic():
            try:
                payment = Payment.objects.select_for_update().get(id=payment_id)
            except Payment.DoesNotExist:
                raise PaymentNotFound(
                    f"Payment {payment_id} not found",
                    details={"payment_id": str(payment_id)},
                )
            try:
                getattr(payment, action)(**kwargs)
            except TransitionNotAllowed:
                raise InvalidPaymentTransition(payment.id, payment.status, action)
            payment.save()

        logger.info(
            f"Payment {action} applied",
            extra={"payment_id": str(payment_id), "status": payment.status},
        )
        return payment

    @staticmethod
    def approve_payment(payment_id: uuid.UUID) -> Payment:
        return PaymentLedger._transition(payment_id, "approve")

    @staticmethod
    def reject_payment(payment_id: uuid.UUID, reason: str | None = None) -> Payment:
        return PaymentLedger._transition(payment_id, "reject", reason=reason)

    @staticmethod
    def cancel_payment(payment_id: uuid.UUID) -> Payment:
        return PaymentLedger._transition(payment_id, "cancel")

    @staticmethod
    def mark_overdue(payment_id: uuid.UUID) -> Payment:
        return PaymentLedger._transition(payment_id, "mark_overdue")

    @staticmethod
    def settle_open_charge(payment: Payment) -> Payment | None:
        """
        Mark the open charge covered by a received payment as paid.

        The charge for (payment.subscriber, payment.period) is approved when
        it is still Pending/Overdue and the payment covers its amount. Only
        monthly payments settle charges. Runs in the caller's transaction
        when there is one.

        Returns:
            The settled charge, or None if nothing was settled
        """
        if (
            payment.kind != PaymentKind.MONTHLY
            or payment.subscriber_id is None
            or not payment.period
        ):
            return None

        with transaction.atomic():
            charge = (
                Payment.objects.select_for_update()
                .filter(
                    subscriber_id=payment.subscriber_id,
                    period=payment.period,
                    kind=PaymentKind.CHARGE,
                    status__in=[PaymentStatus.PENDING, PaymentStatus.OVERDUE],
                )
                .first()
            )
            if charge is None:
                return None
            if payment.amount_cents < charge.amount_cents:
                logger.info(
                    "Payment does not cover the open charge",
                    extra={
                        "payment_id": str(payment.id),
                        "charge_id": str(charge.id),
                        "amount_cents": payment.amount_cents,
                        "charge_cents": charge.amount_cents,
                    },
                )
                return None

            charge.approve()
            charge.metadata = {**charge.metadata, "settled_by": str(payment.id)}
            charge.save()

        logger.info(
            "Charge settled by payment",
            extra={
                "charge_id": str(charge.id),
                "payment_id": str(payment.id),
                "period": payment.period,
            },
        )
        return charge

    # ==========================================================================
    # Attribution
    # ==========================================================================

    @staticmethod
    def link_payment_to_subscriber(
        payment_id: uuid.UUID,
        subscriber_id: uuid.UUID,
    ) -> Payment:
        """
        Attribute an unlinked payment to a confirmed subscriber.

        A Pending payment becomes Approved when linked.

        Raises:
            PaymentNotFound: If the payment or subscriber doesn't exist
            PaymentAlreadyLinked: If the payment already has a subscriber
        """
        with transaction.atomic():
            try:
                payment = Payment.objects.select_for_update().get(id=payment_id)
            except Payment.DoesNotExist:
                raise PaymentNotFound(
                    f"Payment {payment_id} not found",
                    details={"payment_id": str(payment_id)},
                )
            if payment.subscriber_id is not None:
                raise PaymentAlreadyLinked(
                    f"Payment {payment_id} is already linked",
                    details={
                        "payment_id": str(payment_id),
                        "subscriber_id": str(payment.subscriber_id),
                    },
                )
            try:
                subscriber = Subscriber.objects.get(id=subscriber_id)
            except Subscriber.DoesNotExist:
                raise PaymentNotFound(
                    f"Subscriber {subscriber_id} not found",
                    error_code="SUBSCRIBER_NOT_FOUND",
                    details={"subscriber_id": str(subscriber_id)},
                )

            payment.subscriber = subscriber
            if payment.pending_subject_ref:
                payment.metadata = {
                    **payment.metadata,
                    "linked_from_pending": payment.pending_subject_ref,
                }
                payment.pending_subject_ref = None
            if payment.status == PaymentStatus.PENDING:
                payment.approve()
            payment.save()

        logger.info(
            "Payment linked to subscriber",
            extra={"payment_id": str(payment_id), "subscriber_id": str(subscriber_id)},
        )
        return payment

    @staticmethod
    def link_pending_payments(pending_ref: str, subscriber: Subscriber) -> int:
        """
        Link every payment parked under a pending subscriber id.

        Called by the approval workflow once staff confirm the enrollment.

        Returns:
            Number of payments linked
        """
        linked = 0
        with transaction.atomic():
            payments = Payment.objects.select_for_update().filter(
                pending_subject_ref=pending_ref,
                subscriber__isnull=True,
            )
            for payment in payments:
                payment.subscriber = subscriber
                payment.metadata = {**payment.metadata, "linked_from_pending": pending_ref}
                payment.pending_subject_ref = None
                if payment.status == PaymentStatus.PENDING:
                    payment.approve()
                payment.save()
                linked += 1

        if linked:
            logger.info(
                "Linked pending payments",
                extra={
                    "pending_ref": pending_ref,
                    "subscriber_id": str(subscriber.id),
                    "count": linked,
                },
            )
        return linked


# Singleton instance for convenience
ledger = PaymentLedger()
