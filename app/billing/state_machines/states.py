"""
State and choice enums for billing models.

These are Django TextChoices for database storage and admin integration.
Payment.status is driven by django-fsm transitions declared on the model.

Payment States:
    pending → approved (reconciler, settle_open_charge, link, admin)
    pending → overdue → approved
    pending → rejected
    pending/overdue → cancelled

Rejected and cancelled are terminal. Rows are never deleted.
"""

from django.db import models


class PaymentStatus(models.TextChoices):
    """
    States for the Payment lifecycle.

    Terminal states: APPROVED, REJECTED, CANCELLED
    """

    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"
    CANCELLED = "cancelled", "Cancelled"
    OVERDUE = "overdue", "Overdue"


class PaymentKind(models.TextChoices):
    """What a payment row represents. CHARGE rows are billed obligations."""

    ENROLLMENT = "enrollment", "Enrollment"
    MONTHLY = "monthly", "Monthly"
    CUSTOM = "custom", "Custom"
    CHARGE = "charge", "Charge"


class OrderKind(models.TextChoices):
    """Billing intent carried by an Order (charges are never checked out)."""

    ENROLLMENT = "enrollment", "Enrollment"
    MONTHLY = "monthly", "Monthly"
    CUSTOM = "custom", "Custom"


class PaymentMethod(models.TextChoices):
    PAGUELOFACIL = "paguelofacil", "PagueloFacil"
    YAPPY = "yappy", "Yappy"
    CASH = "cash", "Cash"
    TRANSFER = "transfer", "Bank Transfer"
    OTHER = "other", "Other"


class Gateway(models.TextChoices):
    """Payment gateways that push notifications to the reconciler."""

    PAGUELOFACIL = "paguelofacil", "PagueloFacil"
    YAPPY = "yappy", "Yappy"


class LateFeeType(models.TextChoices):
    PERCENTAGE = "percentage", "Percentage"
    FIXED = "fixed", "Fixed Amount"


class SubscriberStatus(models.TextChoices):
    """
    Subscriber billing status.

    Only ACTIVE subscribers are charged monthly. SCHOLARSHIP subscribers
    are confirmed but exempt from recurring charges.
    """

    ACTIVE = "active", "Active"
    SCHOLARSHIP = "scholarship", "Scholarship"
    INACTIVE = "inactive", "Inactive"
