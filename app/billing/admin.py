"""
Billing admin configuration.

Status changes on payments go through the ledger service so the FSM rules
and the audit timestamps stay consistent. Rows are never deleted from admin.
"""

from django.contrib import admin, messages

from billing.exceptions import BillingError
from billing.ledger import ledger
from billing.models import (
    BillingSetting,
    LateFee,
    Order,
    Payment,
    PendingSubscriber,
    Subscriber,
)


@admin.register(Subscriber)
class SubscriberAdmin(admin.ModelAdmin):
    list_display = ["id", "first_name", "last_name", "status", "family_ref", "created_at"]
    list_filter = ["status"]
    search_fields = ["id", "first_name", "last_name", "family_ref"]
    readonly_fields = ["id", "created_at", "updated_at"]
    ordering = ["last_name", "first_name"]


@admin.register(PendingSubscriber)
class PendingSubscriberAdmin(admin.ModelAdmin):
    list_display = ["id", "first_name", "last_name", "family_ref", "created_at"]
    search_fields = ["id", "first_name", "last_name"]
    readonly_fields = ["id", "created_at", "updated_at"]


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    """
    Admin configuration for Payment.

    Actions approve, reject and cancel are the administrative override
    path; illegal transitions are reported per row and skipped.
    """

    list_display = [
        "id",
        "subscriber",
        "amount_display",
        "kind",
        "method",
        "status",
        "period",
        "payment_date",
    ]
    list_filter = ["status", "kind", "method", "period"]
    search_fields = [
        "id",
        "correlation_key",
        "gateway_order_id",
        "pending_subject_ref",
        "subscriber__first_name",
        "subscriber__last_name",
    ]
    readonly_fields = [
        "id",
        "status",
        "correlation_key",
        "metadata",
        "approved_at",
        "rejected_at",
        "cancelled_at",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "payment_date"
    ordering = ["-created_at"]
    actions = ["approve_payments", "reject_payments", "cancel_payments"]

    fieldsets = (
        (None, {"fields": ("id", "subscriber", "pending_subject_ref", "status")}),
        ("Amount", {"fields": ("amount_cents", "kind", "method", "payment_date", "period")}),
        (
            "Gateway",
            {
                "fields": ("correlation_key", "gateway_order_id", "metadata"),
                "classes": ("collapse",),
            },
        ),
        ("Notes", {"fields": ("notes",)}),
        (
            "Timestamps",
            {"fields": ("approved_at", "rejected_at", "cancelled_at", "created_at", "updated_at")},
        ),
    )

    @admin.display(description="Amount")
    def amount_display(self, obj: Payment) -> str:
        return f"${obj.amount_cents / 100:.2f}"

    def has_delete_permission(self, request, obj=None) -> bool:
        return False

    def _run_transition(self, request, queryset, operation, label: str) -> None:
        done = 0
        for payment_id in queryset.values_list("id", flat=True):
            try:
                operation(payment_id)
                done += 1
            except BillingError as e:
                self.message_user(request, e.message, level=messages.WARNING)
        if done:
            self.message_user(request, f"{done} payment(s) {label}.", level=messages.SUCCESS)

    @admin.action(description="Approve selected payments")
    def approve_payments(self, request, queryset):
        self._run_transition(request, queryset, ledger.approve_payment, "approved")

    @admin.action(description="Reject selected payments")
    def reject_payments(self, request, queryset):
        self._run_transition(
            request,
            queryset,
            lambda payment_id: ledger.reject_payment(
                payment_id, reason=f"Rejected by {request.user}"
            ),
            "rejected",
        )

    @admin.action(description="Cancel selected payments")
    def cancel_payments(self, request, queryset):
        self._run_transition(request, queryset, ledger.cancel_payment, "cancelled")


@admin.register(LateFee)
class LateFeeAdmin(admin.ModelAdmin):
    """Late fees are append-only; every field is read-only."""

    list_display = [
        "id",
        "subscriber",
        "period",
        "fee_amount_cents",
        "fee_type",
        "days_overdue",
        "is_reapplication",
        "applied_at",
    ]
    list_filter = ["fee_type", "period", "is_reapplication"]
    search_fields = ["id", "subscriber__first_name", "subscriber__last_name"]
    ordering = ["-applied_at"]

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ["order_id", "subject_ref", "amount_cents", "kind", "created_at", "expires_at", "consumed_at"]
    list_filter = ["kind"]
    search_fields = ["order_id", "subject_ref"]
    readonly_fields = ["created_at", "updated_at", "consumed_at"]
    ordering = ["-created_at"]


@admin.register(BillingSetting)
class BillingSettingAdmin(admin.ModelAdmin):
    list_display = ["key", "value", "description", "updated_at"]
    search_fields = ["key"]
    ordering = ["key"]
