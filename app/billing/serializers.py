"""
Serializers for the billing API.

Serializers:
    CreateOrderSerializer: Order creation request
    CreateOrderResponseSerializer: Payment link response
    ChargeRunSerializer: Charge generation request
    LateFeeRunSerializer: Late fee run request
    LinkPaymentSerializer: Payment attribution request
    PaymentSerializer: Read-only payment details
    AccountBalanceSerializer: Balance summary response
"""

from __future__ import annotations

from rest_framework import serializers

from billing.adapters import ADAPTERS
from billing.models import ORDER_ID_MAX_LENGTH, Payment
from billing.periods import is_valid_period
from billing.state_machines import OrderKind


def _validate_period(value: str | None) -> str | None:
    if value and not is_valid_period(value):
        raise serializers.ValidationError('Period must be formatted as "YYYY-MM".')
    return value or None


class CreateOrderSerializer(serializers.Serializer):
    """
    Order creation request.

    Amount minimums depend on the gateway and are enforced by
    CheckoutService, not here.
    """

    gateway = serializers.ChoiceField(choices=sorted(ADAPTERS))
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    description = serializers.CharField(max_length=255, allow_blank=True)
    order_id = serializers.CharField(max_length=ORDER_ID_MAX_LENGTH)
    return_url = serializers.URLField()
    subject_ref = serializers.CharField(max_length=64, required=False, allow_null=True)
    kind = serializers.ChoiceField(choices=OrderKind.choices, default=OrderKind.MONTHLY)
    extra = serializers.DictField(child=serializers.CharField(), required=False, default=dict)


class CreateOrderResponseSerializer(serializers.Serializer):
    order_id = serializers.CharField()
    payment_url = serializers.URLField()
    gateway = serializers.CharField()


class ChargeRunSerializer(serializers.Serializer):
    period = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    force = serializers.BooleanField(required=False, default=False)

    def validate_period(self, value):
        return _validate_period(value)


class LateFeeRunSerializer(ChargeRunSerializer):
    pass


class LinkPaymentSerializer(serializers.Serializer):
    subscriber_id = serializers.UUIDField()


class PaymentSerializer(serializers.ModelSerializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Payment
        fields = [
            "id",
            "subscriber",
            "pending_subject_ref",
            "amount",
            "kind",
            "method",
            "status",
            "payment_date",
            "period",
            "gateway_order_id",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class AccountBalanceSerializer(serializers.Serializer):
    subscriber_id = serializers.UUIDField()
    total_charges = serializers.DecimalField(max_digits=12, decimal_places=2)
    total_late_fees = serializers.DecimalField(max_digits=12, decimal_places=2)
    total_paid = serializers.DecimalField(max_digits=12, decimal_places=2)
    balance = serializers.DecimalField(max_digits=12, decimal_places=2)
    pending_charges = serializers.IntegerField()
    overdue_periods = serializers.ListField(child=serializers.CharField())
