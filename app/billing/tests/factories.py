"""
Factory Boy factories for billing test data.

Usage:
    from billing.tests.factories import ChargeFactory, SubscriberFactory

    subscriber = SubscriberFactory()
    charge = ChargeFactory(subscriber=subscriber, period="2025-11")
"""

from datetime import date

import factory
from django.contrib.auth import get_user_model

from billing.models import (
    BillingSetting,
    LateFee,
    Order,
    Payment,
    PendingSubscriber,
    Subscriber,
)
from billing.state_machines import (
    LateFeeType,
    OrderKind,
    PaymentKind,
    PaymentMethod,
    PaymentStatus,
    SubscriberStatus,
)


class StaffUserFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = get_user_model()
        skip_postgeneration_save = True

    username = factory.Sequence(lambda n: f"staff{n}")
    email = factory.Sequence(lambda n: f"staff{n}@example.com")
    password = factory.PostGenerationMethodCall("set_password", "testpass123")
    is_staff = True
    is_active = True


class SubscriberFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Subscriber

    first_name = factory.Faker("first_name")
    last_name = factory.Faker("last_name")
    status = SubscriberStatus.ACTIVE


class PendingSubscriberFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = PendingSubscriber

    first_name = factory.Faker("first_name")
    last_name = factory.Faker("last_name")


class ChargeFactory(factory.django.DjangoModelFactory):
    """Pending monthly charge (130.00 for 2025-11 unless overridden)."""

    class Meta:
        model = Payment

    subscriber = factory.SubFactory(SubscriberFactory)
    amount_cents = 13000
    kind = PaymentKind.CHARGE
    status = PaymentStatus.PENDING
    period = "2025-11"
    payment_date = date(2025, 11, 1)


class GatewayPaymentFactory(factory.django.DjangoModelFactory):
    """Approved payment received through a gateway."""

    class Meta:
        model = Payment

    subscriber = factory.SubFactory(SubscriberFactory)
    amount_cents = 13000
    kind = PaymentKind.MONTHLY
    method = PaymentMethod.PAGUELOFACIL
    status = PaymentStatus.APPROVED
    correlation_key = factory.Sequence(lambda n: f"paguelofacil:OP{n:06d}")


class LateFeeFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = LateFee

    payment = factory.SubFactory(ChargeFactory)
    subscriber = factory.SelfAttribute("payment.subscriber")
    period = factory.SelfAttribute("payment.period")
    original_amount_cents = 13000
    fee_amount_cents = 650
    fee_type = LateFeeType.PERCENTAGE
    rate = 5
    days_overdue = 6


class OrderFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Order

    order_id = factory.Sequence(lambda n: f"ord-{n:05d}")
    amount_cents = 13000
    kind = OrderKind.MONTHLY
    extra = factory.LazyFunction(dict)


class BillingSettingFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = BillingSetting
        django_get_or_create = ("key",)

    key = factory.Sequence(lambda n: f"setting_{n}")
    value = ""
