"""Tests for the monthly fee rule."""

from decimal import Decimal

from billing.config import BillingConfig
from billing.services.fees import family_position, monthly_fee_for
from billing.state_machines import SubscriberStatus
from billing.tests.factories import SubscriberFactory

CONFIG = BillingConfig(price_monthly=Decimal("130.00"), price_monthly_family=Decimal("110.50"))


class TestMonthlyFee:
    def test_standard_fee(self, db, subscriber):
        assert monthly_fee_for(subscriber, CONFIG).cents == 13000

    def test_custom_fee_wins(self, db):
        subscriber = SubscriberFactory(custom_monthly_fee_cents=9000, family_ref="fam")
        SubscriberFactory(family_ref="fam")

        assert monthly_fee_for(subscriber, CONFIG).cents == 9000

    def test_scholarship_pays_nothing(self, db):
        subscriber = SubscriberFactory(status=SubscriberStatus.SCHOLARSHIP)

        assert monthly_fee_for(subscriber, CONFIG).cents == 0

    def test_second_sibling_pays_family_rate(self, db):
        first = SubscriberFactory(family_ref="fam-1")
        second = SubscriberFactory(family_ref="fam-1")
        third = SubscriberFactory(family_ref="fam-1")

        assert monthly_fee_for(first, CONFIG).cents == 13000
        assert monthly_fee_for(second, CONFIG).cents == 11050
        assert monthly_fee_for(third, CONFIG).cents == 11050

    def test_inactive_siblings_do_not_count(self, db):
        SubscriberFactory(family_ref="fam-2", status=SubscriberStatus.INACTIVE)
        subscriber = SubscriberFactory(family_ref="fam-2")

        assert family_position(subscriber) == 0
        assert monthly_fee_for(subscriber, CONFIG).cents == 13000

    def test_scholarship_sibling_counts(self, db):
        SubscriberFactory(family_ref="fam-3", status=SubscriberStatus.SCHOLARSHIP)
        subscriber = SubscriberFactory(family_ref="fam-3")

        assert family_position(subscriber) == 1
