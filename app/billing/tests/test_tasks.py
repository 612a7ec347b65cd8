"""
Tests for billing Celery tasks.

Tasks are called synchronously; scheduling lives in django-celery-beat.
"""

import importlib
from datetime import timedelta
from unittest.mock import patch

from django.apps import apps as django_apps
from django.utils import timezone
from django_celery_beat.models import PeriodicTask

from billing.models import Order, Payment
from billing.services import ChargeRunResult
from billing.tasks import apply_late_fees, generate_monthly_charges, purge_expired_orders
from billing.tests.factories import OrderFactory, SubscriberFactory


class TestGenerateMonthlyCharges:
    def test_returns_run_summary(self, db):
        SubscriberFactory.create_batch(2)

        result = generate_monthly_charges("2025-11")

        assert result["period"] == "2025-11"
        assert result["generated"] == 2
        assert result["success"] is True
        assert Payment.objects.count() == 2

    def test_passes_force(self, db):
        with patch("billing.tasks.ChargeGenerator.generate") as mock_generate:
            mock_generate.return_value = ChargeRunResult(period="2025-11")

            generate_monthly_charges("2025-11", force=True)

        mock_generate.assert_called_once_with(period="2025-11", force=True)

    def test_logs_errors(self, db):
        failed = ChargeRunResult(period="2025-11", errors=["Error creating charge for X"])
        with patch("billing.tasks.ChargeGenerator.generate", return_value=failed), patch(
            "billing.tasks.logger"
        ) as mock_logger:
            result = generate_monthly_charges()

        assert result["success"] is False
        mock_logger.warning.assert_called_once()


class TestApplyLateFees:
    def test_disabled_by_default(self, db, pending_charge):
        result = apply_late_fees()

        assert result["enabled"] is False
        assert result["applied"] == 0


class TestPurgeExpiredOrders:
    def test_deletes_expired(self, db):
        OrderFactory(expires_at=timezone.now() - timedelta(hours=1))
        OrderFactory(expires_at=None)

        assert purge_expired_orders() == {"deleted": 1}
        assert Order.objects.count() == 1


class TestTaskNames:
    def test_registered_names(self):
        assert generate_monthly_charges.name == "billing.tasks.generate_monthly_charges"
        assert apply_late_fees.name == "billing.tasks.apply_late_fees"
        assert purge_expired_orders.name == "billing.tasks.purge_expired_orders"

    def test_beat_schedules_point_at_tasks(self, db):
        migration = importlib.import_module("billing.migrations.0002_add_billing_schedules")

        migration.create_periodic_tasks(django_apps, None)
        migration.create_periodic_tasks(django_apps, None)

        tasks = PeriodicTask.objects.filter(name__startswith="Billing:")
        assert tasks.count() == 3
        assert set(tasks.values_list("task", flat=True)) == {
            generate_monthly_charges.name,
            apply_late_fees.name,
            purge_expired_orders.name,
        }
        monthly = tasks.get(task=generate_monthly_charges.name)
        assert monthly.crontab.day_of_month == "1"
        assert monthly.crontab.hour == "6"
