import uuid

import django.db.models.deletion
import django.utils.timezone
import django_fsm
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="BillingSetting",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("key", models.CharField(max_length=100, unique=True)),
                ("value", models.TextField(blank=True, default="")),
                ("description", models.CharField(blank=True, default="", max_length=255)),
            ],
            options={
                "verbose_name": "Billing Setting",
                "verbose_name_plural": "Billing Settings",
                "ordering": ["key"],
            },
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("order_id", models.CharField(help_text="Gateway-visible order id", max_length=15, primary_key=True, serialize=False)),
                ("subject_ref", models.CharField(blank=True, max_length=64, null=True)),
                ("amount_cents", models.PositiveBigIntegerField()),
                ("kind", models.CharField(choices=[("enrollment", "Enrollment"), ("monthly", "Monthly"), ("custom", "Custom")], default="monthly", max_length=20)),
                ("extra", models.JSONField(blank=True, default=dict)),
                ("expires_at", models.DateTimeField(blank=True, db_index=True, null=True)),
                ("consumed_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "verbose_name": "Order",
                "verbose_name_plural": "Orders",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="PendingSubscriber",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier for this record", primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("first_name", models.CharField(max_length=100)),
                ("last_name", models.CharField(blank=True, default="", max_length=100)),
                ("family_ref", models.CharField(blank=True, max_length=64, null=True)),
            ],
            options={
                "verbose_name": "Pending Subscriber",
                "verbose_name_plural": "Pending Subscribers",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Subscriber",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier for this record", primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("first_name", models.CharField(max_length=100)),
                ("last_name", models.CharField(blank=True, default="", max_length=100)),
                ("status", models.CharField(choices=[("active", "Active"), ("scholarship", "Scholarship"), ("inactive", "Inactive")], db_index=True, default="active", help_text="Billing status; only active subscribers are charged", max_length=20)),
                ("family_ref", models.CharField(blank=True, db_index=True, help_text="Grouping key shared by siblings for the family rate", max_length=64, null=True)),
                ("custom_monthly_fee_cents", models.PositiveBigIntegerField(blank=True, help_text="Monthly fee override in cents (null = computed)", null=True)),
            ],
            options={
                "verbose_name": "Subscriber",
                "verbose_name_plural": "Subscribers",
                "ordering": ["created_at"],
            },
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier for this record", primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("pending_subject_ref", models.CharField(blank=True, db_index=True, help_text="Pending subscriber id, kept until staff confirmation links it", max_length=64, null=True)),
                ("amount_cents", models.PositiveBigIntegerField(help_text="Amount in cents")),
                ("kind", models.CharField(choices=[("enrollment", "Enrollment"), ("monthly", "Monthly"), ("custom", "Custom"), ("charge", "Charge")], db_index=True, max_length=20)),
                ("method", models.CharField(blank=True, choices=[("paguelofacil", "PagueloFacil"), ("yappy", "Yappy"), ("cash", "Cash"), ("transfer", "Bank Transfer"), ("other", "Other")], help_text="Payment method (null for charges)", max_length=20, null=True)),
                ("status", django_fsm.FSMField(choices=[("pending", "Pending"), ("approved", "Approved"), ("rejected", "Rejected"), ("cancelled", "Cancelled"), ("overdue", "Overdue")], db_index=True, default="pending", help_text="Current status (managed by FSM)", max_length=50)),
                ("payment_date", models.DateField(default=django.utils.timezone.localdate)),
                ("period", models.CharField(blank=True, db_index=True, help_text='Billing month as "YYYY-MM"', max_length=7, null=True)),
                ("correlation_key", models.CharField(blank=True, help_text="Gateway correlation key (gateway:operation_id)", max_length=255, null=True, unique=True)),
                ("gateway_order_id", models.CharField(blank=True, db_index=True, max_length=64, null=True)),
                ("notes", models.TextField(blank=True, default="")),
                ("metadata", models.JSONField(blank=True, default=dict, help_text="Correlation markers captured from the gateway")),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("rejected_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("subscriber", models.ForeignKey(blank=True, help_text="Confirmed subscriber this payment belongs to", null=True, on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="billing.subscriber")),
            ],
            options={
                "verbose_name": "Payment",
                "verbose_name_plural": "Payments",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["subscriber", "status"], name="billing_pay_subscri_6c1f0e_idx"),
                    models.Index(fields=["kind", "status", "period"], name="billing_pay_kind_3b9d52_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount_cents__gt", 0)), name="billing_payment_amount_positive"),
                    models.UniqueConstraint(condition=models.Q(("kind", "charge")), fields=("subscriber", "period"), name="billing_one_charge_per_subscriber_period"),
                ],
            },
        ),
        migrations.CreateModel(
            name="LateFee",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier for this record", primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("period", models.CharField(db_index=True, max_length=7)),
                ("original_amount_cents", models.PositiveBigIntegerField()),
                ("fee_amount_cents", models.PositiveBigIntegerField()),
                ("fee_type", models.CharField(choices=[("percentage", "Percentage"), ("fixed", "Fixed Amount")], max_length=20)),
                ("rate", models.DecimalField(decimal_places=2, max_digits=10)),
                ("days_overdue", models.PositiveIntegerField()),
                ("applied_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("is_reapplication", models.BooleanField(default=False, help_text="Created by a forced re-run (exempt from the one-per-period rule)")),
                ("payment", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="late_fees", to="billing.payment")),
                ("subscriber", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="late_fees", to="billing.subscriber")),
            ],
            options={
                "verbose_name": "Late Fee",
                "verbose_name_plural": "Late Fees",
                "ordering": ["-applied_at"],
                "indexes": [
                    models.Index(fields=["subscriber", "period"], name="billing_lat_subscri_9a4e27_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("fee_amount_cents__gt", 0)), name="billing_late_fee_amount_positive"),
                    models.UniqueConstraint(condition=models.Q(("is_reapplication", False)), fields=("subscriber", "period"), name="billing_one_late_fee_per_subscriber_period"),
                ],
            },
        ),
    ]
