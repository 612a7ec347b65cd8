"""
Add celery-beat schedules for the billing batch jobs.

    - Monthly charges: 1st of each month at 06:00
    - Late fees: daily at 07:00
    - Expired order purge: daily at 03:00
"""

from django.db import migrations

SCHEDULES = [
    {
        "name": "Billing: Generate Monthly Charges",
        "task": "billing.tasks.generate_monthly_charges",
        "crontab": {"minute": "0", "hour": "6", "day_of_month": "1"},
        "description": "Creates one Pending charge per active subscriber for the current month.",
    },
    {
        "name": "Billing: Apply Late Fees",
        "task": "billing.tasks.apply_late_fees",
        "crontab": {"minute": "0", "hour": "7", "day_of_month": "*"},
        "description": "Appends a late fee to charges unpaid past their deadline plus grace days.",
    },
    {
        "name": "Billing: Purge Expired Orders",
        "task": "billing.tasks.purge_expired_orders",
        "crontab": {"minute": "0", "hour": "3", "day_of_month": "*"},
        "description": "Deletes order intents past their expiry.",
    },
]


def create_periodic_tasks(apps, schema_editor):
    CrontabSchedule = apps.get_model("django_celery_beat", "CrontabSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    for entry in SCHEDULES:
        crontab, _ = CrontabSchedule.objects.get_or_create(
            minute=entry["crontab"]["minute"],
            hour=entry["crontab"]["hour"],
            day_of_week="*",
            day_of_month=entry["crontab"]["day_of_month"],
            month_of_year="*",
        )
        PeriodicTask.objects.get_or_create(
            name=entry["name"],
            defaults={
                "task": entry["task"],
                "crontab": crontab,
                "enabled": True,
                "description": entry["description"],
            },
        )


def remove_periodic_tasks(apps, schema_editor):
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")
    PeriodicTask.objects.filter(name__in=[entry["name"] for entry in SCHEDULES]).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("billing", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
