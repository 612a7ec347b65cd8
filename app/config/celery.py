"""
Celery configuration for the billing service.

Runs the billing batch jobs (monthly charges, late fees, order purge).
Schedules live in django-celery-beat's database tables and are created by
billing migrations. Tasks are auto-discovered from all installed Django apps.

Usage:
    celery -A config worker -l info
    celery -A config beat -l info
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings should be prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
