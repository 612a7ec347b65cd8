"""
ASGI config for the billing service.

Uvicorn uses this entry point to serve the Django application.
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_asgi_application()
