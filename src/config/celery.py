"""
Celery configuration for the storefront orders project.

``DJANGO_SETTINGS_MODULE`` is set before the app is instantiated so that
Celery reads the Django settings (``CELERY_`` prefix), including the beat
schedule that drives the unpaid-order sweep and the outbox relay.
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("storefront")

# Read configuration from Django settings with the CELERY_ prefix
app.config_from_object("django.conf:settings", namespace="CELERY")

# Discover tasks.py in every installed app
app.autodiscover_tasks()
