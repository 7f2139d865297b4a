# scheduling_system/celery.py
#
# Purpose:
# - Celery app for background work.
# - Beat runs the status sweeper on the CELERY_BEAT_SCHEDULE from settings; the sweep lives in
#   booking.services.status_sweeper so it can be called synchronously too.
#
import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "scheduling_system.settings")

app = Celery("scheduling_system")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
