"""Celery tasks for the booking app."""

from celery import shared_task

from .services.status_sweeper import run_sweep_now


# Scheduled by celery beat (see scheduling_system/celery.py).
@shared_task(name="booking.sweep_statuses")
def sweep_statuses() -> dict:
    return run_sweep_now()
