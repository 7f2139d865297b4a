"""
sweep_statuses.py
-----------------
Django management command to force a status sweep now.

Usage:
    python manage.py sweep_statuses

Behavior:
- Approved bookings whose end time passed become completed.
- Pending bookings whose start time passed become expired.
- Available timeslots whose end time passed become expired.
- Prints the counts. Celery beat runs the same pass every few minutes.
"""

from django.core.management.base import BaseCommand

from booking.services.status_sweeper import run_sweep_now


class Command(BaseCommand):
    help = "Advance elapsed bookings/timeslots to completed or expired."

    def handle(self, *args, **options):
        result = run_sweep_now()
        self.stdout.write(
            self.style.SUCCESS(
                f"Completed {result['completed']} booking(s), expired {result['expired']} "
                f"booking(s) and {result['expired_slots']} timeslot(s)."
            )
        )
