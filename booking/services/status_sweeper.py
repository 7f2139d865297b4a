"""
status_sweeper.py
-----------------
Time-driven status updates.

One pass runs three conditional bulk updates in a single transaction:
  1) booking/approved  whose end   has passed -> completed
  2) booking/pending   whose start has passed -> expired
  3) timeslot/available whose end  has passed -> expired

Nothing is re-offered here: an expired timeslot's time is already gone.
Each update only touches rows in its source status, so running the sweep twice
in a row changes nothing the second time, and it can run alongside lifecycle
operations (those only act on windows that have not elapsed).
"""

import logging

from django.db import DatabaseError, transaction
from django.db.models import Q
from django.utils import timezone

from ..exceptions import TransientStoreError
from ..models import TimeWindow

logger = logging.getLogger(__name__)

Status = TimeWindow.Status
Kind = TimeWindow.Kind


def _elapsed(field: str, now) -> Q:
    """Rows whose date + <field> is strictly before now (local time)."""
    local_now = timezone.localtime(now)
    today = local_now.date()
    return Q(date__lt=today) | Q(date=today, **{f"{field}__lt": local_now.time()})


def run_sweep_now(now=None) -> dict:
    """
    Apply one sweep pass.

    Returns:
        {"completed": int, "expired": int, "expired_slots": int}
    """
    now = now or timezone.now()
    try:
        with transaction.atomic():
            completed = TimeWindow.objects.filter(
                _elapsed("end_time", now), kind=Kind.BOOKING, status=Status.APPROVED
            ).update(status=Status.COMPLETED)

            expired = TimeWindow.objects.filter(
                _elapsed("start_time", now), kind=Kind.BOOKING, status=Status.PENDING
            ).update(status=Status.EXPIRED)

            expired_slots = TimeWindow.objects.filter(
                _elapsed("end_time", now), kind=Kind.TIMESLOT, status=Status.AVAILABLE
            ).update(status=Status.EXPIRED)
    except DatabaseError as e:
        logger.error("Status sweep failed: %s", e)
        raise TransientStoreError() from e

    result = {"completed": completed, "expired": expired, "expired_slots": expired_slots}
    if completed or expired or expired_slots:
        logger.info(
            "Status update completed: %(completed)d bookings completed, "
            "%(expired)d bookings expired, %(expired_slots)d timeslots expired",
            result,
        )
    return result
