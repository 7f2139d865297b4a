"""
timeslot_generator.py
---------------------
Batch creation of available timeslots for an infrastructure.

For each day in [start_date, end_date] we walk forward from daily_start_time
in slot_duration_minutes steps, producing slots_per_day candidates. A candidate
that overlaps an existing *available* window on the same infrastructure/day is
skipped; the rest are inserted as available timeslots.

Overlap is an expected outcome, not an error: the result reports
{"created": n, "skipped": m}.

Concurrency:
- The overlap check and the insert run in one transaction, but two batches for
  the same infrastructure can still interleave (check-then-act). We lock the
  infrastructure row with select_for_update where the backend supports it,
  which serializes batches per infrastructure on PostgreSQL/MySQL.
"""

import logging

from django.db import DatabaseError, transaction
from django.utils import timezone

from ..exceptions import NotFound, TransientStoreError, ValidationError
from ..models import Infrastructure, TimeWindow
from . import access
from .locking import lock_queryset_if_possible
from .slot_utils import (
    daterange,
    generate_day_candidates,
    intervals_overlap,
    parse_date,
    parse_hhmm,
)

logger = logging.getLogger(__name__)


class TimeslotGenerator:
    def _validate(self, start_date, end_date, daily_start_time, slot_duration_minutes,
                  slots_per_day, today):
        start = parse_date(start_date)
        end = parse_date(end_date)
        daily_start = parse_hhmm(daily_start_time)

        try:
            duration = int(slot_duration_minutes)
            count = int(slots_per_day)
        except (TypeError, ValueError):
            raise ValidationError("Slot duration and slots per day must be whole numbers.")
        if duration <= 0:
            raise ValidationError("Slot duration must be greater than zero.")
        if count <= 0:
            raise ValidationError("Number of slots per day must be greater than zero.")
        if start < today:
            raise ValidationError("Start date cannot be in the past.")
        if end < start:
            raise ValidationError("End date must be after start date.")

        # Same candidates every day; computing them once also rejects
        # sequences that cross midnight before anything is written.
        candidates = generate_day_candidates(daily_start, duration, count)
        return start, end, candidates

    def _has_available_overlap(self, infrastructure_id, day, start, end) -> bool:
        existing = TimeWindow.objects.filter(
            infrastructure_id=infrastructure_id,
            date=day,
            status=TimeWindow.Status.AVAILABLE,
        ).values_list("start_time", "end_time")
        return any(intervals_overlap(start, end, s, e) for s, e in existing)

    def create_timeslots(
        self,
        infrastructure_id,
        start_date,
        end_date,
        daily_start_time,
        slot_duration_minutes,
        slots_per_day,
        actor=None,
        today=None,
    ) -> dict:
        """
        Create available timeslots in bulk.

        Args:
            infrastructure_id: target infrastructure
            start_date, end_date: date or 'YYYY-MM-DD'; start may not be in the past
            daily_start_time: time or 'HH:MM'
            slot_duration_minutes: > 0
            slots_per_day: > 0
            actor: when given, must be an admin or a manager of the infrastructure
            today: override for "today" (defaults to the local date)

        Returns:
            {"created": int, "skipped": int}
        """
        today = today or timezone.localdate()
        start, end, candidates = self._validate(
            start_date, end_date, daily_start_time, slot_duration_minutes, slots_per_day, today
        )

        if not Infrastructure.objects.filter(pk=infrastructure_id).exists():
            raise NotFound("Infrastructure not found.")
        if actor is not None:
            access.ensure_can_manage(actor, infrastructure_id)

        created = 0
        skipped = 0
        try:
            with transaction.atomic():
                lock_queryset_if_possible(
                    Infrastructure.objects.filter(pk=infrastructure_id)
                ).first()

                for day in daterange(start, end):
                    for slot_start, slot_end in candidates:
                        if self._has_available_overlap(infrastructure_id, day, slot_start, slot_end):
                            skipped += 1
                            continue
                        TimeWindow.new_timeslot(infrastructure_id, day, slot_start, slot_end).save()
                        created += 1
        except DatabaseError as e:
            logger.error("Timeslot batch for infrastructure %s failed: %s", infrastructure_id, e)
            raise TransientStoreError() from e

        logger.info(
            "Timeslot batch for infrastructure %s (%s..%s): created=%d skipped=%d",
            infrastructure_id, start, end, created, skipped,
        )
        return {"created": created, "skipped": skipped}
