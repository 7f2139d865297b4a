"""
guest_booking.py
----------------
Booking without an account: reserve, then confirm by email.

Phase 1 (request_booking):
- validate name/email, the timeslot, the guest's daily limit and required answers
- store the claim intent in a single-use guest_booking token (24h)
- email the confirmation link once the transaction commits
- the timeslot itself is NOT touched yet

Phase 2 (confirm_booking):
- token must exist, be unused and unexpired
- daily limit is checked again (several requests may have been made before
  any of them was confirmed)
- the claim runs with validation skipped, staged uploads are promoted to the
  new booking's folder, the token is consumed, managers are notified after
  commit

A file that cannot be moved aborts the confirmation; staged files are removed
whenever a phase fails.
"""

import logging
import re

from django.conf import settings
from django.contrib.auth import get_user_model

from ..exceptions import NotFound, PolicyError, ValidationError
from ..models import ActionToken, TimeWindow
from . import rules
from .booking_manager import (
    BookingManager,
    missing_required_answers,
    normalize_answers,
    with_staged_files,
)
from .locking import lock_queryset_if_possible

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Bookings in these states do not count towards the guest daily limit.
NOT_COUNTED = (
    TimeWindow.Status.REJECTED,
    TimeWindow.Status.CANCELED,
    TimeWindow.Status.EXPIRED,
)


class GuestBookingService:
    def __init__(self, manager=None):
        self.manager = manager or BookingManager()

    @property
    def file_store(self):
        return self.manager.file_store

    def bookings_on(self, email, day) -> int:
        return (
            TimeWindow.objects.filter(
                kind=TimeWindow.Kind.BOOKING, claimant_email__iexact=email, date=day
            )
            .exclude(status__in=NOT_COUNTED)
            .count()
        )

    def _check_daily_limit(self, email, day) -> None:
        limit = rules.guest_max_bookings_per_day()
        if self.bookings_on(email, day) >= limit:
            raise PolicyError(
                "You have already made a booking for this day. Please choose another day.",
                status_code=429,
            )

    def request_booking(self, name, email, infrastructure_id, timeslot_id,
                        purpose="", answers=None, staged_files=None):
        """
        Phase 1. Returns the issued ActionToken.

        Args:
            staged_files: {question_id: {"temp_path": ..., "original_name": ...}}
                as returned by FileStore.stage_temp for each upload
        """
        staged_paths = [info.get("temp_path") for info in (staged_files or {}).values()]
        try:
            name = (name or "").strip()
            email = (email or "").strip().lower()
            if not name or not email or not infrastructure_id or not timeslot_id:
                raise ValidationError(
                    "Name, email, infrastructure ID, and timeslot ID are required."
                )
            if not EMAIL_RE.match(email):
                raise ValidationError("Invalid email format.")
            answers = normalize_answers(answers)

            with self.manager.atomic("guest booking request"):
                window = TimeWindow.objects.filter(
                    pk=timeslot_id,
                    infrastructure_id=infrastructure_id,
                    kind=TimeWindow.Kind.TIMESLOT,
                    status=TimeWindow.Status.AVAILABLE,
                ).first()
                if window is None:
                    raise NotFound("Timeslot not found or not available.")

                if get_user_model().objects.filter(email__iexact=email).exists():
                    raise PolicyError("This email is already registered. Please log in to book.")

                self._check_daily_limit(email, window.date)

                missing = missing_required_answers(
                    window.infrastructure_id, with_staged_files(answers, staged_files)
                )
                if missing:
                    raise ValidationError(
                        "Not all required questions were answered.", missing_answers=missing
                    )

                token = ActionToken.issue(
                    window,
                    ActionToken.Purpose.GUEST_BOOKING,
                    metadata={
                        "email": email,
                        "name": name,
                        "purpose": purpose or "",
                        "answers": {str(k): v for k, v in answers.items()},
                        "uploaded_files": {str(k): v for k, v in (staged_files or {}).items()},
                    },
                    now=self.manager.clock(),
                )
                confirm_url = settings.GUEST_CONFIRM_URL_TEMPLATE.format(token=token.token)
                self.manager.after_commit(
                    f"guest verification for {email}",
                    self.manager.notifier.notify_guest_verification,
                    name,
                    email,
                    confirm_url,
                )
        except Exception:
            self.file_store.cleanup(staged_paths)
            raise

        logger.info("Guest booking requested by %s for window #%s", email, window.pk)
        return token

    def confirm_booking(self, token) -> dict:
        """Phase 2. Returns a summary of the confirmed booking."""
        now = self.manager.clock()
        staged_paths = []
        try:
            with self.manager.atomic("guest booking confirmation"):
                record = lock_queryset_if_possible(
                    ActionToken.objects.filter(token=token)
                ).first()
                if record is None or not record.is_usable(now):
                    raise NotFound("Invalid or expired booking token.")
                if record.purpose != ActionToken.Purpose.GUEST_BOOKING:
                    raise NotFound("Invalid token type.")

                meta = record.metadata or {}
                email = meta.get("email")
                window_date = (
                    TimeWindow.objects.filter(pk=record.window_id)
                    .values_list("date", flat=True)
                    .first()
                )
                if not email or window_date is None:
                    raise NotFound("Invalid booking token.")

                self._check_daily_limit(email, window_date)

                staged_files = meta.get("uploaded_files") or {}
                staged_paths = [info.get("temp_path") for info in staged_files.values()]
                window = self.manager.claim(
                    record.window_id,
                    email,
                    meta.get("purpose", ""),
                    meta.get("answers"),
                    staged_files,
                    skip_validation=True,
                )
                record.consume(now)
        except Exception:
            self.file_store.cleanup(staged_paths)
            raise

        logger.info("Guest booking #%s confirmed by %s", window.pk, email)
        return {
            "booking_id": window.pk,
            "infrastructure_name": window.infrastructure.name,
            "date": window.date.isoformat(),
            "time": f"{window.start_time:%H:%M} - {window.end_time:%H:%M}",
        }
