"""
booking_manager.py
------------------
The booking lifecycle.

    timeslot/available --claim--------------> booking/pending
    booking/pending    --approve------------> booking/approved
    booking/pending    --reject-------------> booking/rejected  (+ new available timeslot)
    booking/pending|approved --cancel-------> booking/canceled  (+ new available timeslot)
    booking/pending|approved --user cancel--> booking/canceled  (+ new available timeslot),
                                               only while start is more than the cutoff away

Time-driven transitions (completed/expired) live in status_sweeper.py.

Rules:
- Every operation runs inside one transaction.atomic block and locks the row it
  checks (select_for_update), so two concurrent claims on one timeslot cannot
  both win: the loser sees a non-available row and gets NotFound.
- Rejecting or canceling a booking always inserts a fresh available timeslot
  with the same infrastructure/date/start/end in the same transaction.
- Emails go out through transaction.on_commit. A failing notifier is logged and
  never undoes a committed transition.
- Database failures surface as TransientStoreError after rollback.
"""

import logging
import os
from contextlib import contextmanager
from datetime import timedelta

from django.db import DatabaseError, transaction
from django.utils import timezone

from ..exceptions import (
    NotFound,
    PolicyError,
    TransientStoreError,
    ValidationError,
)
from ..models import ActionToken, BookingAnswer, FilterQuestion, TimeWindow
from . import access, rules
from .file_store import FileStore
from .locking import lock_queryset_if_possible
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

Status = TimeWindow.Status
Kind = TimeWindow.Kind

# Which booking statuses each admin termination may start from.
TERMINATION_SOURCES = {
    Status.REJECTED: (Status.PENDING,),
    Status.CANCELED: (Status.PENDING, Status.APPROVED),
}


def _question_id(key) -> int:
    try:
        return int(key)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid question id '{key}'.")


def normalize_answers(answers) -> dict:
    """
    Map question id -> text answer dict.

    Accepted shapes per question:
      "some text"                          (text shorthand)
      {"type": "text", "value": "..."}

    File answers are never taken from the caller; they come from uploads the
    server staged itself (see with_staged_files).
    """
    normalized = {}
    for key, answer in (answers or {}).items():
        question_id = _question_id(key)
        if isinstance(answer, dict):
            if answer.get("type", "text") != "text":
                raise ValidationError(f"Answer to question {question_id} must be text; upload files instead.")
            answer = {"type": "text", "value": "" if answer.get("value") is None else str(answer["value"])}
        else:
            answer = {"type": "text", "value": "" if answer is None else str(answer)}
        normalized[question_id] = answer
    return normalized


def with_staged_files(answers, staged_files) -> dict:
    """
    Add file answers for server-staged uploads.

    Args:
        answers: output of normalize_answers()
        staged_files: {question_id: {"temp_path": ..., "original_name": ...}}
    """
    combined = dict(answers)
    for key, info in (staged_files or {}).items():
        combined[_question_id(key)] = {
            "type": "file",
            "file_path": info.get("temp_path"),
            "original_name": info.get("original_name"),
        }
    return combined


def answer_is_present(answer) -> bool:
    if not answer:
        return False
    if answer.get("type") == "file":
        return bool(answer.get("file_path"))
    return bool(str(answer.get("value") or "").strip())


def missing_required_answers(infrastructure_id, answers) -> list:
    required = FilterQuestion.objects.filter(
        infrastructure_id=infrastructure_id, is_required=True
    ).values_list("id", flat=True)
    return [qid for qid in required if not answer_is_present(answers.get(qid))]


class BookingManager:
    def __init__(self, notifier=None, file_store=None, clock=None):
        self.notifier = notifier or NotificationService()
        self.file_store = file_store or FileStore()
        self.clock = clock or timezone.now

    # ------------------------------------------------------------------
    # plumbing
    # ------------------------------------------------------------------

    @contextmanager
    def atomic(self, operation: str):
        """transaction.atomic that turns database failures into TransientStoreError."""
        try:
            with transaction.atomic():
                yield
        except DatabaseError as e:
            logger.error("Store failure during %s: %s", operation, e)
            raise TransientStoreError() from e

    def _lock_window(self, **filters):
        return lock_queryset_if_possible(TimeWindow.objects.filter(**filters)).first()

    def after_commit(self, description, func, *args) -> None:
        """Run a notifier call once the current transaction commits; log failures."""

        def _run():
            try:
                func(*args)
            except Exception:
                logger.exception("Notification failed (%s)", description)

        transaction.on_commit(_run)

    def _notify_status(self, window, new_status) -> None:
        self.after_commit(
            f"{new_status} window #{window.pk}",
            self.notifier.notify_claimant_of_status_change,
            window,
            window.infrastructure,
            new_status,
        )

    def _save_answers(self, window, answers, promoted) -> None:
        known = set(
            FilterQuestion.objects.filter(
                infrastructure_id=window.infrastructure_id, id__in=list(answers)
            ).values_list("id", flat=True)
        )
        for question_id, answer in answers.items():
            if question_id not in known:
                logger.warning("Ignoring answer to unknown question %s for window #%s", question_id, window.pk)
                continue

            document_path = None
            if answer.get("type") == "file":
                file_path = answer.get("file_path")
                answer_text = answer.get("original_name") or os.path.basename(file_path or "")
                document_path = self.file_store.promote(file_path, window.pk)
                promoted.append(document_path)
            else:
                answer_text = str(answer.get("value") or "")

            BookingAnswer.objects.create(
                window=window,
                question_id=question_id,
                answer_text=answer_text,
                document_path=document_path,
            )

    def _terminate(self, window, new_status):
        """Reject/cancel a locked booking and put its time back on offer."""
        if not window.is_booking or window.status not in TERMINATION_SOURCES[new_status]:
            raise PolicyError(
                f"Cannot mark a {window.kind} that is {window.status} as {new_status}."
            )
        window.status = new_status
        window.save(update_fields=["status"])

        replacement = window.compensating_timeslot()
        replacement.save()

        logger.info(
            "Window #%s %s; compensating timeslot #%s created", window.pk, new_status, replacement.pk
        )
        self._notify_status(window, new_status)
        return replacement

    # ------------------------------------------------------------------
    # lifecycle operations
    # ------------------------------------------------------------------

    def claim(self, window_id, claimant_email, purpose="", answers=None, staged_files=None, *,
              skip_validation=False):
        """
        Claim an available timeslot: it becomes a pending booking.

        Args:
            window_id: TimeWindow pk
            claimant_email: identity of the claimant
            purpose: free text
            answers: text answers, see normalize_answers()
            staged_files: uploads staged by FileStore.stage_temp, keyed by question id;
                promoted into the booking's folder
            skip_validation: trusted callers (guest confirmation) that already
                checked required answers

        Raises:
            NotFound: no available timeslot with this id
            ValidationError: required questions unanswered (missing_answers)
            FilePromotionError: a staged upload could not be moved
        """
        if not claimant_email:
            raise ValidationError("A claimant email is required.")
        answers = with_staged_files(normalize_answers(answers), staged_files)
        promoted = []

        try:
            with self.atomic("claim"):
                window = self._lock_window(pk=window_id, kind=Kind.TIMESLOT, status=Status.AVAILABLE)
                if window is None:
                    raise NotFound("Timeslot not found or not available.")

                if not skip_validation:
                    missing = missing_required_answers(window.infrastructure_id, answers)
                    if missing:
                        raise ValidationError(
                            "Not all required questions were answered.", missing_answers=missing
                        )

                window.mark_claimed(claimant_email, purpose)
                window.save(update_fields=["kind", "status", "claimant_email", "purpose"])
                self._save_answers(window, answers, promoted)

                token = ActionToken.issue(window, ActionToken.Purpose.MANAGER_ACTION, now=self.clock())
                self.after_commit(
                    f"new claim on window #{window.pk}",
                    self.notifier.notify_managers_of_new_claim,
                    window,
                    window.infrastructure,
                    access.managers_for(window.infrastructure_id),
                    token,
                )
        except Exception:
            self.file_store.cleanup(promoted)
            raise

        logger.info("Window #%s claimed by %s", window.pk, claimant_email)
        return window

    def approve(self, window_id, actor):
        """Approve a pending booking. Only pending bookings can be approved."""
        with self.atomic("approve"):
            window = self._lock_window(pk=window_id)
            if window is None:
                raise NotFound("Booking not found.")
            access.ensure_can_manage(actor, window.infrastructure_id)

            if not window.is_booking or window.status != Status.PENDING:
                raise PolicyError(
                    f"Only pending bookings can be approved (current status: {window.status})."
                )
            window.status = Status.APPROVED
            window.save(update_fields=["status"])
            self._notify_status(window, Status.APPROVED)

        logger.info("Window #%s approved by %s", window.pk, actor)
        return window

    def reject_or_cancel(self, window_id, actor, new_status):
        """
        Reject a pending booking or cancel a pending/approved one.

        Returns:
            (window, replacement): the terminated booking and the new available timeslot
        """
        if new_status not in TERMINATION_SOURCES:
            raise ValidationError('Invalid status. Must be "rejected" or "canceled".')

        with self.atomic(f"{new_status} booking"):
            window = self._lock_window(pk=window_id)
            if window is None:
                raise NotFound("Booking not found.")
            access.ensure_can_manage(actor, window.infrastructure_id)
            replacement = self._terminate(window, new_status)

        return window, replacement

    def user_cancel(self, window_id, claimant_email):
        """
        Cancel your own pending/approved booking, outside the cutoff window.

        Raises:
            NotFound: not a booking of this claimant
            PolicyError: wrong status, or start is within the cutoff
        """
        now = self.clock()
        with self.atomic("user cancel"):
            window = self._lock_window(
                pk=window_id, kind=Kind.BOOKING, claimant_email__iexact=claimant_email or ""
            )
            if window is None:
                raise NotFound("Booking not found.")
            if window.status not in (Status.PENDING, Status.APPROVED):
                raise PolicyError("Only pending or approved bookings can be canceled by the user.")

            cutoff_hours = rules.user_cancel_cutoff_hours()
            if window.starts_at() - now <= timedelta(hours=cutoff_hours):
                raise PolicyError(f"Bookings within {cutoff_hours} hours cannot be canceled.")

            replacement = self._terminate(window, Status.CANCELED)

        return window, replacement

    def cancel_timeslots(self, ids, actor) -> int:
        """Withdraw unclaimed available timeslots. No replacement rows are created."""
        if not ids:
            raise ValidationError("No timeslots specified for cancellation.")

        with self.atomic("cancel timeslots"):
            rows = list(
                lock_queryset_if_possible(
                    TimeWindow.objects.filter(
                        pk__in=ids, kind=Kind.TIMESLOT, status=Status.AVAILABLE
                    )
                ).values_list("pk", "infrastructure_id")
            )
            for infrastructure_id in {infra for _, infra in rows}:
                access.ensure_can_manage(actor, infrastructure_id)

            canceled = TimeWindow.objects.filter(pk__in=[pk for pk, _ in rows]).update(
                status=Status.CANCELED
            )

        logger.info("%d timeslot(s) canceled by %s", canceled, actor)
        return canceled

    def process_email_action(self, token, action) -> dict:
        """
        Approve or reject through an emailed manager link.

        The token is single-use. If the booking was already handled some other
        way the token is consumed and the current status is reported back.
        """
        if action not in ("approve", "reject"):
            raise ValidationError("Invalid action.")

        now = self.clock()
        with self.atomic(f"email {action}"):
            record = lock_queryset_if_possible(
                ActionToken.objects.filter(token=token, purpose=ActionToken.Purpose.MANAGER_ACTION)
            ).first()
            if record is None or not record.is_usable(now):
                raise NotFound("Invalid or expired token.")

            window = self._lock_window(pk=record.window_id)
            if window is None:
                raise NotFound("Booking not found.")

            if not window.is_booking or window.status != Status.PENDING:
                record.consume(now)
                return {"status": "already-processed", "current": window.status, "window_id": window.pk}

            if action == "approve":
                window.status = Status.APPROVED
                window.save(update_fields=["status"])
                self._notify_status(window, Status.APPROVED)
            else:
                self._terminate(window, Status.REJECTED)
            record.consume(now)

        logger.info("Window #%s %s via email link", window.pk, action)
        return {"status": "success", "action": action, "window_id": window.pk}
