# booking/models.py
#
# Purpose:
# - Core domain models for infrastructure scheduling.
#
# Design highlights:
# - Infrastructure: a bookable shared resource; "is_active" controls visibility.
# - InfrastructureManager: which users may approve/reject for which resource.
# - FilterQuestion: per-resource questions answered at booking time.
# - TimeWindow: one row per time window, either an unclaimed "timeslot" or a
#   claimed "booking".
#   • Build through TimeWindow.new_timeslot() and window.mark_claimed(); both
#     keep the kind/claimant invariant (timeslot => no claimant, booking =>
#     claimant) so callers never set the fields by hand.
#   • Rows are never deleted; every transition is a status update.
# - BookingAnswer: the answers given when a timeslot was claimed.
# - ActionToken: single-use, time-limited tokens for emailed manager actions
#   and for the guest reserve-then-confirm flow.
#
# Notes for developers:
# - Status changes go through booking.services.booking_manager.BookingManager
#   (and status_sweeper for time-driven ones). Do not flip statuses from views.
#

import secrets
from datetime import datetime, timedelta

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone


# -------------------------
# Bookable resource
# -------------------------
class Infrastructure(models.Model):
    """
    A shared resource (instrument, lab, room) that timeslots are offered for.
    """
    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True)
    location = models.CharField(max_length=100, blank=True)
    is_active = models.BooleanField(default=True)

    def __str__(self):
        return self.name


# -------------------------
# Manager assignment
# -------------------------
class InfrastructureManager(models.Model):
    """
    Grants a user approval authority over one infrastructure.
    Superusers bypass this table entirely (see services/access.py).
    """
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="managed_infrastructures",
    )
    infrastructure = models.ForeignKey(
        Infrastructure,
        on_delete=models.CASCADE,
        related_name="manager_assignments",
    )

    class Meta:
        unique_together = [("user", "infrastructure")]

    def __str__(self):
        return f"{self.user} manages {self.infrastructure}"


# -------------------------
# Per-resource questions
# -------------------------
class FilterQuestion(models.Model):
    QUESTION_TYPES = [
        ("text", "Text"),
        ("number", "Number"),
        ("dropdown", "Dropdown"),
        ("document", "Document"),
    ]

    infrastructure = models.ForeignKey(
        Infrastructure, on_delete=models.CASCADE, related_name="questions"
    )
    question_text = models.TextField()
    question_type = models.CharField(max_length=10, choices=QUESTION_TYPES, default="text")
    is_required = models.BooleanField(default=False)
    options = models.JSONField(default=list, blank=True)  # dropdown choices
    display_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["infrastructure_id", "display_order", "id"]

    def __str__(self):
        return self.question_text


# -------------------------
# Timeslot / booking row
# -------------------------
class TimeWindow(models.Model):
    """
    A time window on an infrastructure.

    kind:
    - "timeslot": offered, nobody has claimed it (claimant_email is empty)
    - "booking":  claimed by claimant_email

    status follows the lifecycle in services/booking_manager.py:
      available -> pending -> approved -> completed
      pending -> rejected, pending|approved -> canceled (a fresh available timeslot is added)
      pending/available -> expired (status sweeper)
    """

    class Kind(models.TextChoices):
        TIMESLOT = "timeslot", "Timeslot"
        BOOKING = "booking", "Booking"

    class Status(models.TextChoices):
        AVAILABLE = "available", "Available"
        PENDING = "pending", "Pending"
        APPROVED = "approved", "Approved"
        REJECTED = "rejected", "Rejected"
        COMPLETED = "completed", "Completed"
        EXPIRED = "expired", "Expired"
        CANCELED = "canceled", "Canceled"

    infrastructure = models.ForeignKey(
        Infrastructure, on_delete=models.CASCADE, related_name="windows"
    )
    date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()
    kind = models.CharField(max_length=10, choices=Kind.choices, default=Kind.TIMESLOT)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.AVAILABLE)
    claimant_email = models.EmailField(null=True, blank=True)
    purpose = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-date", "start_time"]
        indexes = [
            models.Index(fields=["infrastructure", "date", "status"], name="booking_win_infra_date_idx"),
            models.Index(fields=["claimant_email", "date"], name="booking_win_claimant_idx"),
        ]

    def __str__(self):
        return f"{self.infrastructure} {self.date} {self.start_time:%H:%M}-{self.end_time:%H:%M} [{self.kind}/{self.status}]"

    # ---- factories ----

    @classmethod
    def new_timeslot(cls, infrastructure, date, start_time, end_time):
        """Unsaved available timeslot. Raises ValidationError if start >= end."""
        if start_time >= end_time:
            raise ValidationError("Timeslot start time must be before its end time.")
        infrastructure_id = getattr(infrastructure, "pk", infrastructure)
        return cls(
            infrastructure_id=infrastructure_id,
            date=date,
            start_time=start_time,
            end_time=end_time,
            kind=cls.Kind.TIMESLOT,
            status=cls.Status.AVAILABLE,
            claimant_email=None,
            purpose="",
        )

    def mark_claimed(self, claimant_email, purpose=""):
        """Turn this available timeslot into a pending booking (not saved)."""
        if not claimant_email:
            raise ValidationError("A booking needs a claimant email.")
        if self.kind != self.Kind.TIMESLOT or self.status != self.Status.AVAILABLE:
            raise ValidationError("Only available timeslots can be claimed.")
        self.kind = self.Kind.BOOKING
        self.status = self.Status.PENDING
        self.claimant_email = claimant_email
        self.purpose = purpose or ""

    def compensating_timeslot(self):
        """Fresh available twin of this window, same resource/date/time."""
        return TimeWindow.new_timeslot(
            self.infrastructure_id, self.date, self.start_time, self.end_time
        )

    # ---- helpers ----

    @property
    def is_booking(self):
        return self.kind == self.Kind.BOOKING

    def starts_at(self):
        return timezone.make_aware(
            datetime.combine(self.date, self.start_time), timezone.get_current_timezone()
        )

    def ends_at(self):
        return timezone.make_aware(
            datetime.combine(self.date, self.end_time), timezone.get_current_timezone()
        )

    def clean(self):
        if self.start_time and self.end_time and self.start_time >= self.end_time:
            raise ValidationError("Start time must be before end time.")
        if self.kind == self.Kind.TIMESLOT and self.claimant_email:
            raise ValidationError("Unclaimed timeslots cannot carry a claimant.")
        if self.kind == self.Kind.BOOKING and not self.claimant_email:
            raise ValidationError("Bookings must carry a claimant email.")


# -------------------------
# Answers given at claim time
# -------------------------
class BookingAnswer(models.Model):
    window = models.ForeignKey(TimeWindow, on_delete=models.CASCADE, related_name="answers")
    question = models.ForeignKey(FilterQuestion, on_delete=models.CASCADE, related_name="answers")
    answer_text = models.TextField(blank=True)
    document_path = models.CharField(max_length=500, null=True, blank=True)

    def __str__(self):
        return f"Answer to #{self.question_id} for window #{self.window_id}"


# -------------------------
# Emailed single-use tokens
# -------------------------
def _generate_token():
    return secrets.token_hex(32)


class ActionToken(models.Model):
    """
    Single-use token sent by email.

    - manager_action: lets a manager approve/reject one pending booking.
    - guest_booking:  holds a guest's deferred claim (metadata) until the guest
      confirms through the emailed link.

    Tokens expire passively: is_usable() is checked when one is consumed.
    """

    class Purpose(models.TextChoices):
        MANAGER_ACTION = "manager_action", "Manager action"
        GUEST_BOOKING = "guest_booking", "Guest booking"

    token = models.CharField(max_length=64, unique=True, default=_generate_token, editable=False)
    window = models.ForeignKey(TimeWindow, on_delete=models.CASCADE, related_name="action_tokens")
    purpose = models.CharField(max_length=20, choices=Purpose.choices)
    metadata = models.JSONField(default=dict, blank=True)
    expires_at = models.DateTimeField()
    used = models.BooleanField(default=False)
    used_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.purpose} token for window #{self.window_id}"

    @classmethod
    def issue(cls, window, purpose, metadata=None, ttl_hours=None, now=None):
        """Create and save a token valid for ttl_hours (default ACTION_TOKEN_TTL_HOURS)."""
        if ttl_hours is None:
            ttl_hours = settings.ACTION_TOKEN_TTL_HOURS
        now = now or timezone.now()
        return cls.objects.create(
            window=window,
            purpose=purpose,
            metadata=metadata or {},
            expires_at=now + timedelta(hours=ttl_hours),
        )

    def is_usable(self, now=None):
        now = now or timezone.now()
        return not self.used and now < self.expires_at

    def consume(self, now=None):
        self.used = True
        self.used_at = now or timezone.now()
        self.save(update_fields=["used", "used_at"])
