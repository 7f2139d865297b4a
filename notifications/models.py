# notifications/models.py
#
# Purpose:
# - Record emails sent about bookings (new claims, status changes, guest
#   verification links).
#
# Design:
# - recipient_email instead of a user FK: guests have no account.
# - window is optional (guest verification mails are not tied to a booking yet).
# - 'sent' indicates delivery attempt result.
#
from django.db import models


class Notification(models.Model):
    recipient_email = models.EmailField()
    subject = models.CharField(max_length=255)
    message = models.TextField()
    window = models.ForeignKey(
        "booking.TimeWindow",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="notifications",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    sent = models.BooleanField(default=False)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Notification to {self.recipient_email} at {self.created_at:%Y-%m-%d %H:%M}"
