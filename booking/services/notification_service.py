"""
NotificationService
-------------------
Purpose:
- Send booking-related emails: new claims to managers, status changes to the
  claimant, and verification links to guests.
- In development the console email backend prints messages to the terminal;
  switch EMAIL_BACKEND to SMTP in production.

Every attempt is recorded in notifications.Notification. Failures are raised
to the caller; the booking services call us after commit and log (never
propagate) those failures.
"""

import logging

from django.conf import settings
from django.core.mail import send_mail

from notifications.models import Notification

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Sends booking emails through Django's configured EMAIL_BACKEND.
    """

    def _send(self, subject: str, body: str, to_email: str, window=None) -> None:
        if not to_email:
            return
        try:
            send_mail(
                subject=subject,
                message=body,
                from_email=settings.DEFAULT_FROM_EMAIL,
                recipient_list=[to_email],
                fail_silently=False,
            )
        except Exception:
            Notification.objects.create(
                recipient_email=to_email, subject=subject, message=body, window=window, sent=False
            )
            raise
        Notification.objects.create(
            recipient_email=to_email, subject=subject, message=body, window=window, sent=True
        )

    @staticmethod
    def _when(window) -> str:
        return f"{window.date:%Y-%m-%d} {window.start_time:%H:%M}-{window.end_time:%H:%M}"

    def notify_managers_of_new_claim(self, window, infrastructure, managers, action_token) -> None:
        """
        Tell each manager about a new pending booking, with approve/reject links.

        Args:
            window: the claimed TimeWindow
            infrastructure: its Infrastructure
            managers: iterable of users with an email
            action_token: ActionToken (manager_action) or its token string
        """
        token = getattr(action_token, "token", action_token)
        approve_url = settings.EMAIL_ACTION_URL_TEMPLATE.format(action="approve", token=token)
        reject_url = settings.EMAIL_ACTION_URL_TEMPLATE.format(action="reject", token=token)
        subject = f"New booking request: {infrastructure.name} on {window.date:%Y-%m-%d}"
        for manager in managers:
            body = (
                f"Hello {manager.get_full_name() or manager.get_username()},\n\n"
                f"{window.claimant_email} requested {infrastructure.name}.\n"
                f"- When: {self._when(window)}\n"
                f"- Purpose: {window.purpose or '-'}\n\n"
                f"Approve: {approve_url}\n"
                f"Reject:  {reject_url}\n"
            )
            self._send(subject, body, manager.email, window=window)

    def notify_claimant_of_status_change(self, window, infrastructure, new_status) -> None:
        subject = f"Booking #{window.pk} {new_status}"
        body = (
            "Hello,\n\n"
            f"Your booking for {infrastructure.name} ({self._when(window)}) is now {new_status}.\n"
        )
        self._send(subject, body, window.claimant_email, window=window)

    def notify_guest_verification(self, name, email, confirm_url) -> None:
        body = (
            f"Hello {name or 'there'},\n\n"
            "Please confirm your booking request by opening the link below. "
            f"The link expires in {settings.ACTION_TOKEN_TTL_HOURS} hours.\n\n"
            f"{confirm_url}\n\n"
            "If you did not request a booking you can ignore this email."
        )
        self._send("Confirm your booking request", body, email)
