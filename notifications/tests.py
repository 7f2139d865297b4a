from datetime import time
from unittest import mock

from django.core import mail
from django.test import TestCase

from booking.models import ActionToken, TimeWindow
from booking.services.notification_service import NotificationService
from booking.tests.factories import make_booking, make_infrastructure, make_manager
from notifications.models import Notification


class NotificationServiceTests(TestCase):

    def setUp(self):
        self.infra = make_infrastructure()
        self.booking = make_booking(self.infra, claimant_email="alice@example.com",
                                    start=time(9), end=time(10))
        self.service = NotificationService()

    def test_status_change_email(self):
        self.service.notify_claimant_of_status_change(self.booking, self.infra, TimeWindow.Status.APPROVED)

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["alice@example.com"])
        self.assertIn("approved", mail.outbox[0].body)
        self.assertIn("09:00-10:00", mail.outbox[0].body)

        record = Notification.objects.get()
        self.assertTrue(record.sent)
        self.assertEqual(record.window, self.booking)

    def test_manager_email_carries_action_links(self):
        manager = make_manager(self.infra)
        token = ActionToken.issue(self.booking, ActionToken.Purpose.MANAGER_ACTION)

        self.service.notify_managers_of_new_claim(self.booking, self.infra, [manager], token)

        body = mail.outbox[0].body
        self.assertIn(f"/email-action/approve/{token.token}", body)
        self.assertIn(f"/email-action/reject/{token.token}", body)
        self.assertIn("alice@example.com", body)

    def test_guest_verification_email(self):
        self.service.notify_guest_verification("Grace", "grace@example.com", "http://x/guest-confirm/abc")

        self.assertEqual(mail.outbox[0].subject, "Confirm your booking request")
        self.assertIn("http://x/guest-confirm/abc", mail.outbox[0].body)
        self.assertIsNone(Notification.objects.get().window)

    def test_failed_send_is_recorded_and_raised(self):
        with mock.patch("booking.services.notification_service.send_mail", side_effect=OSError("smtp down")):
            with self.assertRaises(OSError):
                self.service.notify_claimant_of_status_change(self.booking, self.infra, "rejected")

        self.assertFalse(Notification.objects.get().sent)
