from datetime import time, timedelta

from django.test import TestCase, override_settings

from booking.exceptions import PolicyError
from booking.services import rules
from booking.services.booking_manager import BookingManager
from booking.services.guest_booking import GuestBookingService
from configmgr.models import SystemSetting

from .factories import make_booking, make_infrastructure, make_timeslot


class RuleSettingTests(TestCase):
    def test_defaults_come_from_django_settings(self):
        with override_settings(GUEST_MAX_BOOKINGS_PER_DAY=3, USER_CANCEL_CUTOFF_HOURS=12):
            self.assertEqual(rules.guest_max_bookings_per_day(), 3)
            self.assertEqual(rules.user_cancel_cutoff_hours(), 12)

    def test_system_setting_overrides(self):
        SystemSetting.objects.create(key="USER_CANCEL_CUTOFF_HOURS", value="48")
        self.assertEqual(rules.user_cancel_cutoff_hours(), 48)

    def test_unparsable_value_falls_back(self):
        SystemSetting.objects.create(key="GUEST_MAX_BOOKINGS_PER_DAY", value="lots")
        with self.assertLogs("booking.services.rules", level="WARNING"):
            self.assertEqual(rules.get_int_setting("GUEST_MAX_BOOKINGS_PER_DAY", 1), 1)

    def test_longer_cutoff_blocks_cancel(self):
        infra = make_infrastructure()
        booking = make_booking(infra)
        SystemSetting.objects.create(key="USER_CANCEL_CUTOFF_HOURS", value="48")
        now = booking.starts_at() - timedelta(hours=30)

        with self.assertRaises(PolicyError) as ctx:
            BookingManager(clock=lambda: now).user_cancel(booking.id, booking.claimant_email)
        self.assertIn("48 hours", ctx.exception.message)

    def test_raised_guest_limit(self):
        infra = make_infrastructure()
        slot = make_timeslot(infra)
        make_booking(infra, claimant_email="grace@example.com", day=slot.date, start=time(14), end=time(15))
        SystemSetting.objects.create(key="GUEST_MAX_BOOKINGS_PER_DAY", value="2")

        token = GuestBookingService().request_booking(
            "Grace", "grace@example.com", infra.id, slot.id
        )
        self.assertTrue(token.token)
