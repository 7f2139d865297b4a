import shutil
import tempfile
from datetime import time

from django.core import mail
from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase

from booking.exceptions import FilePromotionError, NotFound, PolicyError, ValidationError
from booking.models import ActionToken, BookingAnswer, TimeWindow
from booking.services.file_store import FileStore
from booking.services.guest_booking import GuestBookingService

from .factories import (
    make_booking,
    make_infrastructure,
    make_manager,
    make_question,
    make_timeslot,
    make_user,
)

Status = TimeWindow.Status


class GuestBookingTests(TestCase):
    def setUp(self):
        self.infra = make_infrastructure()
        self.manager_user = make_manager(self.infra)
        self.slot = make_timeslot(self.infra)
        self.service = GuestBookingService()

    def _request(self, **overrides):
        kwargs = dict(
            name="Grace Guest",
            email="Grace@Example.com",
            infrastructure_id=self.infra.id,
            timeslot_id=self.slot.id,
            purpose="Pilot measurement",
        )
        kwargs.update(overrides)
        return self.service.request_booking(**kwargs)

    def test_request_sends_link_and_leaves_slot_alone(self):
        with self.captureOnCommitCallbacks(execute=True):
            token = self._request()

        self.assertEqual(token.purpose, ActionToken.Purpose.GUEST_BOOKING)
        self.assertEqual(token.metadata["email"], "grace@example.com")
        self.slot.refresh_from_db()
        self.assertEqual(self.slot.status, Status.AVAILABLE)

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["grace@example.com"])
        self.assertIn(f"/guest-confirm/{token.token}", mail.outbox[0].body)

    def test_confirm_claims_the_slot_once(self):
        token = self._request()

        with self.captureOnCommitCallbacks(execute=True):
            summary = self.service.confirm_booking(token.token)

        self.assertEqual(summary["booking_id"], self.slot.id)
        self.assertEqual(summary["infrastructure_name"], self.infra.name)
        self.assertEqual(summary["time"], "10:00 - 11:00")
        self.slot.refresh_from_db()
        self.assertEqual(self.slot.status, Status.PENDING)
        self.assertEqual(self.slot.claimant_email, "grace@example.com")
        self.assertEqual(self.slot.purpose, "Pilot measurement")
        self.assertEqual(mail.outbox[-1].to, [self.manager_user.email])

        with self.assertRaises(NotFound):
            self.service.confirm_booking(token.token)

    def test_unknown_token(self):
        with self.assertRaises(NotFound):
            self.service.confirm_booking("not-a-token")

    def test_manager_token_cannot_confirm(self):
        token = ActionToken.issue(self.slot, ActionToken.Purpose.MANAGER_ACTION)
        with self.assertRaises(NotFound):
            self.service.confirm_booking(token.token)

    def test_input_validation(self):
        with self.assertRaises(ValidationError):
            self._request(name="  ")
        with self.assertRaises(ValidationError):
            self._request(email="not-an-email")
        with self.assertRaises(ValidationError):
            self._request(timeslot_id=None)

    def test_slot_must_be_available_on_that_infrastructure(self):
        other = make_infrastructure(name="Cryostat")
        with self.assertRaises(NotFound):
            self._request(infrastructure_id=other.id)

        booked = make_booking(self.infra, start=time(12), end=time(13))
        with self.assertRaises(NotFound):
            self._request(timeslot_id=booked.id)

    def test_registered_email_must_log_in(self):
        make_user("grace", email="grace@example.com")
        with self.assertRaises(PolicyError):
            self._request()

    def test_daily_limit_on_request(self):
        make_booking(self.infra, claimant_email="grace@example.com", day=self.slot.date,
                     start=time(14), end=time(15))

        with self.assertRaises(PolicyError) as ctx:
            self._request()
        self.assertEqual(ctx.exception.status_code, 429)
        self.assertFalse(ActionToken.objects.filter(purpose=ActionToken.Purpose.GUEST_BOOKING).exists())

    def test_rejected_bookings_do_not_count(self):
        make_booking(self.infra, claimant_email="grace@example.com", status=Status.REJECTED,
                     day=self.slot.date, start=time(14), end=time(15))
        self.assertIsNotNone(self._request())

    def test_daily_limit_rechecked_on_confirm(self):
        second_slot = make_timeslot(self.infra, day=self.slot.date, start=time(11), end=time(12))
        first = self._request()
        second = self._request(timeslot_id=second_slot.id)

        self.service.confirm_booking(first.token)
        with self.assertRaises(PolicyError) as ctx:
            self.service.confirm_booking(second.token)
        self.assertEqual(ctx.exception.status_code, 429)

        second_slot.refresh_from_db()
        self.assertEqual(second_slot.status, Status.AVAILABLE)

    def test_required_answers_on_request(self):
        question = make_question(self.infra, "Sample type?")
        with self.assertRaises(ValidationError) as ctx:
            self._request()
        self.assertEqual(ctx.exception.missing_answers, [question.id])

        token = self._request(answers={str(question.id): "Tissue"})
        self.service.confirm_booking(token.token)
        self.assertEqual(BookingAnswer.objects.get(question=question).answer_text, "Tissue")


class GuestUploadTests(TestCase):
    def setUp(self):
        media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, media_root, True)
        override = self.settings(MEDIA_ROOT=media_root)
        override.enable()
        self.addCleanup(override.disable)

        self.infra = make_infrastructure()
        self.question = make_question(self.infra, "Safety form", question_type="document")
        self.slot = make_timeslot(self.infra)
        self.service = GuestBookingService()
        self.store = FileStore()

    def _stage(self):
        upload = SimpleUploadedFile("safety form.pdf", b"%PDF-1.4 test", content_type="application/pdf")
        temp_path = self.store.stage_temp(upload)
        return temp_path, {str(self.question.id): {"temp_path": temp_path, "original_name": "safety form.pdf"}}

    def test_staged_file_is_promoted_on_confirm(self):
        temp_path, staged = self._stage()
        self.assertTrue(self.store.is_temp(temp_path))

        token = self.service.request_booking(
            "Grace", "grace@example.com", self.infra.id, self.slot.id, staged_files=staged
        )
        self.service.confirm_booking(token.token)

        answer = BookingAnswer.objects.get(window=self.slot, question=self.question)
        self.assertEqual(answer.answer_text, "safety form.pdf")
        self.assertTrue(answer.document_path.startswith(f"booking_uploads/{self.slot.id}/"))
        self.assertTrue(default_storage.exists(answer.document_path))
        self.assertFalse(default_storage.exists(temp_path))

    def test_missing_staged_file_aborts_confirm(self):
        temp_path, staged = self._stage()
        token = self.service.request_booking(
            "Grace", "grace@example.com", self.infra.id, self.slot.id, staged_files=staged
        )
        default_storage.delete(temp_path)

        with self.assertRaises(FilePromotionError):
            self.service.confirm_booking(token.token)

        self.slot.refresh_from_db()
        self.assertEqual(self.slot.status, Status.AVAILABLE)
        self.assertFalse(ActionToken.objects.get(token=token.token).used)
        self.assertFalse(BookingAnswer.objects.exists())

    def test_failed_request_removes_staged_files(self):
        temp_path, staged = self._stage()
        with self.assertRaises(ValidationError):
            self.service.request_booking(
                "Grace", "bad-email", self.infra.id, self.slot.id, staged_files=staged
            )
        self.assertFalse(default_storage.exists(temp_path))

    def test_upload_under_a_non_numeric_field_is_refused(self):
        temp_path, _ = self._stage()
        staged = {"abc": {"temp_path": temp_path, "original_name": "safety form.pdf"}}

        with self.assertRaises(ValidationError) as ctx:
            self.service.request_booking(
                "Grace", "grace@example.com", self.infra.id, self.slot.id, staged_files=staged
            )

        self.assertIn("Invalid question id", ctx.exception.message)
        self.assertFalse(default_storage.exists(temp_path))
        self.assertFalse(ActionToken.objects.exists())


class FileStorePathTests(TestCase):
    def setUp(self):
        media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, media_root, True)
        override = self.settings(MEDIA_ROOT=media_root)
        override.enable()
        self.addCleanup(override.disable)
        self.store = FileStore()

    def test_only_files_directly_in_temp_count_as_staged(self):
        self.assertTrue(self.store.is_temp("booking_uploads/temp/abc.pdf"))
        for path in [
            "",
            None,
            "booking_uploads/temp/../1/victim.pdf",
            "booking_uploads/1/victim.pdf",
            "booking_uploads/temp/nested/abc.pdf",
            "booking_uploads/temp/./abc.pdf",
            "booking_uploads\\temp\\abc.pdf",
            "/etc/passwd",
        ]:
            self.assertFalse(self.store.is_temp(path), path)

    def test_promote_refuses_paths_outside_temp(self):
        victim = default_storage.save("booking_uploads/1/victim.pdf", SimpleUploadedFile("victim.pdf", b"secret"))

        for path in ["booking_uploads/temp/../1/victim.pdf", victim]:
            with self.assertRaises(FilePromotionError):
                self.store.promote(path, 2)

        self.assertTrue(default_storage.exists(victim))
        self.assertFalse(default_storage.exists("booking_uploads/2/victim.pdf"))

    def test_open_missing_file(self):
        with self.assertRaises(NotFound):
            self.store.open("booking_uploads/1/gone.pdf")
