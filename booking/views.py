# booking/views.py
#
# Purpose:
# - Thin JSON API over the booking services.
#   * Infrastructures and their questions (read-only).
#   * Windows: listing, batch creation, claim, approve, reject/cancel,
#     user cancel, timeslot withdrawal, forced status sweep.
#   * Guest reserve-then-confirm flow and emailed manager action links.
# - Permissions:
#   * Reads are public for available timeslots; bookings are only visible to
#     their claimant and to the infrastructure's managers/admins.
#   * Resource-scoped authority is enforced in the services (access.py).
#
# Errors raised by services become JSON through booking.api_errors.
#
import json
import posixpath

from django.db.models import Q
from django.http import FileResponse
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .exceptions import AuthorizationError, NotFound, ValidationError
from .models import Infrastructure, TimeWindow
from .serializers import (
    BookingAnswerSerializer,
    CancelTimeslotsSerializer,
    ClaimSerializer,
    CreateTimeslotsSerializer,
    FilterQuestionSerializer,
    GuestRequestSerializer,
    InfrastructureSerializer,
    RejectOrCancelSerializer,
    TimeWindowSerializer,
)
from .services import access
from .services.booking_manager import BookingManager
from .services.guest_booking import GuestBookingService
from .services.slot_utils import parse_date
from .services.status_sweeper import run_sweep_now
from .services.timeslot_generator import TimeslotGenerator


def _answers_from_request(data, answers):
    """Merge the parsed "answers" object with "answersJSON" and answer_<question id> form fields."""
    if answers and not isinstance(answers, dict):
        raise ValidationError("answers must be an object keyed by question id.")
    answers = dict(answers or {})
    raw = data.get("answersJSON")
    if raw:
        try:
            extra = json.loads(raw)
        except ValueError:
            raise ValidationError("answersJSON is not valid JSON.")
        if not isinstance(extra, dict):
            raise ValidationError("answersJSON must be an object keyed by question id.")
        answers.update(extra)
    for key in data.keys():
        if key.startswith("answer_"):
            answers[key[len("answer_"):]] = {"type": "text", "value": data.get(key)}
    return answers


def _stage_uploads(request, file_store):
    """Stage file_<question id> uploads; returns {question_id: {temp_path, original_name}}."""
    staged = {}
    for field_name, upload in request.FILES.items():
        if not field_name.startswith("file_"):
            continue
        staged[field_name[len("file_"):]] = {
            "temp_path": file_store.stage_temp(upload),
            "original_name": upload.name,
        }
    return staged


def _claimant_email(user):
    email = (getattr(user, "email", "") or "").strip()
    if not email:
        raise ValidationError("Your account has no email address.")
    return email


# -------------------- ViewSets --------------------
class InfrastructureViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = InfrastructureSerializer

    def get_queryset(self):
        qs = Infrastructure.objects.all().order_by("name")
        if access.is_admin(self.request.user):
            return qs
        return qs.filter(is_active=True)

    @action(detail=True, methods=["get"])
    def questions(self, request, pk=None):
        infrastructure = self.get_object()
        data = FilterQuestionSerializer(infrastructure.questions.all(), many=True).data
        return Response(data)


class TimeWindowViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Endpoints:
    - GET  /api/windows/                              list (filters: infrastructure, status, kind, date_from, date_to)
    - GET  /api/windows/mine/                         the caller's bookings
    - POST /api/windows/create-timeslots/             batch creation
    - POST /api/windows/cancel-timeslots/             withdraw available timeslots
    - POST /api/windows/force-status-update/          run the status sweep now
    - POST /api/windows/{id}/request/                 claim an available timeslot
    - POST /api/windows/{id}/approve/                 approve a pending booking
    - POST /api/windows/{id}/reject-or-cancel/        {"status": "rejected"|"canceled"}
    - POST /api/windows/{id}/cancel/                  claimant cancels own booking
    - GET  /api/windows/{id}/details/                 booking plus its answers (claimant, managers)
    - GET  /api/windows/{id}/download/{question_id}/   uploaded document of one answer
    """
    serializer_class = TimeWindowSerializer
    lookup_value_regex = r"[0-9]+"
    manager = BookingManager()
    generator = TimeslotGenerator()

    def get_permissions(self):
        if self.action in ("list", "retrieve"):
            return [AllowAny()]
        return [IsAuthenticated()]

    def get_queryset(self):
        user = self.request.user
        qs = TimeWindow.objects.select_related("infrastructure").order_by("date", "start_time")

        if not access.is_admin(user):
            visible = Q(kind=TimeWindow.Kind.TIMESLOT, status=TimeWindow.Status.AVAILABLE)
            if user.is_authenticated:
                visible |= Q(infrastructure__manager_assignments__user=user)
                if user.email:
                    visible |= Q(claimant_email__iexact=user.email)
            qs = qs.filter(visible).distinct()

        params = self.request.query_params
        if params.get("infrastructure"):
            if not params["infrastructure"].isdigit():
                raise ValidationError("infrastructure must be a numeric id.")
            qs = qs.filter(infrastructure_id=params["infrastructure"])
        if params.get("status"):
            qs = qs.filter(status=params["status"])
        if params.get("kind"):
            qs = qs.filter(kind=params["kind"])
        if params.get("date_from"):
            qs = qs.filter(date__gte=parse_date(params["date_from"]))
        if params.get("date_to"):
            qs = qs.filter(date__lte=parse_date(params["date_to"]))
        return qs

    @action(detail=False, methods=["get"])
    def mine(self, request):
        qs = TimeWindow.objects.filter(
            kind=TimeWindow.Kind.BOOKING, claimant_email__iexact=_claimant_email(request.user)
        ).select_related("infrastructure").order_by("-date", "-start_time")
        return Response(TimeWindowSerializer(qs, many=True).data)

    @action(detail=False, methods=["post"], url_path="create-timeslots")
    def create_timeslots(self, request):
        payload = CreateTimeslotsSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        result = self.generator.create_timeslots(actor=request.user, **payload.validated_data)
        return Response(
            {"message": "Timeslots created successfully", **result},
            status=status.HTTP_201_CREATED,
        )

    @action(detail=False, methods=["post"], url_path="cancel-timeslots")
    def cancel_timeslots(self, request):
        payload = CancelTimeslotsSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        canceled = self.manager.cancel_timeslots(payload.validated_data["ids"], request.user)
        return Response({"message": "Timeslots canceled successfully", "canceled": canceled})

    @action(detail=False, methods=["post"], url_path="force-status-update")
    def force_status_update(self, request):
        user = request.user
        if not (access.is_admin(user) or user.managed_infrastructures.exists()):
            raise AuthorizationError()
        return Response({"message": "Status update forced successfully", **run_sweep_now()})

    @action(detail=True, methods=["post"], url_path="request")
    def request_booking(self, request, pk=None):
        payload = ClaimSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        email = _claimant_email(request.user)
        answers = _answers_from_request(request.data, payload.validated_data["answers"])

        staged = _stage_uploads(request, self.manager.file_store)
        try:
            window = self.manager.claim(pk, email, payload.validated_data["purpose"], answers, staged)
        except Exception:
            self.manager.file_store.cleanup([info["temp_path"] for info in staged.values()])
            raise

        return Response(
            {"message": "Booking request submitted successfully", **TimeWindowSerializer(window).data},
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["post"])
    def approve(self, request, pk=None):
        window = self.manager.approve(pk, request.user)
        return Response({"message": "Booking approved successfully", **TimeWindowSerializer(window).data})

    @action(detail=True, methods=["post"], url_path="reject-or-cancel")
    def reject_or_cancel(self, request, pk=None):
        payload = RejectOrCancelSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        new_status = payload.validated_data["status"]
        window, replacement = self.manager.reject_or_cancel(pk, request.user, new_status)
        return Response({
            "message": f"Booking {new_status} successfully",
            "booking": TimeWindowSerializer(window).data,
            "new_timeslot_id": replacement.pk,
        })

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        window, replacement = self.manager.user_cancel(pk, _claimant_email(request.user))
        return Response({
            "message": "Booking canceled successfully",
            "booking": TimeWindowSerializer(window).data,
            "new_timeslot_id": replacement.pk,
        })

    def _visible_booking(self, user, pk):
        window = TimeWindow.objects.select_related("infrastructure").filter(
            pk=pk, kind=TimeWindow.Kind.BOOKING
        ).first()
        if window is None:
            raise NotFound("Booking not found.")
        access.ensure_can_view_booking(user, window)
        return window

    @action(detail=True, methods=["get"])
    def details(self, request, pk=None):
        window = self._visible_booking(request.user, pk)
        answers = window.answers.select_related("question").order_by(
            "question__display_order", "question_id"
        )
        return Response({
            "booking": TimeWindowSerializer(window).data,
            "answers": BookingAnswerSerializer(answers, many=True).data,
        })

    @action(detail=True, methods=["get"], url_path=r"download/(?P<question_id>[0-9]+)")
    def download(self, request, pk=None, question_id=None):
        window = self._visible_booking(request.user, pk)
        answer = (
            window.answers.filter(question_id=question_id)
            .exclude(document_path__isnull=True)
            .exclude(document_path="")
            .first()
        )
        if answer is None:
            raise NotFound("File not found.")
        handle = self.manager.file_store.open(answer.document_path)
        filename = answer.answer_text or posixpath.basename(answer.document_path)
        return FileResponse(handle, as_attachment=True, filename=filename)


# -------------------- Guest flow --------------------
class GuestBookingRequestView(APIView):
    """POST /api/guest/request/ (phase 1: email a confirmation link)."""
    permission_classes = [AllowAny]
    authentication_classes = []
    service = GuestBookingService()

    def post(self, request):
        payload = GuestRequestSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data
        answers = _answers_from_request(request.data, data["answers"])

        staged = _stage_uploads(request, self.service.file_store)
        self.service.request_booking(
            name=data["name"],
            email=data["email"],
            infrastructure_id=data["infrastructure_id"],
            timeslot_id=data["timeslot_id"],
            purpose=data["purpose"],
            answers=answers,
            staged_files=staged,
        )
        return Response({
            "success": True,
            "message": "Booking verification email sent. Please check your inbox to confirm your booking.",
            "email": (data["email"] or "").strip().lower(),
        })


class GuestBookingConfirmView(APIView):
    """GET /api/guest/confirm/<token>/ (phase 2)."""
    permission_classes = [AllowAny]
    authentication_classes = []
    service = GuestBookingService()

    def get(self, request, token):
        summary = self.service.confirm_booking(token)
        return Response({"success": True, "message": "Booking confirmed successfully", "data": summary})


# -------------------- Emailed manager links --------------------
class EmailActionView(APIView):
    """GET /api/email-actions/<approve|reject>/<token>/"""
    permission_classes = [AllowAny]
    authentication_classes = []
    manager = BookingManager()

    def get(self, request, action, token):
        return Response(self.manager.process_email_action(token, action))
