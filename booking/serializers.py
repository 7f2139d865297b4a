from django.urls import reverse
from rest_framework import serializers
from .models import Infrastructure, FilterQuestion, TimeWindow, BookingAnswer


class InfrastructureSerializer(serializers.ModelSerializer):
    class Meta:
        model = Infrastructure
        fields = ["id", "name", "description", "location", "is_active"]


class FilterQuestionSerializer(serializers.ModelSerializer):
    class Meta:
        model = FilterQuestion
        fields = ["id", "question_text", "question_type", "is_required", "options", "display_order"]


class BookingAnswerSerializer(serializers.ModelSerializer):
    # Stored paths stay server-side; clients get the download endpoint instead.
    question_text = serializers.CharField(source="question.question_text", read_only=True)
    question_type = serializers.CharField(source="question.question_type", read_only=True)
    document_url = serializers.SerializerMethodField()

    class Meta:
        model = BookingAnswer
        fields = ["question", "question_text", "question_type", "answer_text", "document_url"]

    def get_document_url(self, obj):
        if not obj.document_path:
            return None
        return reverse("window-download", kwargs={"pk": obj.window_id, "question_id": obj.question_id})


class TimeWindowSerializer(serializers.ModelSerializer):
    infrastructure_name = serializers.CharField(source="infrastructure.name", read_only=True)

    class Meta:
        model = TimeWindow
        fields = [
            "id",
            "infrastructure",
            "infrastructure_name",
            "date",
            "start_time",
            "end_time",
            "kind",
            "status",
            "claimant_email",
            "purpose",
            "created_at",
        ]
        read_only_fields = fields


# -------------------- Request payloads --------------------
# Only shape/format is checked here; business rules live in the services.

class CreateTimeslotsSerializer(serializers.Serializer):
    infrastructure_id = serializers.IntegerField()
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    daily_start_time = serializers.TimeField()
    slot_duration_minutes = serializers.IntegerField()
    slots_per_day = serializers.IntegerField()


class CancelTimeslotsSerializer(serializers.Serializer):
    ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=True)


class RejectOrCancelSerializer(serializers.Serializer):
    status = serializers.CharField()


class ClaimSerializer(serializers.Serializer):
    purpose = serializers.CharField(required=False, allow_blank=True, default="")
    answers = serializers.JSONField(required=False, default=dict)


class GuestRequestSerializer(serializers.Serializer):
    # Presence and email format are checked by GuestBookingService.
    name = serializers.CharField(required=False, allow_blank=True, default="")
    email = serializers.CharField(required=False, allow_blank=True, default="")
    infrastructure_id = serializers.IntegerField(required=False, allow_null=True, default=None)
    timeslot_id = serializers.IntegerField(required=False, allow_null=True, default=None)
    purpose = serializers.CharField(required=False, allow_blank=True, default="")
    answers = serializers.JSONField(required=False, default=dict)
