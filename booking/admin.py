from django.contrib import admin
from .models import (
    ActionToken,
    BookingAnswer,
    FilterQuestion,
    Infrastructure,
    InfrastructureManager,
    TimeWindow,
)


class FilterQuestionInline(admin.TabularInline):
    model = FilterQuestion
    extra = 0


class InfrastructureManagerInline(admin.TabularInline):
    model = InfrastructureManager
    extra = 0


@admin.register(Infrastructure)
class InfrastructureAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "location", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name", "location")
    list_editable = ("is_active",)
    inlines = [InfrastructureManagerInline, FilterQuestionInline]


@admin.register(InfrastructureManager)
class InfrastructureManagerAdmin(admin.ModelAdmin):
    list_display = ("user", "infrastructure")
    list_filter = ("infrastructure",)
    search_fields = ("user__username", "user__email", "infrastructure__name")


@admin.register(FilterQuestion)
class FilterQuestionAdmin(admin.ModelAdmin):
    list_display = ("id", "infrastructure", "question_text", "question_type", "is_required", "display_order")
    list_filter = ("infrastructure", "question_type", "is_required")


class BookingAnswerInline(admin.TabularInline):
    model = BookingAnswer
    extra = 0
    readonly_fields = ("question", "answer_text", "document_path")


@admin.register(TimeWindow)
class TimeWindowAdmin(admin.ModelAdmin):
    list_display = ("id", "infrastructure", "date", "start_time", "end_time", "kind", "status", "claimant_email")
    list_filter = ("kind", "status", "infrastructure")
    search_fields = ("claimant_email", "infrastructure__name")
    date_hierarchy = "date"
    inlines = [BookingAnswerInline]
    # Status changes must go through BookingManager (compensating timeslots, emails).
    readonly_fields = ("kind", "status", "claimant_email", "created_at")


@admin.register(ActionToken)
class ActionTokenAdmin(admin.ModelAdmin):
    list_display = ("window", "purpose", "expires_at", "used", "used_at")
    list_filter = ("purpose", "used")
    readonly_fields = ("token", "metadata", "created_at")
