from django.contrib import admin
from notifications.models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    """Read-only log of booking emails; rows are written by NotificationService."""
    list_display = ("recipient_email", "subject", "window", "sent", "created_at")
    list_filter = ("sent", "created_at")
    list_select_related = ("window",)
    search_fields = ("recipient_email", "subject", "message")
    date_hierarchy = "created_at"
    readonly_fields = ("recipient_email", "subject", "message", "window", "sent", "created_at")

    def has_add_permission(self, request):
        return False
