# configmgr/models.py
#
# Purpose:
# - Runtime-tunable booking rules, editable from the Django admin.
#
# Notes:
# - Values are stored as text; booking.services.rules parses them and falls
#   back to the settings.py default when a row is missing or unparsable.
#
from django.db import models


class SystemSetting(models.Model):
    """
    Key/value override for a booking rule.
    Known keys:
      - GUEST_MAX_BOOKINGS_PER_DAY (e.g., '1')
      - USER_CANCEL_CUTOFF_HOURS (e.g., '24')
    """
    key = models.CharField(max_length=100, unique=True)
    value = models.CharField(max_length=200)
    description = models.CharField(max_length=255, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["key"]

    def __str__(self):
        return f"{self.key}={self.value}"
