"""
rules.py
--------
Tunable booking rules.

Each rule reads a configmgr.SystemSetting row first and falls back to the
Django setting of the same name when the row is missing or unparsable, so
admins can change limits without a deploy.

Keys:
  - GUEST_MAX_BOOKINGS_PER_DAY (e.g., '1')
  - USER_CANCEL_CUTOFF_HOURS   (e.g., '24')
"""

import logging

from django.conf import settings

logger = logging.getLogger(__name__)


def get_int_setting(key: str, default: int) -> int:
    from configmgr.models import SystemSetting

    row = SystemSetting.objects.filter(key=key).first()
    if row is None:
        return default
    try:
        return int(row.value)
    except (TypeError, ValueError):
        logger.warning("SystemSetting %s=%r is not an integer; using %s", key, row.value, default)
        return default


def guest_max_bookings_per_day() -> int:
    return get_int_setting("GUEST_MAX_BOOKINGS_PER_DAY", settings.GUEST_MAX_BOOKINGS_PER_DAY)


def user_cancel_cutoff_hours() -> int:
    return get_int_setting("USER_CANCEL_CUTOFF_HOURS", settings.USER_CANCEL_CUTOFF_HOURS)
