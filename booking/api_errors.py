"""
api_errors.py
-------------
DRF exception handler: turns booking service errors into JSON responses.

- Validation/policy/authorization errors keep their specific message.
- Transient store errors answer with a generic "try again" message; details go
  to the log only.
"""

import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler

from .exceptions import BookingError, TransientStoreError

logger = logging.getLogger(__name__)


def booking_exception_handler(exc, context):
    if isinstance(exc, BookingError):
        if isinstance(exc, TransientStoreError):
            logger.warning("Transient store error in %s", context.get("view").__class__.__name__)
            return Response({"detail": TransientStoreError.default_message}, status=exc.status_code)

        data = {"detail": exc.message}
        missing = exc.extra.get("missing_answers")
        if missing:
            data["missing_answers"] = missing
        return Response(data, status=exc.status_code)

    return exception_handler(exc, context)
