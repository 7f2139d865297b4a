# booking/urls.py
#
# Purpose:
# - Expose the booking JSON API.
#   * /infrastructures/ and /windows/ through a DRF DefaultRouter
#   * guest reserve/confirm endpoints (no login)
#   * emailed approve/reject links for managers (no login, token based)
#
# Notes for developers:
# - Mounted under /api/ by scheduling_system/urls.py.
# - The confirm/email-action paths must match GUEST_CONFIRM_URL_TEMPLATE and
#   EMAIL_ACTION_URL_TEMPLATE when the frontend forwards the token as-is.

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import (
    EmailActionView,
    GuestBookingConfirmView,
    GuestBookingRequestView,
    InfrastructureViewSet,
    TimeWindowViewSet,
)

# --------------------------
# DRF Router registrations
# --------------------------
router = DefaultRouter()
router.register(r"infrastructures", InfrastructureViewSet, basename="infrastructure")
router.register(r"windows", TimeWindowViewSet, basename="window")

# --------------------------
# URL patterns
# --------------------------
urlpatterns = [
    path("", include(router.urls)),

    # Guest flow
    path("guest/request/", GuestBookingRequestView.as_view(), name="guest_booking_request"),
    path("guest/confirm/<str:token>/", GuestBookingConfirmView.as_view(), name="guest_booking_confirm"),

    # Manager links from notification emails
    path(
        "email-actions/<str:action>/<str:token>/",
        EmailActionView.as_view(),
        name="email_action",
    ),
]
