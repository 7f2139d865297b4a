# booking/tests/factories.py
#
# Small helpers shared by the booking tests.

from datetime import time, timedelta

from django.contrib.auth.models import User
from django.utils import timezone

from booking.models import FilterQuestion, Infrastructure, InfrastructureManager, TimeWindow


def make_infrastructure(name="Confocal Microscope", **kwargs):
    return Infrastructure.objects.create(name=name, location="Lab 2", **kwargs)


def make_user(username, email=None, **kwargs):
    return User.objects.create_user(
        username=username,
        email=email if email is not None else f"{username}@example.com",
        password="testpass123",
        **kwargs,
    )


def make_manager(infrastructure, username="manager"):
    user = make_user(username)
    InfrastructureManager.objects.create(user=user, infrastructure=infrastructure)
    return user


def make_timeslot(infrastructure, day=None, start=time(10, 0), end=time(11, 0)):
    day = day or timezone.localdate() + timedelta(days=7)
    window = TimeWindow.new_timeslot(infrastructure, day, start, end)
    window.save()
    return window


def make_booking(infrastructure, claimant_email="user@example.com", status=TimeWindow.Status.PENDING,
                 day=None, start=time(10, 0), end=time(11, 0)):
    window = make_timeslot(infrastructure, day, start, end)
    window.mark_claimed(claimant_email, "Imaging run")
    window.status = status
    window.save()
    return window


def make_question(infrastructure, text="Sample type?", question_type="text", is_required=True):
    return FilterQuestion.objects.create(
        infrastructure=infrastructure,
        question_text=text,
        question_type=question_type,
        is_required=is_required,
    )
