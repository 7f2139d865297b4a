"""
access.py
---------
Resource-scoped authority checks.

- Superusers act as admins and may manage every infrastructure.
- Everyone else needs an InfrastructureManager row for the infrastructure.

Authentication itself happens before the services are called; these helpers
only look at the user they are handed.
"""

from django.contrib.auth import get_user_model

from ..exceptions import AuthorizationError
from ..models import InfrastructureManager


def is_admin(user) -> bool:
    return bool(user and getattr(user, "is_authenticated", False) and user.is_superuser)


def can_manage(user, infrastructure_id) -> bool:
    if not user or not getattr(user, "is_authenticated", False):
        return False
    if is_admin(user):
        return True
    return InfrastructureManager.objects.filter(
        user=user, infrastructure_id=infrastructure_id
    ).exists()


def ensure_can_manage(user, infrastructure_id) -> None:
    if not can_manage(user, infrastructure_id):
        raise AuthorizationError()


def managers_for(infrastructure_id):
    """Users assigned as managers of the infrastructure."""
    User = get_user_model()
    return list(
        User.objects.filter(
            managed_infrastructures__infrastructure_id=infrastructure_id,
            is_active=True,
        ).order_by("id")
    )


def can_view_booking(user, window) -> bool:
    """The claimant, the infrastructure's managers and admins may see a booking's answers."""
    if not user or not getattr(user, "is_authenticated", False):
        return False
    email = (getattr(user, "email", "") or "").strip().lower()
    if email and (window.claimant_email or "").lower() == email:
        return True
    return can_manage(user, window.infrastructure_id)


def ensure_can_view_booking(user, window) -> None:
    if not can_view_booking(user, window):
        raise AuthorizationError()
