"""
Activity log service.

Recording is best-effort: a failed insert is logged and never undoes the
ledger change that triggered it.
"""

import logging
from typing import Optional
from uuid import UUID

from django.db import DatabaseError, transaction
from django.db.models import QuerySet

from apps.accounts.models import User

from .models import Activity, ActivityType

logger = logging.getLogger(__name__)


def record_activity(
    *,
    user: User,
    activity_type: str,
    message: str,
    reservation=None,
    payment=None
) -> Optional[Activity]:
    """
    Append an activity entry.

    Runs in its own savepoint so a database failure here leaves the
    surrounding transaction usable.

    Returns:
        The created Activity, or None if it could not be stored.
    """
    if activity_type not in ActivityType.values:
        raise ValueError(f"Unknown activity type '{activity_type}'")

    try:
        with transaction.atomic():
            activity = Activity.objects.create(
                user=user,
                activity_type=activity_type,
                message=message,
                reservation=reservation,
                payment=payment
            )
    except DatabaseError:
        logger.exception(f"Failed to record {activity_type} activity for user {user.pk}")
        return None

    logger.debug(f"Recorded {activity_type} activity {activity.id} for user {user.pk}")
    return activity


def get_user_activities(*, user: User, limit: Optional[int] = 10) -> QuerySet:
    """The user's own activities, newest first."""
    queryset = (
        Activity.objects
        .filter(user=user)
        .select_related('user', 'reservation')
        .order_by('-created_at')
    )
    if limit is not None:
        queryset = queryset[:limit]
    return queryset


def get_reservation_activities(*, reservation_id: UUID, limit: Optional[int] = None) -> QuerySet:
    """Everything that happened on one reservation, newest first."""
    queryset = (
        Activity.objects
        .filter(reservation_id=reservation_id)
        .select_related('user')
        .order_by('-created_at')
    )
    if limit is not None:
        queryset = queryset[:limit]
    return queryset
