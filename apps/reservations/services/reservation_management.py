"""
Reservation management service.

Creating a reservation also seeds its group with the owner as the only
member, so both happen in one transaction.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
import logging
from typing import List, Optional, Tuple
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import Q, QuerySet

from apps.accounts.models import User
from apps.activity.models import Activity, ActivityType
from apps.activity.services import record_activity
from apps.groups.models import Group, GroupMember
from apps.groups.services.group_management import create_initial_group
from apps.reservations.models import Reservation, ReservationStatus

from .exceptions import (
    InvalidReservationError,
    InvalidStatusTransitionError,
    NotReservationOwnerError,
    NothingToRemindError,
    ReservationNotFoundError,
)

logger = logging.getLogger(__name__)

MAX_TOTAL_COST = Decimal('99999999.99')
CENT = Decimal('0.01')


def _clean_total_cost(total_cost) -> Decimal:
    try:
        amount = Decimal(str(total_cost))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidReservationError(f"Total cost '{total_cost}' is not a number")

    if not amount.is_finite():
        raise InvalidReservationError("Total cost must be a finite number")
    if amount <= 0:
        raise InvalidReservationError("Total cost must be greater than zero")
    if amount > MAX_TOTAL_COST:
        raise InvalidReservationError(f"Total cost cannot exceed {MAX_TOTAL_COST}")
    if amount != amount.quantize(CENT):
        raise InvalidReservationError("Total cost cannot have more than two decimal places")

    return amount.quantize(CENT)


@transaction.atomic
def create_reservation(
    *,
    owner: User,
    venue_name: str,
    total_cost,
    event_date: datetime,
    description: str = '',
    venue_image: str = ''
) -> Tuple[Reservation, Group]:
    """
    Create a reservation together with its initial group.

    The owner becomes member #0 holding the whole total cost.

    Raises:
        InvalidReservationError: Empty venue name, missing date or bad cost
    """
    venue_name = (venue_name or '').strip()
    if not venue_name:
        raise InvalidReservationError("Venue name is required")
    if event_date is None:
        raise InvalidReservationError("Event date is required")

    amount = _clean_total_cost(total_cost)

    reservation = Reservation.objects.create(
        owner=owner,
        venue_name=venue_name,
        venue_image=venue_image or '',
        event_date=event_date,
        description=description or '',
        total_cost=amount,
        status=ReservationStatus.ACTIVE,
    )
    group, _ = create_initial_group(reservation=reservation, owner=owner)

    logger.info(
        f"Reservation {reservation.id} created by user {owner.pk} "
        f"for {venue_name} ({amount})"
    )
    return reservation, group


def get_reservation(*, reservation_id: UUID) -> Reservation:
    """Get a reservation with its group and members preloaded."""
    try:
        return (
            Reservation.objects
            .select_related('owner', 'group')
            .prefetch_related('group__members__user')
            .get(id=reservation_id)
        )
    except (Reservation.DoesNotExist, ValueError, DjangoValidationError):
        raise ReservationNotFoundError(f"Reservation with ID {reservation_id} not found")


def get_user_reservations(*, user: User) -> QuerySet:
    """Reservations the user owns or holds a share in, each listed once."""
    return (
        Reservation.objects
        .filter(Q(owner=user) | Q(group__members__user=user))
        .select_related('owner', 'group')
        .prefetch_related('group__members__user')
        .distinct()
        .order_by('-created_at')
    )


def user_can_view(reservation: Reservation, user: User) -> bool:
    if reservation.owner_id == user.pk:
        return True
    return reservation.group.members.filter(user=user).exists()


@transaction.atomic
def update_reservation_status(
    *,
    reservation_id: UUID,
    user: User,
    new_status: str
) -> Reservation:
    """
    Move a reservation to completed or cancelled (owner only).

    Raises:
        ReservationNotFoundError: If reservation doesn't exist
        NotReservationOwnerError: If user is not the owner
        InvalidReservationError: Unknown status value
        InvalidStatusTransitionError: Transition not allowed from current status
    """
    if new_status not in ReservationStatus.values:
        raise InvalidReservationError(f"Unknown reservation status '{new_status}'")

    try:
        reservation = (
            Reservation.objects
            .select_for_update()
            .get(id=reservation_id)
        )
    except (Reservation.DoesNotExist, ValueError, DjangoValidationError):
        raise ReservationNotFoundError(f"Reservation with ID {reservation_id} not found")

    if reservation.owner_id != user.pk:
        raise NotReservationOwnerError("Only the reservation owner can change its status")

    if not reservation.can_transition_to(new_status):
        raise InvalidStatusTransitionError(
            f"Cannot move reservation from {reservation.status} to {new_status}"
        )

    old_status = reservation.status
    reservation.status = new_status
    reservation.save(update_fields=['status', 'updated_at'])

    logger.info(f"Reservation {reservation.id} moved from {old_status} to {new_status}")
    return reservation


def send_reminder(
    *,
    reservation_id: UUID,
    user: User
) -> Tuple[Optional[Activity], List[GroupMember]]:
    """
    Nudge unpaid members of an active reservation (owner only).

    Delivery is up to the clients reading the activity feed; this records
    a ``reminder`` activity naming how many members still owe money.

    Returns:
        Tuple of (activity, unpaid_members). The activity is None if the
        log write failed.

    Raises:
        ReservationNotFoundError: If reservation doesn't exist
        NotReservationOwnerError: If user is not the owner
        NothingToRemindError: Reservation is not active or nobody owes anything
    """
    reservation = get_reservation(reservation_id=reservation_id)

    if reservation.owner_id != user.pk:
        raise NotReservationOwnerError("Only the reservation owner can send reminders")

    if not reservation.is_active:
        raise NothingToRemindError(f"Reservation is {reservation.status}, nothing to remind about")

    unpaid = [
        member for member in reservation.group.members.all()
        if member.user_id != user.pk and not member.is_paid and member.share_amount > 0
    ]
    if not unpaid:
        raise NothingToRemindError("No other member owes anything")

    activity = record_activity(
        user=user,
        activity_type=ActivityType.REMINDER,
        message=(
            f"{user.first_name or 'Someone'} sent a payment reminder to "
            f"{len(unpaid)} member(s) for {reservation.venue_name}"
        ),
        reservation=reservation
    )

    logger.info(f"Reminder sent for reservation {reservation.id} to {len(unpaid)} unpaid members")
    return activity, unpaid
