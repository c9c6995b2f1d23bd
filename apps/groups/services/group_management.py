"""
Group management service.

Every reservation gets exactly one group, created together with the
reservation, with the owner as its first member.
"""

import logging
from typing import Tuple
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction, IntegrityError
from django.db.models import Prefetch

from apps.accounts.models import User
from apps.activity.models import ActivityType
from apps.activity.services import record_activity
from apps.groups.models import Group, GroupMember
from apps.reservations.models import Reservation

from .exceptions import (
    GroupAlreadyExistsError,
    GroupNotFoundError,
    InvalidInitialMemberError,
    InviteCodeGenerationError,
)
from .invite_management import generate_invite_code

logger = logging.getLogger(__name__)


@transaction.atomic
def create_initial_group(
    *,
    reservation: Reservation,
    owner: User,
    max_retries: int = 5
) -> Tuple[Group, GroupMember]:
    """
    Create the group for a reservation and add the owner as member #0.

    This is a multi-step operation wrapped in a transaction:
    1. Lock the reservation and make sure it has no group yet
    2. Create the group with a fresh invite code (retried on collision)
    3. Create the owner membership holding the whole total cost
    4. Record a 'create' activity

    Args:
        reservation: Reservation the group belongs to
        owner: Reservation owner, becomes the first member
        max_retries: Maximum attempts to generate unique invite code

    Returns:
        Tuple of (group, owner_member)

    Raises:
        InvalidInitialMemberError: If owner is not the reservation owner
        GroupAlreadyExistsError: If the reservation already has a group
        InviteCodeGenerationError: If no unique invite code after retries
    """
    if reservation.owner_id != owner.pk:
        raise InvalidInitialMemberError("The first group member must be the reservation owner")

    # Lock the reservation so two callers cannot both pass the existence check
    reservation = Reservation.objects.select_for_update().get(pk=reservation.pk)

    if Group.objects.filter(reservation=reservation).exists():
        raise GroupAlreadyExistsError(f"Reservation {reservation.id} already has a group")

    group = None
    for attempt in range(max_retries):
        invite_code = generate_invite_code()

        try:
            # Each attempt is a separate savepoint
            with transaction.atomic():
                group = Group.objects.create(
                    reservation=reservation,
                    name=f"{reservation.venue_name} Group",
                    invite_code=invite_code
                )
            break
        except IntegrityError:
            if Group.objects.filter(reservation=reservation).exists():
                raise GroupAlreadyExistsError(f"Reservation {reservation.id} already has a group")
            # Invite code collision (very rare)
            logger.warning(f"Invite code collision on attempt {attempt + 1} for reservation {reservation.id}")

    if group is None:
        raise InviteCodeGenerationError(
            f"Failed to generate unique invite code after {max_retries} attempts"
        )

    owner_member = GroupMember.objects.create(
        group=group,
        user=owner,
        share_amount=reservation.total_cost,
        is_paid=False,
        join_order=0
    )

    record_activity(
        user=owner,
        activity_type=ActivityType.CREATE,
        message=f"Created reservation for {reservation.venue_name}",
        reservation=reservation
    )

    return group, owner_member


def get_group_by_id(*, group_id: UUID) -> Group:
    """
    Get a group by ID with its reservation and members preloaded.

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    try:
        return (
            Group.objects
            .select_related('reservation', 'reservation__owner')
            .prefetch_related(
                Prefetch(
                    'members',
                    queryset=GroupMember.objects.select_related('user').order_by('join_order')
                )
            )
            .get(id=group_id)
        )
    except (Group.DoesNotExist, ValueError, DjangoValidationError):
        raise GroupNotFoundError(f"Group with ID {group_id} not found")
