"""
Membership management service.

Joining re-splits the reservation cost. Members who have paid, or who
have a payment in flight, keep their share; everyone else (plus the
joiner) divides what is left. When a frozen share thaws the remainder is
re-split straight away.
"""

from collections import OrderedDict
from decimal import Decimal
import logging
from typing import Dict, List, Set
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction, IntegrityError
from django.db.models import Q, QuerySet

from apps.accounts.models import User
from apps.activity.models import ActivityType
from apps.activity.services import record_activity
from apps.groups.models import Group, GroupMember
from apps.payments.models import PaymentStatus

from .exceptions import (
    AlreadyMemberError,
    GroupNotFoundError,
    InvalidSplitError,
    MemberNotFoundError,
    ReservationNotActiveError,
)
from .invite_management import get_group_by_invite_code
from .split_calculation import calculate_splits

logger = logging.getLogger(__name__)

# Payment states that pin a member's share
FREEZING_PAYMENT_STATUSES = [PaymentStatus.PENDING, PaymentStatus.COMPLETED]


def frozen_member_ids(group: Group) -> Set[UUID]:
    """Members whose share can no longer move: paid, or paying right now."""
    return set(
        GroupMember.objects
        .filter(group=group)
        .filter(Q(is_paid=True) | Q(payments__status__in=FREEZING_PAYMENT_STATUSES))
        .values_list('id', flat=True)
        .distinct()
    )


def _unfrozen_remainder(total_cost: Decimal, members, frozen_ids: Set[UUID]) -> Decimal:
    """What is left of the total once frozen shares are set aside."""
    frozen_total = sum(
        (m.share_amount for m in members if m.id in frozen_ids),
        Decimal('0.00')
    )
    remaining = total_cost - frozen_total
    if remaining < 0:
        raise InvalidSplitError(
            f"Settled shares ({frozen_total}) exceed the total cost ({total_cost})"
        )
    return remaining


@transaction.atomic
def join_group(*, invite_code: str, user: User) -> GroupMember:
    """
    Join a group by invite code and rebalance shares.

    The group row is locked for the whole operation so concurrent joins
    (and payment openings) are serialized.

    Args:
        invite_code: Code of the group to join
        user: User joining the group

    Returns:
        Created GroupMember instance

    Raises:
        InvalidInviteCodeError: If no group has this code
        ReservationNotActiveError: If reservation is completed or cancelled
        AlreadyMemberError: If user is already a member
        InvalidSplitError: If frozen shares already exceed the total
    """
    resolved = get_group_by_invite_code(invite_code=invite_code)

    # Lock the group to prevent concurrent joins
    try:
        group = (
            Group.objects
            .select_for_update()
            .select_related('reservation')
            .get(id=resolved.id)
        )
    except Group.DoesNotExist:
        raise GroupNotFoundError(f"Group with ID {resolved.id} not found")

    reservation = group.reservation
    if not reservation.is_active:
        raise ReservationNotActiveError(
            f"Cannot join {group.name}: reservation is {reservation.status}"
        )

    if group.has_member(user):
        raise AlreadyMemberError(f"User is already a member of {group.name}")

    members = list(
        GroupMember.objects
        .select_for_update()
        .filter(group=group)
        .order_by('join_order')
    )
    frozen_ids = frozen_member_ids(group)

    remaining = _unfrozen_remainder(reservation.total_cost, members, frozen_ids)

    next_order = members[-1].join_order + 1 if members else 0
    new_member = GroupMember(
        group=group,
        user=user,
        share_amount=Decimal('0.00'),
        is_paid=False,
        join_order=next_order
    )

    participants = [m for m in members if m.id not in frozen_ids] + [new_member]
    for participant, amount in calculate_splits(remaining, participants):
        participant.share_amount = amount

    try:
        new_member.save(force_insert=True)
    except IntegrityError:
        # Database constraint caught duplicate membership
        raise AlreadyMemberError(f"User is already a member of {group.name}")

    rebalanced = [m for m in participants if m is not new_member]
    if rebalanced:
        GroupMember.objects.bulk_update(rebalanced, ['share_amount'])

    logger.info(
        f"User {user.pk} joined group {group.id}; {len(participants)} unsettled "
        f"members now split {remaining} ({len(frozen_ids)} frozen)"
    )

    record_activity(
        user=user,
        activity_type=ActivityType.JOIN,
        message=f"{user.first_name or 'Someone'} joined the group for {reservation.venue_name}",
        reservation=reservation
    )

    return new_member


@transaction.atomic
def rebalance_shares(*, group_id: UUID) -> List[GroupMember]:
    """
    Re-split the unfrozen remainder among the members still owing.

    Called in the same transaction that thaws a share (its pending payment
    failed or expired, or its completed payment was refunded). After it,
    no unfrozen member holds more than an equal part of the remainder, so
    a later join can only shrink shares.

    Returns:
        The unfrozen members with their new shares, in join order

    Raises:
        GroupNotFoundError: If group doesn't exist
        InvalidSplitError: If frozen shares exceed the total
    """
    try:
        group = (
            Group.objects
            .select_for_update()
            .select_related('reservation')
            .get(id=group_id)
        )
    except Group.DoesNotExist:
        raise GroupNotFoundError(f"Group with ID {group_id} not found")

    members = list(
        GroupMember.objects
        .select_for_update()
        .filter(group=group)
        .order_by('join_order')
    )
    frozen_ids = frozen_member_ids(group)
    unfrozen = [m for m in members if m.id not in frozen_ids]
    if not unfrozen:
        return []

    remaining = _unfrozen_remainder(group.reservation.total_cost, members, frozen_ids)
    for member, amount in calculate_splits(remaining, unfrozen):
        member.share_amount = amount
    GroupMember.objects.bulk_update(unfrozen, ['share_amount'])

    logger.info(
        f"Group {group.id} rebalanced: {len(unfrozen)} unsettled members split {remaining}"
    )
    return unfrozen

def get_group_members(*, group_id: UUID) -> QuerySet:
    """
    Get all members of a group in join order.

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    if not Group.objects.filter(id=group_id).exists():
        raise GroupNotFoundError(f"Group with ID {group_id} not found")

    return (
        GroupMember.objects
        .filter(group_id=group_id)
        .select_related('user')
        .order_by('join_order')
    )


def current_share(*, group_id: UUID) -> Dict[GroupMember, Decimal]:
    """Each member's share in join order."""
    return OrderedDict(
        (member, member.share_amount)
        for member in get_group_members(group_id=group_id)
    )


def get_member(*, member_id: UUID) -> GroupMember:
    try:
        return (
            GroupMember.objects
            .select_related('user', 'group', 'group__reservation')
            .get(id=member_id)
        )
    except (GroupMember.DoesNotExist, ValueError, DjangoValidationError):
        raise MemberNotFoundError(f"Group member with ID {member_id} not found")
