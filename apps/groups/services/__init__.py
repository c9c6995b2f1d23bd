"""
Groups app services layer.

Services contain business logic and orchestrate operations across models.
All state-changing operations use transactions and concurrency protection.
"""

from .exceptions import (
    GroupNotFoundError,
    MemberNotFoundError,
    InvalidInviteCodeError,
    AlreadyMemberError,
    NotMemberError,
    GroupAlreadyExistsError,
    ReservationNotActiveError,
    InviteCodeGenerationError,
    InvalidSplitError,
    InvalidInitialMemberError,
)

from .split_calculation import (
    calculate_splits,
    to_cents,
    from_cents,
)

from .invite_management import (
    generate_invite_code,
    get_group_by_invite_code,
)

from .group_management import (
    create_initial_group,
    get_group_by_id,
)

from .membership_management import (
    join_group,
    get_group_members,
    get_member,
    current_share,
    frozen_member_ids,
    rebalance_shares,
)


__all__ = [
    # Exceptions
    'GroupNotFoundError',
    'MemberNotFoundError',
    'InvalidInviteCodeError',
    'AlreadyMemberError',
    'NotMemberError',
    'GroupAlreadyExistsError',
    'ReservationNotActiveError',
    'InviteCodeGenerationError',
    'InvalidSplitError',
    'InvalidInitialMemberError',

    # Split Calculation
    'calculate_splits',
    'to_cents',
    'from_cents',

    # Invite Management
    'generate_invite_code',
    'get_group_by_invite_code',

    # Group Management
    'create_initial_group',
    'get_group_by_id',

    # Membership Management
    'join_group',
    'get_group_members',
    'get_member',
    'current_share',
    'frozen_member_ids',
    'rebalance_shares',
]
