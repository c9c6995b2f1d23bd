"""
Invite management service.

Invite codes are fixed at group creation; this module only mints and
resolves them.
"""

import secrets

from apps.groups.models import Group

from .exceptions import InvalidInviteCodeError


def generate_invite_code() -> str:
    """16 URL-safe characters from a CSPRNG."""
    return secrets.token_urlsafe(12)[:16]


def get_group_by_invite_code(*, invite_code: str) -> Group:
    """
    Resolve an invite code to its group.

    Raises:
        InvalidInviteCodeError: If no group has this code
    """
    if not invite_code:
        raise InvalidInviteCodeError("Invite code is required")

    try:
        return (
            Group.objects
            .select_related('reservation', 'reservation__owner')
            .get(invite_code=invite_code)
        )
    except Group.DoesNotExist:
        raise InvalidInviteCodeError("Invalid invite code")
