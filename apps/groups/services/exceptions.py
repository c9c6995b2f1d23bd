"""
Domain-specific exceptions for groups app.

These exceptions represent business rule violations and should be
caught in views and converted to appropriate HTTP responses.
"""

from apps.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)


class GroupNotFoundError(NotFoundError):
    """Raised when a group does not exist or is inaccessible."""
    pass


class MemberNotFoundError(NotFoundError):
    """Raised when a group member does not exist."""
    pass


class InvalidInviteCodeError(NotFoundError):
    """Raised when an invite code matches no group."""
    pass


class AlreadyMemberError(ConflictError):
    """Raised when a user tries to join a group they're already in."""
    pass


class NotMemberError(PermissionDeniedError):
    """Raised when a user tries to perform an action requiring membership."""
    pass


class GroupAlreadyExistsError(ConflictError):
    """Raised when a reservation already has its group."""
    pass


class ReservationNotActiveError(ConflictError):
    """Raised when joining a group whose reservation is completed or cancelled."""
    pass


class InviteCodeGenerationError(ConflictError):
    """Raised when no unique invite code could be generated."""
    pass


class InvalidSplitError(ConflictError):
    """Raised when a split would not sum to the amount being split."""
    pass


class InvalidInitialMemberError(ValidationError):
    """Raised when the initial member is not the reservation owner."""
    pass
