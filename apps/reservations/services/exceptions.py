"""
Domain-specific exceptions for reservations app.

These exceptions represent business rule violations. They extend the
shared ledger taxonomy so the API layer can map them to responses
without knowing about each one.
"""

from apps.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)


class ReservationNotFoundError(NotFoundError):
    """Raised when a reservation does not exist or is inaccessible."""
    pass


class InvalidReservationError(ValidationError):
    """Raised when reservation input is malformed (empty venue, bad cost, ...)."""
    pass


class InvalidStatusTransitionError(ConflictError):
    """Raised when a status change is not allowed from the current status."""
    pass


class ImmutableTotalCostError(ConflictError):
    """Raised when something tries to change a reservation's total cost."""
    pass


class NotReservationOwnerError(PermissionDeniedError):
    """Raised when a non-owner attempts an owner-only action."""
    pass


class NothingToRemindError(ConflictError):
    """Raised when a reminder has no one to go to (everyone paid, or reservation closed)."""
    pass
