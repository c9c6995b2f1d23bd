"""
Reservations app services layer.

Creating a reservation seeds its group; status changes and
reminders are owner-only.
"""

from .exceptions import (
    ReservationNotFoundError,
    InvalidReservationError,
    InvalidStatusTransitionError,
    ImmutableTotalCostError,
    NotReservationOwnerError,
    NothingToRemindError,
)

from .reservation_management import (
    create_reservation,
    get_reservation,
    get_user_reservations,
    send_reminder,
    update_reservation_status,
    user_can_view,
)


__all__ = [
    # Exceptions
    'ReservationNotFoundError',
    'InvalidReservationError',
    'InvalidStatusTransitionError',
    'ImmutableTotalCostError',
    'NotReservationOwnerError',
    'NothingToRemindError',

    # Reservation Management
    'create_reservation',
    'get_reservation',
    'get_user_reservations',
    'send_reminder',
    'update_reservation_status',
    'user_can_view',
]
