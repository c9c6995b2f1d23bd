"""
Split calculation.

All arithmetic happens in integer cents so shares always add up to the
amount being split.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, List, Sequence, Tuple

from .exceptions import InvalidSplitError

CENTS = Decimal(100)


def to_cents(amount) -> int:
    """Convert a money amount to whole cents, rounding half up."""
    return int((Decimal(amount) * CENTS).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / CENTS).quantize(Decimal('0.01'))


def calculate_splits(total, participants: Sequence[Any]) -> List[Tuple[Any, Decimal]]:
    """
    Split ``total`` evenly across ``participants`` with cent precision.

    Algorithm:
        1. Convert to cents: ``total_cents = round(total * 100)``
        2. Base share: ``base = total_cents // N``
        3. Remainder: ``remainder = total_cents % N``
        4. First 'remainder' participants get ``(base + 1)`` cents
        5. Rest get 'base' cents

    Args:
        total (Decimal): Amount to split, non-negative.
        participants (list): Anything, usually GroupMember instances, in
            join order.

    Returns:
        list[tuple]: ``(participant, Decimal)`` pairs in input order.

    Raises:
        InvalidSplitError: No participants, negative total, or the split
            fails to sum back to the total.

    Example:
        100.00 split among 3 members::

            >>> calculate_splits(Decimal('100.00'), [a, b, c])
            [(a, Decimal('33.34')), (b, Decimal('33.33')), (c, Decimal('33.33'))]

    Note:
        Order matters: the earliest participants absorb the extra cents.
    """
    if not participants:
        raise InvalidSplitError("At least one participant required")

    total_cents = to_cents(total)
    if total_cents < 0:
        raise InvalidSplitError(f"Cannot split a negative amount ({total})")

    count = len(participants)
    base_cents, remainder_cents = divmod(total_cents, count)

    shares = []
    for i, participant in enumerate(participants):
        # First 'remainder' participants get +1 cent
        cents = base_cents + 1 if i < remainder_cents else base_cents
        shares.append((participant, from_cents(cents)))

    # Safety check
    if sum(to_cents(amount) for _, amount in shares) != total_cents:
        raise InvalidSplitError(
            f"Split calculation error: shares do not sum to {from_cents(total_cents)}"
        )

    return shares
