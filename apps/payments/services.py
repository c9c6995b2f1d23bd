"""
Payment Services Module
=======================

Opens payments against the processor and reconciles what the processor
reports back onto the ledger.

A payment moves ``pending -> completed | failed`` and ``completed ->
refunded``. Only the first transition out of ``pending`` has effects, so
repeated confirmations (browser retries, webhook redelivery) are no-ops.

Example:
    Paying a share::

        from apps.payments.services import start_checkout, sync_payment

        payment, client_secret = start_checkout(member_id=member.id, user=request.user)
        # ... client completes the charge with client_secret ...
        result = sync_payment(external_reference=payment.external_reference)
        if result.changed:
            print(f"{payment.id} is now {result.status}")
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import logging
from typing import Optional, Tuple
from uuid import UUID

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import QuerySet

from apps.accounts.models import User
from apps.activity.models import ActivityType
from apps.activity.services import record_activity
from apps.groups.models import Group, GroupMember
from apps.groups.services import NotMemberError, get_member, rebalance_shares
from apps.reservations.models import ReservationStatus

from .exceptions import (
    InvalidFeeRateError,
    MemberAlreadyPaidError,
    NothingToPayError,
    PaymentGatewayError,
    PaymentNotFoundError,
    PendingPaymentExistsError,
    ReservationCancelledError,
)
from .gateway import PaymentGateway, get_payment_gateway, to_minor_units
from .models import Payment, PaymentStatus

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')

# Processor statuses (Stripe PaymentIntent vocabulary)
SUCCEEDED_STATUSES = {'succeeded'}
FAILED_STATUSES = {'failed', 'canceled'}


@dataclass(frozen=True)
class ReconciliationResult:
    """Outcome of applying a processor status to a payment."""

    payment: Payment
    status: str
    changed: bool


def calculate_charge(share, fee_rate_percent) -> Tuple[Decimal, Decimal]:
    """
    Processing fee and total charge for a share.

    Args:
        share (Decimal): The member's share.
        fee_rate_percent (Decimal): Fee as a percentage of the share.

    Returns:
        tuple: ``(fee, total)``, both rounded half up to cents.

    Example:
        >>> calculate_charge(Decimal('100.00'), Decimal('3'))
        (Decimal('3.00'), Decimal('103.00'))
    """
    try:
        rate = Decimal(str(fee_rate_percent))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidFeeRateError(f"Fee rate '{fee_rate_percent}' is not a number")
    if not rate.is_finite() or rate < 0:
        raise InvalidFeeRateError(f"Fee rate must be a non-negative number, got {fee_rate_percent}")

    share = Decimal(share).quantize(CENT, rounding=ROUND_HALF_UP)
    fee = (share * rate / Decimal(100)).quantize(CENT, rounding=ROUND_HALF_UP)
    return fee, share + fee


def open_payment(*, member: GroupMember, fee_rate_percent=None) -> Tuple[Payment, Decimal]:
    """
    Create a pending payment for the member's current share.

    The group row is locked first, the same lock ``join_group`` takes, so
    the share cannot be rebalanced while the payment is being opened. Once
    the payment exists the member's share is frozen.

    Returns:
        tuple: ``(payment, amount)`` where amount includes the fee.

    Raises:
        ReservationCancelledError: Reservation was cancelled
        MemberAlreadyPaidError: Member already settled their share
        PendingPaymentExistsError: Member already has a payment in flight
        NothingToPayError: Share is zero
    """
    if fee_rate_percent is None:
        fee_rate_percent = settings.PAYMENT_PROCESSING_FEE_PERCENT

    with transaction.atomic():
        group = (
            Group.objects
            .select_for_update()
            .select_related('reservation')
            .get(pk=member.group_id)
        )
        member = GroupMember.objects.select_for_update().get(pk=member.pk)

        if group.reservation.status == ReservationStatus.CANCELLED:
            raise ReservationCancelledError(f"Reservation for {group.reservation.venue_name} was cancelled")

        if member.is_paid:
            raise MemberAlreadyPaidError("This share is already paid")

        if Payment.objects.filter(group_member=member, status=PaymentStatus.PENDING).exists():
            raise PendingPaymentExistsError("A payment for this share is already in progress")

        if member.share_amount <= 0:
            raise NothingToPayError("Nothing to pay for this share")

        fee, total = calculate_charge(member.share_amount, fee_rate_percent)

        try:
            with transaction.atomic():
                payment = Payment.objects.create(
                    group_member=member,
                    amount=total,
                    fee_amount=fee,
                    currency=settings.PAYMENT_CURRENCY,
                    status=PaymentStatus.PENDING
                )
        except IntegrityError:
            # Partial unique index caught a concurrent pending payment
            raise PendingPaymentExistsError("A payment for this share is already in progress")

    logger.info(f"Opened payment {payment.id} for member {member.id}: {total} (fee {fee})")
    return payment, total


def start_checkout(
    *,
    member_id: UUID,
    user: User,
    gateway: Optional[PaymentGateway] = None
) -> Tuple[Payment, str]:
    """
    Open a payment and create the matching charge at the processor.

    The processor call happens outside any database transaction. If it
    fails the just-opened payment is marked failed so the member can try
    again.

    Returns:
        tuple: ``(payment, client_secret)``

    Raises:
        MemberNotFoundError: Unknown member id
        NotMemberError: ``user`` is not the member
        PaymentGatewayError: Processor call failed
        (plus everything ``open_payment`` raises)
    """
    member = get_member(member_id=member_id)
    if member.user_id != user.pk:
        raise NotMemberError("You can only pay your own share")

    payment, amount = open_payment(member=member)

    gateway = gateway or get_payment_gateway()
    try:
        intent = gateway.create_charge(
            amount_minor=to_minor_units(amount),
            currency=payment.currency,
            metadata={
                'payment_id': payment.id,
                'group_member_id': member.id,
                'reservation_id': member.group.reservation_id,
            }
        )
    except PaymentGatewayError:
        with transaction.atomic():
            payment.mark_failed()
            rebalance_shares(group_id=member.group_id)
        logger.warning(f"Charge creation failed, payment {payment.id} marked failed")
        raise

    payment.external_reference = intent.reference
    payment.save(update_fields=['external_reference', 'updated_at'])

    logger.info(f"Payment {payment.id} linked to processor reference {intent.reference}")
    return payment, intent.client_secret


def _lock_payment(external_reference: str) -> Payment:
    try:
        return (
            Payment.objects
            .select_for_update()
            .select_related('group_member__user', 'group_member__group__reservation')
            .get(external_reference=external_reference)
        )
    except Payment.DoesNotExist:
        raise PaymentNotFoundError(f"No payment with reference {external_reference}")


@transaction.atomic
def confirm_payment(*, external_reference: str, external_status: str) -> ReconciliationResult:
    """
    Apply a processor status to the matching payment.

    ``succeeded`` completes a pending payment, marks the member paid and
    records a payment activity. ``failed``/``canceled`` fail a pending
    payment and re-split the thawed share. Anything else, or any status on a non-pending payment,
    changes nothing.

    Raises:
        PaymentNotFoundError: No payment has this reference
    """
    payment = _lock_payment(external_reference)

    if payment.status != PaymentStatus.PENDING:
        if external_status in SUCCEEDED_STATUSES | FAILED_STATUSES:
            logger.info(
                f"Ignoring '{external_status}' for payment {payment.id}, already {payment.status}"
            )
        return ReconciliationResult(payment=payment, status=payment.status, changed=False)

    if external_status in SUCCEEDED_STATUSES:
        member = GroupMember.objects.select_for_update().get(pk=payment.group_member_id)
        payment.mark_completed()
        member.mark_paid()

        reservation = payment.group_member.group.reservation
        record_activity(
            user=member.user,
            activity_type=ActivityType.PAYMENT,
            message=f"Payment completed for {payment.amount} {payment.currency.upper()}",
            reservation=reservation,
            payment=payment
        )
        logger.info(f"Payment {payment.id} completed, member {member.id} is paid")
        return ReconciliationResult(payment=payment, status=payment.status, changed=True)

    if external_status in FAILED_STATUSES:
        payment.mark_failed()
        rebalance_shares(group_id=payment.group_member.group_id)
        logger.info(f"Payment {payment.id} failed at processor ({external_status})")
        return ReconciliationResult(payment=payment, status=payment.status, changed=True)

    logger.debug(f"Payment {payment.id} still pending at processor ({external_status})")
    return ReconciliationResult(payment=payment, status=payment.status, changed=False)


def sync_payment(
    *,
    external_reference: str,
    gateway: Optional[PaymentGateway] = None
) -> ReconciliationResult:
    """Ask the processor for the current status and reconcile it."""
    if not Payment.objects.filter(external_reference=external_reference).exists():
        raise PaymentNotFoundError(f"No payment with reference {external_reference}")

    gateway = gateway or get_payment_gateway()
    external_status = gateway.retrieve_status(external_reference)
    return confirm_payment(
        external_reference=external_reference,
        external_status=external_status
    )


@transaction.atomic
def record_refund(*, external_reference: str) -> ReconciliationResult:
    """
    Mark a completed payment refunded and the member unpaid again.

    Money movement is the processor's business; this only tracks status
    and re-splits the thawed share among the unpaid members.
    Non-completed payments are left alone.
    """
    payment = _lock_payment(external_reference)

    if payment.status != PaymentStatus.COMPLETED:
        logger.info(f"Ignoring refund for payment {payment.id} in status {payment.status}")
        return ReconciliationResult(payment=payment, status=payment.status, changed=False)

    # Group before member, the order join_group and open_payment lock in
    Group.objects.select_for_update().get(pk=payment.group_member.group_id)
    member = GroupMember.objects.select_for_update().get(pk=payment.group_member_id)
    payment.mark_refunded()
    member.mark_unpaid()
    rebalance_shares(group_id=member.group_id)

    logger.info(f"Payment {payment.id} refunded, member {member.id} is unpaid")
    return ReconciliationResult(payment=payment, status=payment.status, changed=True)


def _expire_at_processor(external_reference: str, gateway: PaymentGateway) -> Optional[ReconciliationResult]:
    """
    Settle a stale payment with whatever the processor reports.

    An intent that is still open is cancelled first so the client can no
    longer complete it. If the processor refuses (typically because the
    charge just succeeded) the payment stays pending for the webhook.
    """
    try:
        external_status = gateway.retrieve_status(external_reference)
        if external_status not in SUCCEEDED_STATUSES | FAILED_STATUSES:
            external_status = gateway.cancel_charge(external_reference)
    except PaymentGatewayError as e:
        logger.warning(f"Leaving payment {external_reference} pending, processor refused expiry: {e}")
        return None

    return confirm_payment(external_reference=external_reference, external_status=external_status)


def expire_stale_payments(
    *,
    older_than: datetime,
    dry_run: bool = False,
    gateway: Optional[PaymentGateway] = None
) -> int:
    """
    Fail pending payments created before ``older_than``.

    Abandoned checkouts otherwise freeze a member's share forever. A
    payment that reached the processor is reconciled against it first: a
    charge that succeeded is completed instead of failed, and an open one
    is cancelled there before it is failed here.

    Returns:
        Number of payments expired (or that would be, with ``dry_run``).
    """
    stale = Payment.objects.filter(status=PaymentStatus.PENDING, created_at__lt=older_than)
    if dry_run:
        return stale.count()

    expired = 0
    for payment_id, external_reference in stale.values_list('id', 'external_reference'):
        if external_reference:
            gateway = gateway or get_payment_gateway()
            result = _expire_at_processor(external_reference, gateway)
            if result is None or not result.changed:
                continue
            if result.status == PaymentStatus.COMPLETED:
                logger.info(f"Stale payment {payment_id} had succeeded at the processor, completed it")
            else:
                expired += 1
            continue

        # Never reached the processor, nothing to cancel there
        with transaction.atomic():
            payment = (
                Payment.objects
                .select_for_update()
                .select_related('group_member')
                .get(pk=payment_id)
            )
            # Might have been confirmed since the query ran
            if payment.status != PaymentStatus.PENDING:
                continue
            payment.mark_failed()
            rebalance_shares(group_id=payment.group_member.group_id)
            expired += 1

    if expired:
        logger.info(f"Expired {expired} pending payments created before {older_than.isoformat()}")
    return expired


def get_user_payments(*, user: User) -> QuerySet:
    """All payments the user has opened, newest first."""
    return (
        Payment.objects
        .filter(group_member__user=user)
        .select_related('group_member__group__reservation')
        .order_by('-created_at')
    )
