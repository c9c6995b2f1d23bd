"""
Service layer tests for payments app.

Tests cover:
- Fee calculation
- Opening payments (guards against double payment)
- Checkout against a fake processor
- Reconciliation idempotency
- Refunds and expiry
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from apps.activity.models import Activity, ActivityType
from apps.groups.models import GroupMember
from apps.groups.services import NotMemberError, join_group
from apps.payments.exceptions import (
    InvalidFeeRateError,
    MemberAlreadyPaidError,
    NothingToPayError,
    PaymentGatewayError,
    PaymentNotFoundError,
    PendingPaymentExistsError,
    ReservationCancelledError,
)
from apps.payments.models import Payment, PaymentStatus
from apps.payments.services import (
    calculate_charge,
    confirm_payment,
    expire_stale_payments,
    open_payment,
    record_refund,
    start_checkout,
    sync_payment,
)
from apps.reservations.models import ReservationStatus

from .fakes import FakeGateway


def backdate(payment, days=2):
    Payment.objects.filter(pk=payment.pk).update(created_at=timezone.now() - timedelta(days=days))


def shares_of(group):
    return [m.share_amount for m in group.members.order_by('join_order')]


# =============================================================================
# Fee Calculation Tests
# =============================================================================

class TestCalculateCharge:

    def test_three_percent(self):
        assert calculate_charge(Decimal('100.00'), Decimal('3')) == (Decimal('3.00'), Decimal('103.00'))

    def test_fee_rounds_half_up(self):
        # 33.33 * 3% = 0.9999
        assert calculate_charge(Decimal('33.33'), 3) == (Decimal('1.00'), Decimal('34.33'))
        # 0.50 * 3% = 0.015
        assert calculate_charge(Decimal('0.50'), 3) == (Decimal('0.02'), Decimal('0.52'))

    def test_zero_rate(self):
        assert calculate_charge(Decimal('150.00'), 0) == (Decimal('0.00'), Decimal('150.00'))

    @pytest.mark.parametrize('rate', ['-1', 'abc', None])
    def test_invalid_rate(self, rate):
        with pytest.raises(InvalidFeeRateError):
            calculate_charge(Decimal('10.00'), rate)


# =============================================================================
# Open Payment Tests
# =============================================================================

@pytest.mark.django_db
class TestOpenPayment:

    def test_creates_pending_payment_with_fee(self, bob_member):
        payment, amount = open_payment(member=bob_member)

        assert amount == Decimal('154.50')
        assert payment.status == PaymentStatus.PENDING
        assert payment.amount == Decimal('154.50')
        assert payment.fee_amount == Decimal('4.50')
        assert payment.currency == 'usd'
        assert payment.external_reference is None

    def test_custom_fee_rate(self, bob_member):
        _, amount = open_payment(member=bob_member, fee_rate_percent=Decimal('0'))
        assert amount == Decimal('150.00')

    def test_paid_member_rejected(self, bob_member):
        bob_member.mark_paid()

        with pytest.raises(MemberAlreadyPaidError):
            open_payment(member=bob_member)

    def test_second_pending_rejected(self, bob_member):
        open_payment(member=bob_member)

        with pytest.raises(PendingPaymentExistsError):
            open_payment(member=bob_member)

        assert Payment.objects.filter(group_member=bob_member).count() == 1

    def test_retry_after_failure_allowed(self, bob_member):
        first, _ = open_payment(member=bob_member)
        first.mark_failed()

        second, _ = open_payment(member=bob_member)

        assert second.id != first.id
        assert second.status == PaymentStatus.PENDING

    def test_zero_share_rejected(self, reservation_with_group, other_user):
        _, group = reservation_with_group
        GroupMember.objects.filter(group=group).update(is_paid=True)
        joiner = join_group(invite_code=group.invite_code, user=other_user)

        with pytest.raises(NothingToPayError):
            open_payment(member=joiner)

    def test_cancelled_reservation_rejected(self, two_member_group, bob_member):
        reservation, _ = two_member_group
        reservation.status = ReservationStatus.CANCELLED
        reservation.save(update_fields=['status'])

        with pytest.raises(ReservationCancelledError):
            open_payment(member=bob_member)


# =============================================================================
# Checkout Tests
# =============================================================================

@pytest.mark.django_db
class TestStartCheckout:

    def test_creates_charge_and_stores_reference(self, bob_member, other_user, gateway):
        payment, client_secret = start_checkout(
            member_id=bob_member.id, user=other_user, gateway=gateway
        )

        charge = gateway.charges[0]
        assert charge['amount_minor'] == 15450
        assert charge['currency'] == 'usd'
        assert charge['metadata']['group_member_id'] == bob_member.id

        payment.refresh_from_db()
        assert payment.external_reference == charge['reference']
        assert client_secret == f"{charge['reference']}_secret"

    def test_other_user_cannot_pay(self, bob_member, user, gateway):
        with pytest.raises(NotMemberError):
            start_checkout(member_id=bob_member.id, user=user, gateway=gateway)

        assert gateway.charges == []
        assert not Payment.objects.exists()

    def test_gateway_failure_marks_payment_failed(self, bob_member, other_user, failing_gateway):
        with pytest.raises(PaymentGatewayError):
            start_checkout(member_id=bob_member.id, user=other_user, gateway=failing_gateway)

        payment = Payment.objects.get(group_member=bob_member)
        assert payment.status == PaymentStatus.FAILED

        bob_member.refresh_from_db()
        assert bob_member.is_paid is False


# =============================================================================
# Reconciliation Tests
# =============================================================================

@pytest.mark.django_db
class TestConfirmPayment:

    @pytest.fixture
    def checked_out(self, bob_member, other_user, gateway):
        payment, _ = start_checkout(member_id=bob_member.id, user=other_user, gateway=gateway)
        return payment

    def test_succeeded_completes_payment(self, checked_out, bob_member, other_user):
        result = confirm_payment(
            external_reference=checked_out.external_reference,
            external_status='succeeded'
        )

        assert result.changed is True
        assert result.status == PaymentStatus.COMPLETED

        checked_out.refresh_from_db()
        bob_member.refresh_from_db()
        assert checked_out.status == PaymentStatus.COMPLETED
        assert checked_out.paid_at is not None
        assert bob_member.is_paid is True

        activity = Activity.objects.get(activity_type=ActivityType.PAYMENT)
        assert activity.user == other_user
        assert activity.payment == checked_out
        assert activity.message == 'Payment completed for 154.50 USD'

    def test_repeat_confirmation_is_noop(self, checked_out):
        confirm_payment(external_reference=checked_out.external_reference, external_status='succeeded')

        result = confirm_payment(
            external_reference=checked_out.external_reference,
            external_status='succeeded'
        )

        assert result.changed is False
        assert result.status == PaymentStatus.COMPLETED
        assert Activity.objects.filter(activity_type=ActivityType.PAYMENT).count() == 1

    def test_failure_status_fails_payment(self, checked_out, bob_member):
        result = confirm_payment(
            external_reference=checked_out.external_reference,
            external_status='canceled'
        )

        assert result.changed is True
        assert result.status == PaymentStatus.FAILED
        bob_member.refresh_from_db()
        assert bob_member.is_paid is False
        assert not Activity.objects.filter(activity_type=ActivityType.PAYMENT).exists()

    def test_success_after_failure_ignored(self, checked_out, bob_member):
        confirm_payment(external_reference=checked_out.external_reference, external_status='failed')

        result = confirm_payment(
            external_reference=checked_out.external_reference,
            external_status='succeeded'
        )

        assert result.changed is False
        assert result.status == PaymentStatus.FAILED
        bob_member.refresh_from_db()
        assert bob_member.is_paid is False

    def test_in_progress_status_changes_nothing(self, checked_out):
        result = confirm_payment(
            external_reference=checked_out.external_reference,
            external_status='processing'
        )

        assert result.changed is False
        assert result.status == PaymentStatus.PENDING

    def test_unknown_reference(self):
        with pytest.raises(PaymentNotFoundError):
            confirm_payment(external_reference='pi_missing', external_status='succeeded')

    def test_sync_polls_gateway(self, checked_out, gateway):
        gateway.statuses[checked_out.external_reference] = 'succeeded'

        result = sync_payment(external_reference=checked_out.external_reference, gateway=gateway)

        assert result.changed is True
        assert result.status == PaymentStatus.COMPLETED

    def test_sync_unknown_reference_skips_gateway(self, gateway):
        with pytest.raises(PaymentNotFoundError):
            sync_payment(external_reference='pi_missing', gateway=gateway)


# =============================================================================
# Frozen Share Scenario
# =============================================================================

@pytest.mark.django_db
class TestPaidShareSurvivesJoin:

    def test_join_after_payment_keeps_paid_share(
        self, two_member_group, bob_member, other_user, third_user, gateway
    ):
        _, group = two_member_group
        payment, _ = start_checkout(member_id=bob_member.id, user=other_user, gateway=gateway)
        confirm_payment(external_reference=payment.external_reference, external_status='succeeded')

        join_group(invite_code=group.invite_code, user=third_user)

        shares = [
            m.share_amount
            for m in GroupMember.objects.filter(group=group).order_by('join_order')
        ]
        assert shares == [Decimal('75.00'), Decimal('150.00'), Decimal('75.00')]
        assert sum(shares) == Decimal('300.00')


@pytest.mark.django_db
class TestThawedShareRebalances:

    @pytest.fixture
    def owner_paying_alone(self, make_reservation, user, other_user, gateway):
        """150.00 reservation; the owner opens a checkout, then Bob joins (at 0.00)."""
        _, group = make_reservation(total_cost='150.00')
        owner = GroupMember.objects.get(group=group, user=user)
        payment, _ = start_checkout(member_id=owner.id, user=user, gateway=gateway)
        join_group(invite_code=group.invite_code, user=other_user)
        assert shares_of(group) == [Decimal('150.00'), Decimal('0.00')]
        return group, payment

    def test_failed_payment_resplits_before_next_join(self, owner_paying_alone, third_user):
        group, payment = owner_paying_alone

        confirm_payment(external_reference=payment.external_reference, external_status='failed')
        assert shares_of(group) == [Decimal('75.00'), Decimal('75.00')]

        before = shares_of(group)
        join_group(invite_code=group.invite_code, user=third_user)
        after = shares_of(group)

        assert after == [Decimal('50.00')] * 3
        assert all(new <= old for old, new in zip(before, after))

    def test_refund_resplits(self, owner_paying_alone, user):
        group, payment = owner_paying_alone
        confirm_payment(external_reference=payment.external_reference, external_status='succeeded')

        record_refund(external_reference=payment.external_reference)

        assert shares_of(group) == [Decimal('75.00'), Decimal('75.00')]
        assert GroupMember.objects.get(group=group, user=user).is_paid is False

    def test_gateway_failure_resplits(self, make_reservation, user, other_user):
        _, group = make_reservation(total_cost='150.00')
        owner = GroupMember.objects.get(group=group, user=user)

        class JoinDuringCharge(FakeGateway):
            def create_charge(self, **kwargs):
                join_group(invite_code=group.invite_code, user=other_user)
                raise PaymentGatewayError('Payment processor unreachable: timeout')

        with pytest.raises(PaymentGatewayError):
            start_checkout(member_id=owner.id, user=user, gateway=JoinDuringCharge())

        assert shares_of(group) == [Decimal('75.00'), Decimal('75.00')]


# =============================================================================
# Refund Tests
# =============================================================================

@pytest.mark.django_db
class TestRecordRefund:

    def test_refund_completed_payment(self, bob_member, other_user, gateway):
        payment, _ = start_checkout(member_id=bob_member.id, user=other_user, gateway=gateway)
        confirm_payment(external_reference=payment.external_reference, external_status='succeeded')

        result = record_refund(external_reference=payment.external_reference)

        assert result.changed is True
        assert result.status == PaymentStatus.REFUNDED
        bob_member.refresh_from_db()
        assert bob_member.is_paid is False

    def test_refund_pending_is_noop(self, bob_member, other_user, gateway):
        payment, _ = start_checkout(member_id=bob_member.id, user=other_user, gateway=gateway)

        result = record_refund(external_reference=payment.external_reference)

        assert result.changed is False
        assert result.status == PaymentStatus.PENDING


# =============================================================================
# Expiry Tests
# =============================================================================

@pytest.mark.django_db
class TestExpireStalePayments:

    def test_expires_only_old_pending(self, bob_member, owner_member):
        old, _ = open_payment(member=bob_member)
        fresh, _ = open_payment(member=owner_member)
        Payment.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(days=2))

        expired = expire_stale_payments(older_than=timezone.now() - timedelta(days=1))

        assert expired == 1
        old.refresh_from_db()
        fresh.refresh_from_db()
        assert old.status == PaymentStatus.FAILED
        assert fresh.status == PaymentStatus.PENDING

    def test_dry_run_changes_nothing(self, bob_member):
        old, _ = open_payment(member=bob_member)
        Payment.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(days=2))

        count = expire_stale_payments(older_than=timezone.now() - timedelta(days=1), dry_run=True)

        assert count == 1
        old.refresh_from_db()
        assert old.status == PaymentStatus.PENDING

    def test_charge_that_succeeded_is_completed(self, bob_member, other_user, gateway):
        payment, _ = start_checkout(member_id=bob_member.id, user=other_user, gateway=gateway)
        gateway.statuses[payment.external_reference] = 'succeeded'
        backdate(payment)

        expired = expire_stale_payments(older_than=timezone.now(), gateway=gateway)

        assert expired == 0
        assert gateway.cancelled == []
        payment.refresh_from_db()
        bob_member.refresh_from_db()
        assert payment.status == PaymentStatus.COMPLETED
        assert bob_member.is_paid is True

    def test_open_intent_cancelled_before_failing(self, bob_member, other_user, gateway):
        payment, _ = start_checkout(member_id=bob_member.id, user=other_user, gateway=gateway)
        backdate(payment)

        expired = expire_stale_payments(older_than=timezone.now(), gateway=gateway)

        assert expired == 1
        assert gateway.cancelled == [payment.external_reference]
        payment.refresh_from_db()
        assert payment.status == PaymentStatus.FAILED

    def test_refused_cancel_keeps_payment_for_late_success(self, bob_member, other_user, gateway):
        payment, _ = start_checkout(member_id=bob_member.id, user=other_user, gateway=gateway)
        gateway.refuse_cancel = PaymentGatewayError('This PaymentIntent has a status of succeeded.')
        backdate(payment)

        expired = expire_stale_payments(older_than=timezone.now(), gateway=gateway)

        assert expired == 0
        payment.refresh_from_db()
        assert payment.status == PaymentStatus.PENDING

        confirm_payment(external_reference=payment.external_reference, external_status='succeeded')

        bob_member.refresh_from_db()
        assert bob_member.is_paid is True
        assert Payment.objects.filter(group_member=bob_member, status=PaymentStatus.COMPLETED).count() == 1

    def test_expiry_rebalances_group(self, two_member_group, owner_member, third_user):
        _, group = two_member_group
        payment, _ = open_payment(member=owner_member)
        join_group(invite_code=group.invite_code, user=third_user)
        assert shares_of(group) == [Decimal('150.00'), Decimal('75.00'), Decimal('75.00')]
        backdate(payment)

        expire_stale_payments(older_than=timezone.now())

        assert shares_of(group) == [Decimal('100.00')] * 3


@pytest.mark.django_db
class TestSettlementFlow:

    def test_three_way_split_then_owner_pays(
        self, make_reservation, user, other_user, third_user, gateway
    ):
        _, group = make_reservation(total_cost='150.00')

        join_group(invite_code=group.invite_code, user=other_user)
        assert [m.share_amount for m in group.members.order_by('join_order')] == [
            Decimal('75.00'), Decimal('75.00')
        ]

        join_group(invite_code=group.invite_code, user=third_user)
        assert [m.share_amount for m in group.members.order_by('join_order')] == [
            Decimal('50.00'), Decimal('50.00'), Decimal('50.00')
        ]

        owner = GroupMember.objects.get(group=group, user=user)
        payment, _ = start_checkout(member_id=owner.id, user=user, gateway=gateway)

        assert payment.amount == Decimal('51.50')
        assert gateway.charges[0]['amount_minor'] == 5150

        gateway.statuses[payment.external_reference] = 'succeeded'
        sync_payment(external_reference=payment.external_reference, gateway=gateway)
        sync_payment(external_reference=payment.external_reference, gateway=gateway)

        owner.refresh_from_db()
        assert owner.is_paid is True
        assert Payment.objects.filter(group_member=owner, status=PaymentStatus.COMPLETED).count() == 1
        assert Activity.objects.filter(activity_type=ActivityType.PAYMENT).count() == 1
