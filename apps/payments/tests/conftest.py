import pytest

from apps.groups.models import GroupMember
from apps.groups.services import join_group
from apps.payments.exceptions import PaymentGatewayError

from .fakes import FakeGateway


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def failing_gateway():
    fake = FakeGateway()
    fake.fail_with = PaymentGatewayError('Payment processor unreachable: timeout')
    return fake


@pytest.fixture
def two_member_group(reservation_with_group, other_user):
    """300.00 reservation split between owner and Bob (150 each)."""
    reservation, group = reservation_with_group
    join_group(invite_code=group.invite_code, user=other_user)
    return reservation, group


@pytest.fixture
def bob_member(two_member_group, other_user):
    _, group = two_member_group
    return GroupMember.objects.get(group=group, user=other_user)


@pytest.fixture
def owner_member(two_member_group, user):
    _, group = two_member_group
    return GroupMember.objects.get(group=group, user=user)
