"""Fixtures shared by every app's tests."""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.accounts.models import User


def client_for(user):
    """Return an API client authenticated as ``user`` via JWT."""
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def user(db):
    """Create and return a test user (reservation owner in most tests)."""
    return User.objects.create_user(
        email='owner@example.com',
        password='TestPass123!',
        first_name='Olivia',
        last_name='Owner',
    )


@pytest.fixture
def other_user(db):
    """Create and return another test user."""
    return User.objects.create_user(
        email='bob@example.com',
        password='TestPass123!',
        first_name='Bob',
        last_name='Builder',
    )


@pytest.fixture
def third_user(db):
    """Create and return a third test user."""
    return User.objects.create_user(
        email='carol@example.com',
        password='TestPass123!',
        first_name='Carol',
    )


@pytest.fixture
def nameless_user(db):
    """A user with no first name."""
    return User.objects.create_user(
        email='anon@example.com',
        password='TestPass123!',
    )


@pytest.fixture
def authenticated_client(user):
    """Return API client authenticated as ``user``."""
    return client_for(user)


@pytest.fixture
def other_client(other_user):
    """Return API client authenticated as ``other_user``."""
    return client_for(other_user)


@pytest.fixture
def event_date():
    return timezone.now() + timedelta(days=7)


@pytest.fixture
def make_reservation(db, user, event_date):
    """Factory creating a reservation (and its group) through the service layer."""
    from apps.reservations.services import create_reservation

    def _make(owner=None, total_cost='300.00', venue_name='Chez Test'):
        reservation, group = create_reservation(
            owner=owner or user,
            venue_name=venue_name,
            total_cost=Decimal(total_cost),
            event_date=event_date,
        )
        return reservation, group

    return _make


@pytest.fixture
def reservation_with_group(make_reservation):
    """A 300.00 reservation owned by ``user``; returns (reservation, group)."""
    return make_reservation()
