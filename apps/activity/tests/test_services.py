"""
Tests for the activity log.
"""

from unittest.mock import patch

import pytest
from django.db import DatabaseError
from django.urls import reverse
from rest_framework import status

from apps.activity.models import Activity, ActivityType, ImmutableActivityError
from apps.activity.services import (
    get_reservation_activities,
    get_user_activities,
    record_activity,
)
from apps.groups.services import join_group


@pytest.mark.django_db
class TestRecordActivity:

    def test_records_entry(self, user):
        activity = record_activity(
            user=user, activity_type=ActivityType.REMINDER, message='Pay up'
        )

        assert activity.pk is not None
        assert activity.reservation is None
        assert Activity.objects.count() == 1

    def test_unknown_type_rejected(self, user):
        with pytest.raises(ValueError):
            record_activity(user=user, activity_type='gossip', message='x')

    def test_database_failure_is_swallowed(self, user):
        with patch.object(Activity.objects, 'create', side_effect=DatabaseError('disk full')), \
                patch('apps.activity.services.logger') as mock_logger:
            result = record_activity(
                user=user, activity_type=ActivityType.REMINDER, message='Pay up'
            )

        assert result is None
        mock_logger.exception.assert_called_once()
        assert Activity.objects.count() == 0

    def test_activities_are_immutable(self, user):
        activity = record_activity(user=user, activity_type=ActivityType.REMINDER, message='x')

        activity.message = 'edited'
        with pytest.raises(ImmutableActivityError):
            activity.save()
        with pytest.raises(ImmutableActivityError):
            activity.delete()

        activity.refresh_from_db()
        assert activity.message == 'x'


@pytest.mark.django_db
class TestActivityQueries:

    def test_user_activities_newest_first_and_limited(self, user):
        for i in range(12):
            record_activity(user=user, activity_type=ActivityType.REMINDER, message=f'#{i}')

        activities = list(get_user_activities(user=user))

        assert len(activities) == 10
        assert activities[0].message == '#11'

    def test_user_activities_only_own(self, reservation_with_group, user, other_user):
        _, group = reservation_with_group
        join_group(invite_code=group.invite_code, user=other_user)

        own_types = [a.activity_type for a in get_user_activities(user=user)]
        assert own_types == [ActivityType.CREATE]

    def test_reservation_activities(self, reservation_with_group, other_user):
        reservation, group = reservation_with_group
        join_group(invite_code=group.invite_code, user=other_user)

        types = [a.activity_type for a in get_reservation_activities(reservation_id=reservation.id)]
        assert types == [ActivityType.JOIN, ActivityType.CREATE]


@pytest.mark.django_db
class TestActivityAPI:

    def test_my_activities(self, authenticated_client, reservation_with_group):
        response = authenticated_client.get(reverse('activity:my-activities'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data[0]['message'] == 'Created reservation for Chez Test'

    def test_limit_param(self, authenticated_client, user):
        for i in range(5):
            record_activity(user=user, activity_type=ActivityType.REMINDER, message=f'#{i}')

        response = authenticated_client.get(reverse('activity:my-activities'), {'limit': 2})

        assert len(response.data) == 2

    def test_bad_limit(self, authenticated_client):
        response = authenticated_client.get(reverse('activity:my-activities'), {'limit': 'many'})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
