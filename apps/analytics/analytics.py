"""
Dashboard Module
================

Read-only aggregation behind the dashboard: the user's reservations,
summary stats over them, and their recent activity.

Classes:
    DashboardQueries: Static methods for dashboard data.

Example:
    Building the dashboard for the current user::

        from apps.analytics.analytics import DashboardQueries

        data = DashboardQueries.compute_dashboard(request.user)
        print(f"{data['stats']['active_reservations']} active reservations")
        print(f"Saved {data['stats']['total_saved']} by splitting")

Note:
    This module doesn't modify any data. All methods are static and can
    be called without instantiation.
"""

from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.db.models import Prefetch, Q

from apps.activity.services import get_user_activities
from apps.groups.models import GroupMember
from apps.reservations.models import Reservation, ReservationStatus


class DashboardQueries:
    """
    Queries for the dashboard endpoint.

    Methods:
        user_reservations: Reservations the user owns or belongs to.
        reservation_stats: Summary numbers over a list of reservations.
        compute_dashboard: Everything the dashboard shows, in one dict.
    """
    
    @staticmethod
    def user_reservations(user):
        """
        Reservations owned by ``user`` or whose group has ``user`` as a member.

        Each reservation appears once even when the user is both owner and
        member. Group, members (join order), their users and payments are
        prefetched.

        Returns:
            list[Reservation]: Newest first.
        """
        members = (
            GroupMember.objects
            .select_related('user')
            .prefetch_related('payments')
            .order_by('join_order')
        )
        return list(
            Reservation.objects
            .filter(Q(owner=user) | Q(group__members__user=user))
            .distinct()
            .select_related('owner', 'group')
            .prefetch_related(Prefetch('group__members', queryset=members))
            .order_by('-created_at')
        )
    
    @staticmethod
    def reservation_stats(reservations):
        """
        Summary numbers over ``reservations``.

        ``total_saved`` is what the user avoided paying alone: for each
        reservation ``total - total / member_count`` using the current
        member count, summed and rounded half up to a whole unit.

        Returns:
            dict: ``active_reservations``, ``total_saved`` (int) and
            ``group_members`` (sum of member counts, not deduplicated).
        """
        active = 0
        saved = Decimal('0')
        member_total = 0
        
        for reservation in reservations:
            if reservation.status == ReservationStatus.ACTIVE:
                active += 1
            
            member_count = len(reservation.group.members.all())
            member_total += member_count
            
            divisor = max(member_count, 1)
            saved += reservation.total_cost - reservation.total_cost / divisor
        
        return {
            'active_reservations': active,
            'total_saved': int(saved.quantize(Decimal('1'), rounding=ROUND_HALF_UP)),
            'group_members': member_total,
        }
    
    @staticmethod
    def compute_dashboard(user, activity_limit=None):
        """
        Everything the dashboard shows for ``user``.

        Args:
            user (User): Whose dashboard.
            activity_limit (int, optional): How many activities to include.
                Defaults to ``settings.DASHBOARD_ACTIVITY_LIMIT``.

        Returns:
            dict: ``reservations`` (list), ``stats`` (dict) and
            ``activities`` (list, newest first).

        Example:
            Zero state::

                >>> DashboardQueries.compute_dashboard(new_user)['stats']
                {'active_reservations': 0, 'total_saved': 0, 'group_members': 0}
        """
        if activity_limit is None:
            activity_limit = settings.DASHBOARD_ACTIVITY_LIMIT
        
        reservations = DashboardQueries.user_reservations(user)
        
        return {
            'reservations': reservations,
            'stats': DashboardQueries.reservation_stats(reservations),
            'activities': list(get_user_activities(user=user, limit=activity_limit)),
        }
