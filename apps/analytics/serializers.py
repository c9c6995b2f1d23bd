"""
Serializers for analytics app.

Response serializers only; the dashboard takes no input.
"""

from rest_framework import serializers

from apps.activity.serializers import ActivitySerializer
from apps.groups.models import GroupMember
from apps.reservations.serializers import ReservationSerializer
from apps.accounts.serializers import UserMinimalSerializer


class DashboardMemberSerializer(serializers.ModelSerializer):
    """Member with their payment history."""

    user = UserMinimalSerializer(read_only=True)
    payments = serializers.SerializerMethodField()

    class Meta:
        model = GroupMember
        fields = ['id', 'user', 'share_amount', 'is_paid', 'join_order', 'joined_at', 'payments']
        read_only_fields = fields

    def get_payments(self, obj):
        return [
            {
                'id': payment.id,
                'amount': str(payment.amount),
                'status': payment.status,
                'paid_at': payment.paid_at,
            }
            for payment in obj.payments.all()
        ]


class DashboardReservationSerializer(ReservationSerializer):
    """Reservation with members and their payments."""

    members = serializers.SerializerMethodField()

    class Meta(ReservationSerializer.Meta):
        fields = ReservationSerializer.Meta.fields + ['members']
        read_only_fields = fields

    def get_members(self, obj):
        return DashboardMemberSerializer(obj.group.members.all(), many=True).data


class DashboardStatsSerializer(serializers.Serializer):
    active_reservations = serializers.IntegerField()
    total_saved = serializers.IntegerField()
    group_members = serializers.IntegerField()


class DashboardResponseSerializer(serializers.Serializer):
    """Full dashboard payload."""

    reservations = DashboardReservationSerializer(many=True)
    stats = DashboardStatsSerializer()
    activities = ActivitySerializer(many=True)


class ErrorSerializer(serializers.Serializer):
    error = serializers.CharField()
    kind = serializers.CharField(required=False)
    status = serializers.IntegerField(required=False)
