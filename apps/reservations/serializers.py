from decimal import Decimal

from rest_framework import serializers

from apps.accounts.serializers import UserMinimalSerializer
from apps.groups.serializers import GroupMemberSerializer, GroupSummarySerializer

from .models import Reservation, ReservationStatus


# =============================================================================
# Input Serializers
# =============================================================================

class ReservationCreateSerializer(serializers.Serializer):
    """
    Validate input for creating a reservation.

    Fields:
        venue_name (str): Where the event happens
        venue_image (url): Optional picture of the venue
        event_date (datetime): When it happens
        total_cost (Decimal): Amount to split, > 0, two decimals
        description (str): Optional notes
    """

    venue_name = serializers.CharField(max_length=200)
    venue_image = serializers.URLField(max_length=500, required=False, allow_blank=True)
    event_date = serializers.DateTimeField()
    total_cost = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        min_value=Decimal('0.01')
    )
    description = serializers.CharField(required=False, allow_blank=True)

    def validate_venue_name(self, value):
        if not value.strip():
            raise serializers.ValidationError('Venue name cannot be blank')
        return value.strip()


class ReservationStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[ReservationStatus.COMPLETED, ReservationStatus.CANCELLED]
    )


# =============================================================================
# Output Serializers
# =============================================================================

class ReservationSerializer(serializers.ModelSerializer):
    """Reservation with a short summary of its group."""
    
    owner = UserMinimalSerializer(read_only=True)
    group = GroupSummarySerializer(read_only=True)
    
    class Meta:
        model = Reservation
        fields = [
            'id', 'owner', 'venue_name', 'venue_image', 'event_date',
            'total_cost', 'description', 'status', 'group',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields


class ReservationDetailSerializer(ReservationSerializer):
    """Reservation with every member and their share."""
    
    members = serializers.SerializerMethodField()
    
    class Meta(ReservationSerializer.Meta):
        fields = ReservationSerializer.Meta.fields + ['members']
        read_only_fields = fields
    
    def get_members(self, obj):
        members = sorted(obj.group.members.all(), key=lambda m: m.join_order)
        return GroupMemberSerializer(members, many=True).data


class ReminderResponseSerializer(serializers.Serializer):
    """Who was reminded, plus the activity that records it."""

    reminded = GroupMemberSerializer(many=True)
    activity_id = serializers.UUIDField(allow_null=True)
