from rest_framework import serializers

from apps.accounts.serializers import UserMinimalSerializer

from .models import Group, GroupMember


class GroupMemberSerializer(serializers.ModelSerializer):
    """Member with their current share."""
    
    user = UserMinimalSerializer(read_only=True)
    
    class Meta:
        model = GroupMember
        fields = ['id', 'user', 'share_amount', 'is_paid', 'join_order', 'joined_at']
        read_only_fields = fields


class GroupSummarySerializer(serializers.ModelSerializer):
    """Lightweight group info nested in reservation responses."""
    
    member_count = serializers.SerializerMethodField()
    
    class Meta:
        model = Group
        fields = ['id', 'name', 'invite_code', 'member_count', 'created_at']
        read_only_fields = fields
    
    def get_member_count(self, obj):
        return len(obj.members.all())


class GroupSerializer(serializers.ModelSerializer):
    """Full group representation with members."""
    
    reservation_id = serializers.UUIDField(read_only=True)
    venue_name = serializers.CharField(source='reservation.venue_name', read_only=True)
    total_cost = serializers.DecimalField(
        source='reservation.total_cost',
        max_digits=10,
        decimal_places=2,
        read_only=True
    )
    reservation_status = serializers.CharField(source='reservation.status', read_only=True)
    members = GroupMemberSerializer(many=True, read_only=True)
    member_count = serializers.SerializerMethodField()
    
    class Meta:
        model = Group
        fields = [
            'id', 'name', 'invite_code', 'reservation_id', 'venue_name',
            'total_cost', 'reservation_status', 'members', 'member_count', 'created_at'
        ]
        read_only_fields = fields
    
    def get_member_count(self, obj):
        return len(obj.members.all())


class ShareSerializer(serializers.Serializer):
    member_id = serializers.UUIDField()
    user_id = serializers.UUIDField()
    display_name = serializers.CharField()
    share_amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    is_paid = serializers.BooleanField()


class SharesResponseSerializer(serializers.Serializer):
    total_cost = serializers.DecimalField(max_digits=10, decimal_places=2)
    shares = ShareSerializer(many=True)
