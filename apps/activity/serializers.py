from rest_framework import serializers

from apps.accounts.serializers import UserMinimalSerializer

from .models import Activity


class ActivitySerializer(serializers.ModelSerializer):
    """Feed entry as shown on the dashboard and reservation pages."""
    
    user = UserMinimalSerializer(read_only=True)
    reservation_id = serializers.UUIDField(read_only=True, allow_null=True)
    payment_id = serializers.UUIDField(read_only=True, allow_null=True)
    
    class Meta:
        model = Activity
        fields = [
            'id', 'user', 'activity_type', 'message',
            'reservation_id', 'payment_id', 'created_at'
        ]
        read_only_fields = fields
