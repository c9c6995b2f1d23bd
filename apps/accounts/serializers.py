from rest_framework import serializers
from .models import User


class UserSerializer(serializers.ModelSerializer):
    """Profile of the authenticated user."""
    
    display_name = serializers.SerializerMethodField()
    
    class Meta:
        model = User
        fields = [
            'id',
            'email',
            'first_name',
            'last_name',
            'profile_image_url',
            'display_name',
            'created_at',
        ]
        read_only_fields = ['id', 'email', 'created_at']
    
    def get_display_name(self, obj):
        return obj.get_display_name()


class UserMinimalSerializer(serializers.ModelSerializer):
    """Minimal user info for nested serialization."""
    
    display_name = serializers.SerializerMethodField()
    
    class Meta:
        model = User
        fields = ['id', 'first_name', 'last_name', 'profile_image_url', 'display_name']
        read_only_fields = fields
    
    def get_display_name(self, obj):
        return obj.get_display_name()
