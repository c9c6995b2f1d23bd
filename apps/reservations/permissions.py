from rest_framework import permissions

from .services import user_can_view


class CanViewReservation(permissions.BasePermission):
    """
    Permission: User must own the reservation or be in its group.
    """
    
    def has_object_permission(self, request, view, obj):
        # obj is a Reservation instance
        return user_can_view(obj, request.user)
