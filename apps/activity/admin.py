from django.contrib import admin

from .models import Activity


@admin.register(Activity)
class ActivityAdmin(admin.ModelAdmin):
    list_display = ['activity_type', 'user', 'reservation', 'message', 'created_at']
    list_filter = ['activity_type', 'created_at']
    search_fields = ['message', 'user__email']
    readonly_fields = ['id', 'user', 'reservation', 'payment', 'activity_type', 'message', 'created_at']
    ordering = ['-created_at']
    
    def has_add_permission(self, request):
        return False
    
    def has_change_permission(self, request, obj=None):
        return False
    
    def has_delete_permission(self, request, obj=None):
        return False
