from django.contrib import admin

from .models import Reservation


@admin.register(Reservation)
class ReservationAdmin(admin.ModelAdmin):
    list_display = ['venue_name', 'owner', 'event_date', 'total_cost', 'status', 'created_at']
    list_filter = ['status', 'event_date', 'created_at']
    search_fields = ['venue_name', 'owner__email', 'description']
    readonly_fields = ['id', 'owner', 'total_cost', 'created_at', 'updated_at']
    date_hierarchy = 'event_date'
    ordering = ['-created_at']
