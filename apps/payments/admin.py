from django.contrib import admin

from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['id', 'group_member', 'amount', 'fee_amount', 'currency', 'status', 'paid_at', 'created_at']
    list_filter = ['status', 'currency', 'created_at']
    search_fields = ['external_reference', 'group_member__user__email']
    readonly_fields = [
        'id', 'group_member', 'external_reference', 'amount', 'fee_amount',
        'currency', 'status', 'paid_at', 'created_at', 'updated_at'
    ]
    ordering = ['-created_at']
    
    # Status only changes through reconciliation
    def has_add_permission(self, request):
        return False
    
    def has_change_permission(self, request, obj=None):
        return False
