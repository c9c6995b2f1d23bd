from django.contrib import admin

from .models import Group, GroupMember


class GroupMemberInline(admin.TabularInline):
    model = GroupMember
    extra = 0
    fields = ['user', 'share_amount', 'is_paid', 'join_order', 'joined_at']
    readonly_fields = ['user', 'share_amount', 'is_paid', 'join_order', 'joined_at']
    can_delete = False


@admin.register(Group)
class GroupAdmin(admin.ModelAdmin):
    list_display = ['name', 'reservation', 'invite_code', 'created_at']
    search_fields = ['name', 'invite_code', 'reservation__venue_name']
    readonly_fields = ['id', 'reservation', 'invite_code', 'created_at']
    inlines = [GroupMemberInline]
    ordering = ['-created_at']


@admin.register(GroupMember)
class GroupMemberAdmin(admin.ModelAdmin):
    list_display = ['user', 'group', 'share_amount', 'is_paid', 'join_order', 'joined_at']
    list_filter = ['is_paid', 'joined_at']
    search_fields = ['user__email', 'group__name']
    # Shares only move through join_group / payment reconciliation
    readonly_fields = ['id', 'group', 'user', 'share_amount', 'is_paid', 'join_order', 'joined_at']
