"""
Dispute admin configuration.
Read-only: disputes change only through the service layer.
"""
from django.contrib import admin
from apps.disputes.models import Dispute, DisputeStatusLog


class DisputeStatusLogInline(admin.TabularInline):
    model = DisputeStatusLog
    extra = 0
    readonly_fields = ['from_status', 'to_status', 'changed_by', 'reason', 'created_at']
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Dispute)
class DisputeAdmin(admin.ModelAdmin):
    list_display = ['id', 'split_id', 'raised_by', 'dispute_type', 'status', 'appeal_count', 'created_at']
    list_filter = ['status', 'dispute_type', 'created_at']
    search_fields = ['id', 'split_id', 'raised_by', 'description']
    readonly_fields = [
        'id', 'split_id', 'raised_by', 'dispute_type', 'description', 'status',
        'evidence', 'resolution', 'resolved_by', 'resolved_at',
        'appealed_from', 'appeal_reason', 'appeal_count',
        'created_at', 'updated_at'
    ]
    inlines = [DisputeStatusLogInline]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(DisputeStatusLog)
class DisputeStatusLogAdmin(admin.ModelAdmin):
    list_display = ['dispute', 'from_status', 'to_status', 'changed_by', 'created_at']
    list_filter = ['to_status', 'created_at']
    search_fields = ['dispute__id', 'changed_by']
    readonly_fields = ['dispute', 'from_status', 'to_status', 'changed_by', 'reason', 'created_at']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
