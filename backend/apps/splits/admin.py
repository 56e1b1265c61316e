"""
Split admin configuration.
"""
from django.contrib import admin
from apps.splits.models import Split, SplitParticipant


class SplitParticipantInline(admin.TabularInline):
    model = SplitParticipant
    extra = 0


@admin.register(Split)
class SplitAdmin(admin.ModelAdmin):
    list_display = ['id', 'title', 'total_amount', 'currency', 'status', 'is_frozen', 'created_at']
    list_filter = ['status', 'is_frozen', 'created_at']
    search_fields = ['id', 'title', 'creator', 'participants__wallet_address']
    readonly_fields = ['id', 'is_frozen', 'frozen_by_dispute_id', 'frozen_at', 'created_at', 'updated_at']
    inlines = [SplitParticipantInline]
