# apps/reports/admin.py

from django.contrib import admin
from .models import Report, Vote


class VoteInline(admin.TabularInline):
    model = Vote
    extra = 0
    readonly_fields = ['voter_wallet', 'vote', 'comment', 'tx_signature', 'created_at']
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Report)
class ReportAdmin(admin.ModelAdmin):
    """Admin interface for crop reports"""

    list_display = [
        'report_id',
        'owner_wallet',
        'crop_type',
        'province',
        'status',
        'approve_votes',
        'reject_votes',
        'created_at'
    ]

    list_filter = ['status', 'crop_type', 'province', 'created_at']

    search_fields = ['report_id', 'owner_wallet', 'district', 'province', 'village']

    # Lifecycle columns change only through the vote and settlement paths
    readonly_fields = [
        'report_id',
        'owner_wallet',
        'status',
        'approve_votes',
        'reject_votes',
        'voters',
        'verified_by',
        'verified_at',
        'rejected_at',
        'rejection_reason',
        'mint_tx_signature',
        'tree_address',
        'reward_tx_signature',
        'reward_amount',
        'reputation_applied_at',
        'reward_claimed_at',
        'mint_claimed_at',
        'version',
        'created_at',
        'updated_at'
    ]

    fieldsets = (
        ('Report', {
            'fields': ('report_id', 'owner_wallet', 'crop_type', 'quantity_value', 'quantity_unit')
        }),
        ('Location', {
            'fields': ('latitude', 'longitude', 'district', 'province', 'village')
        }),
        ('Details', {
            'fields': ('images', 'soil_type', 'irrigation', 'harvest_date', 'market_price'),
            'classes': ('collapse',)
        }),
        ('Verification', {
            'fields': (
                'status', 'approve_votes', 'reject_votes', 'voters',
                'verified_by', 'verified_at', 'rejected_at', 'rejection_reason'
            )
        }),
        ('Settlement', {
            'fields': (
                'reward_tx_signature', 'reward_amount', 'mint_tx_signature', 'tree_address',
                'reputation_applied_at', 'reward_claimed_at', 'mint_claimed_at'
            )
        }),
        ('Timestamps', {
            'fields': ('version', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    inlines = [VoteInline]

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Vote)
class VoteAdmin(admin.ModelAdmin):
    list_display = ['report', 'voter_wallet', 'vote', 'created_at']
    list_filter = ['vote']
    search_fields = ['voter_wallet', 'report__report_id']
    readonly_fields = ['report', 'voter_wallet', 'vote', 'comment', 'tx_signature', 'created_at']

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
