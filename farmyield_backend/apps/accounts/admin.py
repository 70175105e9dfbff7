# apps/accounts/admin.py

from django.contrib import admin
from .models import WalletUser, Badge


class BadgeInline(admin.TabularInline):
    model = Badge
    extra = 0
    readonly_fields = ['badge_type', 'earned_at', 'mint_reference']
    can_delete = False


@admin.register(WalletUser)
class WalletUserAdmin(admin.ModelAdmin):
    """Admin interface for wallet users"""

    list_display = [
        'wallet_address',
        'username',
        'total_reports',
        'verified_reports',
        'reputation_score',
        'total_earned',
        'joined_at'
    ]

    list_filter = ['province', 'joined_at']

    search_fields = ['wallet_address', 'username', 'district', 'province']

    readonly_fields = [
        'total_reports',
        'verified_reports',
        'reputation_score',
        'total_earned',
        'joined_at',
        'last_active',
        'updated_at'
    ]

    fieldsets = (
        ('Wallet', {
            'fields': ('wallet_address', 'username')
        }),
        ('Location', {
            'fields': ('district', 'province')
        }),
        ('Statistics', {
            'fields': ('total_reports', 'verified_reports', 'reputation_score', 'total_earned')
        }),
        ('Timestamps', {
            'fields': ('joined_at', 'last_active', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    inlines = [BadgeInline]


@admin.register(Badge)
class BadgeAdmin(admin.ModelAdmin):
    list_display = ['user', 'badge_type', 'earned_at', 'mint_reference']
    list_filter = ['badge_type']
    search_fields = ['user__wallet_address']
