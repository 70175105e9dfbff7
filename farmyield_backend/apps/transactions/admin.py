# apps/transactions/admin.py

from django.contrib import admin
from .models import ChainTransaction


@admin.register(ChainTransaction)
class ChainTransactionAdmin(admin.ModelAdmin):
    """Admin interface for chain transactions"""

    list_display = [
        'tx_signature',
        'tx_type',
        'status',
        'from_wallet',
        'to_wallet',
        'amount',
        'block_time'
    ]

    list_filter = ['tx_type', 'status', 'created_at']

    search_fields = ['tx_signature', 'from_wallet', 'to_wallet', 'report__report_id']

    readonly_fields = ['tx_signature', 'created_at', 'updated_at']

    raw_id_fields = ['report']
