# apps/transactions/serializers.py

from rest_framework import serializers
from .models import ChainTransaction


class ChainTransactionSerializer(serializers.ModelSerializer):
    """Serializer for ChainTransaction model"""

    tx_type_display = serializers.CharField(source='get_tx_type_display', read_only=True)
    report_id = serializers.CharField(source='report.report_id', read_only=True, default=None)

    class Meta:
        model = ChainTransaction
        fields = [
            'tx_signature',
            'tx_type',
            'tx_type_display',
            'from_wallet',
            'to_wallet',
            'amount',
            'report_id',
            'metadata',
            'status',
            'block_time',
            'slot',
            'created_at',
        ]
        read_only_fields = fields
