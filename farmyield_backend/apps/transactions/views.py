# apps/transactions/views.py

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import generics, status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView
import logging

from core.permissions import HasChainWebhookToken
from .serializers import ChainTransactionSerializer
from .services import TransactionLedger, WebhookIngestionService

logger = logging.getLogger(__name__)


class TransactionHistoryView(generics.ListAPIView):
    """
    GET /api/v1/transactions/<wallet_address>/
    Transactions sent from or to a wallet, newest first.
    Filters: tx_type, status, limit (max 200)
    """
    serializer_class = ChainTransactionSerializer
    permission_classes = [AllowAny]
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ['tx_type', 'status']

    def get_queryset(self):
        return TransactionLedger.get_user_history(
            self.kwargs['wallet_address'].strip()
        ).select_related('report')

    def list(self, request, *args, **kwargs):
        try:
            limit = min(max(int(request.query_params.get('limit', 50)), 1), 200)
        except ValueError:
            limit = 50

        transactions = self.filter_queryset(self.get_queryset())[:limit]
        return Response({
            'success': True,
            'transactions': self.get_serializer(transactions, many=True).data
        })


class ChainWebhookView(APIView):
    """
    POST /api/v1/webhooks/chain/
    Chain-indexer deliveries (one event or a list), upserted by signature
    """
    authentication_classes = []
    permission_classes = [HasChainWebhookToken]

    def post(self, request):
        try:
            processed = WebhookIngestionService.ingest(request.data)
        except ValueError as e:
            logger.error(f"Webhook ingestion failed: {e}")
            return Response({
                'success': False,
                'error': str(e)
            }, status=status.HTTP_400_BAD_REQUEST)

        return Response({
            'success': True,
            'processed': processed
        })
