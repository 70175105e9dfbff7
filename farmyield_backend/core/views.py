from django.conf import settings
from django.db import connection
from django.utils import timezone
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def health_check(request):
    """Service health plus which chain features are configured"""
    try:
        connection.ensure_connection()
        database = 'ok'
    except Exception as e:
        database = f"error: {e}"

    return Response({
        'status': 'ok' if database == 'ok' else 'degraded',
        'timestamp': timezone.now().isoformat(),
        'database': database,
        'chain': {
            'backend': getattr(settings, 'CHAIN_BACKEND', ''),
            'enabled': getattr(settings, 'CELO_ENABLED', False),
            'treasury_configured': bool(getattr(settings, 'CELO_PRIVATE_KEY', None)),
            'nft_contract_configured': bool(getattr(settings, 'CELO_NFT_CONTRACT', None)),
        },
    })
