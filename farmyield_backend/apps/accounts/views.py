# apps/accounts/views.py

from rest_framework import status, generics
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView
from django.shortcuts import get_object_or_404
import logging

from .models import WalletUser
from .permissions import IsWalletUser
from .serializers import WalletUserSerializer, WalletUserUpdateSerializer
from .services import WalletAuthService

logger = logging.getLogger(__name__)


class MyProfileView(APIView):
    """
    GET   /api/v1/accounts/me/
    PATCH /api/v1/accounts/me/
    Profile of the requesting wallet
    """
    permission_classes = [IsWalletUser]

    def get(self, request):
        request.user.update_activity()
        return Response({
            'success': True,
            'user': WalletUserSerializer(request.user).data
        })

    def patch(self, request):
        serializer = WalletUserUpdateSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        return Response({
            'success': True,
            'user': WalletUserSerializer(user).data
        })


class WalletProfileView(generics.RetrieveAPIView):
    """
    GET /api/v1/accounts/<wallet_address>/
    Public profile with badges
    """
    serializer_class = WalletUserSerializer
    permission_classes = [AllowAny]

    def get_object(self):
        return get_object_or_404(
            WalletUser.objects.prefetch_related('badges'),
            wallet_address__iexact=self.kwargs['wallet_address'].strip()
        )


class IssueTokenView(APIView):
    """
    POST /api/v1/accounts/token/
    Exchange a resolved wallet identity for a bearer token
    """
    permission_classes = [IsWalletUser]

    def post(self, request):
        tokens = WalletAuthService.issue_token(request.user.wallet_address)
        logger.info(f"Issued token for {request.user.wallet_address}")
        return Response({
            'success': True,
            'token': tokens['access'],
            'expires': tokens['access_expires'],
            'user': WalletUserSerializer(request.user).data
        }, status=status.HTTP_200_OK)


@api_view(['GET'])
@permission_classes([AllowAny])
def leaderboard(request):
    """Top wallets by reputation"""
    try:
        limit = min(max(int(request.query_params.get('limit', 10)), 1), 100)
    except ValueError:
        limit = 10

    users = WalletUser.objects.leaderboard(limit=limit).prefetch_related('badges')
    return Response({
        'success': True,
        'users': WalletUserSerializer(users, many=True).data
    })
