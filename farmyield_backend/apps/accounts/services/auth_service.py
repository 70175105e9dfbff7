# apps/accounts/services/auth_service.py

from datetime import timedelta
from django.conf import settings
from django.utils import timezone
from rest_framework_simplejwt.backends import TokenBackend
from rest_framework_simplejwt.exceptions import TokenBackendError


class WalletAuthService:
    """
    Service class for wallet token operations.

    Tokens are HS256 JWTs carrying a ``wallet_address`` claim; how the
    wallet proved ownership (signature challenge) happens upstream.
    """

    ALGORITHM = 'HS256'

    @staticmethod
    def _backend():
        signing_key = getattr(settings, 'WALLET_TOKEN_SIGNING_KEY', None) or settings.SECRET_KEY
        return TokenBackend(WalletAuthService.ALGORITHM, signing_key=signing_key)

    @staticmethod
    def issue_token(wallet_address):
        """
        Issue a wallet token

        Args:
            wallet_address: Wallet the token speaks for

        Returns:
            dict: access token and its expiry
        """
        lifetime = getattr(settings, 'WALLET_TOKEN_LIFETIME', timedelta(days=7))
        expires = timezone.now() + lifetime

        token = WalletAuthService._backend().encode({
            'wallet_address': wallet_address,
            'exp': int(expires.timestamp()),
            'iat': int(timezone.now().timestamp()),
        })

        return {
            'access': token,
            'access_expires': expires.isoformat(),
        }

    @staticmethod
    def resolve_wallet(token):
        """
        Decode a wallet token

        Returns:
            str: wallet address, or None if the token is invalid or expired
        """
        try:
            payload = WalletAuthService._backend().decode(token, verify=True)
        except TokenBackendError:
            return None
        return payload.get('wallet_address') or None
