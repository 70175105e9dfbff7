# apps/accounts/authentication.py

from rest_framework import authentication, exceptions

from .models import WalletUser
from .services import WalletAuthService


class WalletAuthentication(authentication.BaseAuthentication):
    """
    Resolve a request to a wallet.

    ``Authorization: Bearer <token>`` wins when present; otherwise the
    ``X-Wallet-Address`` header is trusted as-is.  The resolved
    WalletUser is created on first interaction.
    """

    keyword = 'Bearer'

    def authenticate(self, request):
        header = authentication.get_authorization_header(request).decode('latin-1')

        if header.startswith(f'{self.keyword} '):
            token = header[len(self.keyword) + 1:].strip()
            wallet_address = WalletAuthService.resolve_wallet(token)
            if not wallet_address:
                raise exceptions.AuthenticationFailed('Invalid or expired token')
            return self._user_for(wallet_address), token

        wallet_address = (request.META.get('HTTP_X_WALLET_ADDRESS') or '').strip()
        if not wallet_address:
            return None

        return self._user_for(wallet_address), None

    def authenticate_header(self, request):
        return self.keyword

    def _user_for(self, wallet_address):
        user, _ = WalletUser.objects.get_or_create_for_wallet(wallet_address)
        return user
