# apps/accounts/permissions.py

from rest_framework import permissions


class IsWalletUser(permissions.BasePermission):
    """
    Permission for requests resolved to a wallet
    """
    message = 'Authorization required'

    def has_permission(self, request, view):
        return bool(
            request.user and
            request.user.is_authenticated and
            getattr(request.user, 'wallet_address', None)
        )
