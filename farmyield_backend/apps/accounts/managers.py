# apps/accounts/managers.py

from django.db import IntegrityError, models, transaction


def normalize_wallet(wallet_address):
    """
    Canonical form used when comparing two wallet strings.

    Addresses are stored as first received (stripped); identity is case
    and whitespace insensitive, matching EVM addresses where ``0xab..``
    and ``0xAB..`` are the same account.
    """
    if wallet_address is None:
        return ''
    return str(wallet_address).strip().lower()


class WalletUserManager(models.Manager):
    """
    Manager for WalletUser with lazy creation by wallet address
    """

    def get_or_create_for_wallet(self, wallet_address, **defaults):
        """
        Return the user for a wallet, creating it on first interaction.

        Lookups ignore letter case. Concurrent first interactions race on
        the case-insensitive unique index; the loser re-reads the winner's
        row.
        """
        wallet_address = (wallet_address or '').strip()
        if not wallet_address:
            raise ValueError('Users must have a wallet address')

        user = self.filter(wallet_address__iexact=wallet_address).first()
        if user is not None:
            return user, False

        try:
            with transaction.atomic():
                return self.create(wallet_address=wallet_address, **defaults), True
        except IntegrityError:
            return self.get(wallet_address__iexact=wallet_address), False

    def get_by_wallet(self, wallet_address):
        return self.get(wallet_address__iexact=(wallet_address or '').strip())

    def leaderboard(self, limit=10):
        """Top users by reputation, then verified reports"""
        return self.order_by('-reputation_score', '-verified_reports')[:limit]
