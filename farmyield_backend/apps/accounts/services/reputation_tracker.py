# apps/accounts/services/reputation_tracker.py

import logging
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from core.exceptions import ExternalServiceFailure
from apps.accounts.models import (
    WalletUser,
    Badge,
    BADGE_FIRST_REPORT,
    BADGE_VERIFIED_10,
    BADGE_TOP_CONTRIBUTOR,
)

logger = logging.getLogger(__name__)


class ReputationTracker:
    """
    Keeps a user's aggregate counters and badges consistent with report
    lifecycle events.

    Badge rules, evaluated in this order and awarded at most once:
    1. first_report     - total_reports becomes 1 (at submission)
    2. verified_10      - verified_reports reaches BADGE_VERIFIED_THRESHOLD
    3. top_contributor  - total_reports >= BADGE_TOP_CONTRIBUTOR_THRESHOLD
    """

    @staticmethod
    def calculate_reputation(verified_reports: int, total_reports: int) -> int:
        """round(verified / total * 100), or 0 with no reports"""
        if total_reports <= 0:
            return 0
        score = Decimal(verified_reports) * 100 / Decimal(total_reports)
        return int(score.quantize(Decimal('1'), rounding=ROUND_HALF_UP))

    @staticmethod
    @transaction.atomic
    def on_report_submitted(owner_wallet: str) -> WalletUser:
        user = ReputationTracker._lock_user(owner_wallet)

        user.total_reports += 1
        user.reputation_score = ReputationTracker.calculate_reputation(
            user.verified_reports, user.total_reports
        )
        user.last_active = timezone.now()
        user.save(update_fields=['total_reports', 'reputation_score', 'last_active', 'updated_at'])

        if user.total_reports == 1:
            ReputationTracker.award_badge(user, BADGE_FIRST_REPORT)

        return user

    @staticmethod
    @transaction.atomic
    def on_report_verified(owner_wallet: str) -> WalletUser:
        user = ReputationTracker._lock_user(owner_wallet)

        user.verified_reports += 1
        user.reputation_score = ReputationTracker.calculate_reputation(
            user.verified_reports, user.total_reports
        )
        user.save(update_fields=['verified_reports', 'reputation_score', 'updated_at'])

        logger.info(
            f"Reputation for {user.wallet_address}: {user.verified_reports}/"
            f"{user.total_reports} verified, score {user.reputation_score}"
        )

        if user.verified_reports == getattr(settings, 'BADGE_VERIFIED_THRESHOLD', 10):
            ReputationTracker.award_badge(user, BADGE_VERIFIED_10)

        if user.total_reports >= getattr(settings, 'BADGE_TOP_CONTRIBUTOR_THRESHOLD', 25):
            ReputationTracker.award_badge(user, BADGE_TOP_CONTRIBUTOR)

        return user

    @staticmethod
    def record_earnings(owner_wallet: str, amount) -> None:
        """Atomic F()-increment of total_earned"""
        user, _ = WalletUser.objects.get_or_create_for_wallet(owner_wallet)
        WalletUser.objects.filter(pk=user.pk).update(
            total_earned=F('total_earned') + Decimal(str(amount))
        )

    # ------------------------------------------------------------------
    # Badges
    # ------------------------------------------------------------------
    @staticmethod
    def award_badge(user: WalletUser, badge_type: str):
        """
        Record the badge locally and queue its NFT mint.

        Returns the new Badge, or None when the user already holds that
        badge type (the unique constraint decides, not a pre-check).
        """
        try:
            with transaction.atomic():
                badge = Badge.objects.create(user=user, badge_type=badge_type)
        except IntegrityError:
            return None

        from apps.accounts.tasks import mint_badge
        transaction.on_commit(lambda: mint_badge.delay(badge.pk))

        logger.info(f"Badge awarded: {badge_type} to {user.wallet_address}")
        return badge

    @staticmethod
    def mint_badge(badge_id: int, minter) -> dict:
        """
        Attempt the external badge mint.  The badge stays recorded without
        a mint reference when the collaborator fails.
        """
        from apps.transactions.models import ChainTransaction
        from apps.transactions.services import TransactionLedger

        badge = Badge.objects.select_related('user').get(pk=badge_id)
        if badge.mint_reference:
            return {'status': 'skipped', 'mint_reference': badge.mint_reference}

        wallet = badge.user.wallet_address
        try:
            signature = minter.mint_badge(wallet, badge.badge_type)
        except ExternalServiceFailure as e:
            logger.warning(f"Badge mint failed for {wallet} ({badge.badge_type}): {e}")
            return {'status': 'failed', 'error': str(e)}

        Badge.objects.filter(pk=badge.pk, mint_reference__isnull=True).update(
            mint_reference=signature
        )
        TransactionLedger.record_or_update_transaction(signature, {
            'tx_type': ChainTransaction.TYPE_BADGE,
            'to_wallet': wallet,
            'metadata': {'description': f"Badge: {badge.badge_type}"},
            'status': ChainTransaction.STATUS_CONFIRMED,
            'block_time': timezone.now(),
        })
        return {'status': 'success', 'mint_reference': signature}

    @staticmethod
    def _lock_user(wallet_address: str) -> WalletUser:
        user, _ = WalletUser.objects.get_or_create_for_wallet(wallet_address)
        return WalletUser.objects.select_for_update().get(pk=user.pk)
