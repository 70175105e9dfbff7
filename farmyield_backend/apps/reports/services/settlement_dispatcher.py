# apps/reports/services/settlement_dispatcher.py

import logging
from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from core.exceptions import ExternalServiceFailure, NotFound
from apps.accounts.services import ReputationTracker
from apps.reports.models import Report
from apps.transactions.models import ChainTransaction
from apps.transactions.services import TransactionLedger
from .metadata_builder import build_mint_request
from .report_store import ReportStore

logger = logging.getLogger(__name__)

STEP_APPLIED = 'applied'
STEP_SENT = 'sent'
STEP_FAILED = 'failed'
STEP_SKIPPED = 'skipped'


@dataclass
class SettlementResult:
    report_id: str
    settled: bool
    reputation: str = STEP_SKIPPED
    reward: str = STEP_SKIPPED
    mint: str = STEP_SKIPPED
    reward_tx_signature: Optional[str] = None
    mint_tx_signature: Optional[str] = None

    def as_dict(self):
        return asdict(self)


class SettlementDispatcher:
    """
    Turns a verified report into reputation, reward and NFT mint.

    Each step is claimed with a conditional UPDATE on its own column, so
    repeated or concurrent ``settle`` calls perform it at most once.
    Collaborator failures are logged and leave the receipt empty; they
    never touch the report's status.
    """

    def __init__(self, payment, minter, reward_amount=None, owns_collaborators=False):
        self.payment = payment
        self.minter = minter
        self.reward_amount = Decimal(str(
            reward_amount if reward_amount is not None
            else getattr(settings, 'VERIFICATION_REWARD_AMOUNT', Decimal('0.01'))
        ))
        self._owns_collaborators = owns_collaborators

    @classmethod
    def from_settings(cls):
        """Build against the configured CHAIN_BACKEND; close() releases it"""
        from integrations.registry import get_chain_backend

        chain = get_chain_backend()
        return cls(payment=chain, minter=chain, owns_collaborators=True)

    def close(self):
        if not self._owns_collaborators:
            return
        for collaborator in {id(c): c for c in (self.payment, self.minter)}.values():
            close = getattr(collaborator, 'close', None)
            if close:
                close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------
    def settle(self, report_pk) -> SettlementResult:
        report = Report.objects.filter(pk=report_pk).first()
        if report is None:
            raise NotFound(f"Report {report_pk} not found")

        if report.status != Report.STATUS_VERIFIED:
            logger.info(f"Settlement skipped for {report.report_id}: status is {report.status}")
            return SettlementResult(report_id=report.report_id, settled=False)

        result = SettlementResult(report_id=report.report_id, settled=True)
        result.reputation = self._apply_reputation(report)
        result.reward, result.reward_tx_signature = self._send_reward(report)
        result.mint, result.mint_tx_signature = self._request_mint(report)

        logger.info(
            f"Settlement for {report.report_id}: reputation={result.reputation} "
            f"reward={result.reward} mint={result.mint}"
        )
        return result

    def _apply_reputation(self, report):
        with transaction.atomic():
            claimed = Report.objects.filter(
                pk=report.pk, reputation_applied_at__isnull=True
            ).update(reputation_applied_at=timezone.now())
            if not claimed:
                return STEP_SKIPPED

            ReputationTracker.on_report_verified(report.owner_wallet)
        return STEP_APPLIED

    def _send_reward(self, report):
        if report.reward_tx_signature:
            return STEP_SKIPPED, report.reward_tx_signature

        claimed = Report.objects.filter(
            pk=report.pk,
            reward_tx_signature__isnull=True,
            reward_claimed_at__isnull=True,
        ).update(reward_claimed_at=timezone.now())
        if not claimed:
            return STEP_SKIPPED, None

        try:
            signature = self.payment.transfer(report.owner_wallet, self.reward_amount)
        except ExternalServiceFailure as e:
            logger.error(f"Reward for {report.report_id} to {report.owner_wallet} failed: {e}")
            Report.objects.filter(
                pk=report.pk, reward_tx_signature__isnull=True
            ).update(reward_claimed_at=None)
            return STEP_FAILED, None

        with transaction.atomic():
            ReportStore.update_receipt(
                report.pk,
                reward_tx_signature=signature,
                reward_amount=self.reward_amount,
            )
            ReputationTracker.record_earnings(report.owner_wallet, self.reward_amount)
            TransactionLedger.record_or_update_transaction(signature, {
                'tx_type': ChainTransaction.TYPE_REWARD,
                'from_wallet': getattr(self.payment, 'treasury_address', None),
                'to_wallet': report.owner_wallet,
                'amount': self.reward_amount,
                'report_id': report.pk,
                'metadata': {
                    'crop_type': report.crop_type,
                    'description': f"Verification reward for report {report.report_id}",
                },
                'status': ChainTransaction.STATUS_CONFIRMED,
                'block_time': timezone.now(),
            })

        logger.info(f"Reward sent for {report.report_id}: {self.reward_amount} ({signature})")
        return STEP_SENT, signature

    def _request_mint(self, report):
        if report.mint_tx_signature:
            return STEP_SKIPPED, report.mint_tx_signature

        claimed = Report.objects.filter(
            pk=report.pk,
            mint_tx_signature__isnull=True,
            mint_claimed_at__isnull=True,
        ).update(mint_claimed_at=timezone.now())
        if not claimed:
            return STEP_SKIPPED, None

        try:
            signature, tree_address = self.minter.mint(report.owner_wallet, build_mint_request(report))
        except ExternalServiceFailure as e:
            logger.error(f"NFT mint for {report.report_id} failed: {e}")
            Report.objects.filter(
                pk=report.pk, mint_tx_signature__isnull=True
            ).update(mint_claimed_at=None)
            return STEP_FAILED, None

        with transaction.atomic():
            ReportStore.update_receipt(
                report.pk,
                mint_tx_signature=signature,
                tree_address=tree_address,
            )
            TransactionLedger.record_or_update_transaction(signature, {
                'tx_type': ChainTransaction.TYPE_MINT,
                'to_wallet': report.owner_wallet,
                'report_id': report.pk,
                'metadata': {
                    'crop_type': report.crop_type,
                    'description': f"Report NFT minted for {report.report_id}",
                    'metadata_uri': report.metadata_uri,
                },
                'status': ChainTransaction.STATUS_CONFIRMED,
                'block_time': timezone.now(),
            })

        logger.info(f"Report NFT minted for {report.report_id}: {signature}")
        return STEP_SENT, signature
