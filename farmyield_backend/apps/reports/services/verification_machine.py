# apps/reports/services/verification_machine.py
# ---------------------------------------------------------------------------
# Report lifecycle authority.
#
#   pending ──approve >= threshold──▶ verified  (terminal, settlement queued)
#      │
#      └────reject  >= threshold──▶ rejected  (terminal)
#
# One vote is one unit of work: ledger insert and tally UPDATE commit
# together or not at all.  The tally UPDATE is conditional on the version
# read at the start of the unit, so a concurrent vote on the same report
# forces the loser to re-read and re-apply against the winner's tally.
# ---------------------------------------------------------------------------

import logging
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from core.exceptions import (
    AlreadyFinalized,
    AlreadyVoted,
    DuplicateVote,
    InvalidInput,
    SelfVote,
    StorageConflict,
)
from apps.accounts.managers import normalize_wallet
from apps.reports.models import Report, Vote
from .report_store import ReportStore
from .vote_ledger import VoteLedger, DECISIONS

logger = logging.getLogger(__name__)


@dataclass
class VoteOutcome:
    report: Report
    vote: Vote
    # New status when this vote finalized the report, else None
    transitioned: Optional[str] = None
    attempts: int = 1


class VerificationStateMachine:
    """
    Applies votes to reports and decides transitions.

    Thresholds are evaluated approve-first: a vote that satisfies both
    verifies the report.
    """

    def __init__(self, approve_threshold=None, reject_threshold=None,
                 rejection_reason=None, max_retries=None):
        self.approve_threshold = approve_threshold or getattr(settings, 'VERIFICATION_APPROVE_THRESHOLD', 3)
        self.reject_threshold = reject_threshold or getattr(settings, 'VERIFICATION_REJECT_THRESHOLD', 3)
        self.rejection_reason = rejection_reason or getattr(
            settings, 'VERIFICATION_REJECTION_REASON', 'Community rejected'
        )
        self.max_retries = (
            max_retries if max_retries is not None
            else getattr(settings, 'VOTE_CONFLICT_MAX_RETRIES', 5)
        )

    def apply_vote(self, report_ref, voter_wallet, decision,
                   comment=None, tx_signature=None) -> VoteOutcome:
        """
        Record a vote and apply any threshold transition.

        Raises:
            NotFound, InvalidInput, AlreadyFinalized, SelfVote,
            AlreadyVoted, or StorageConflict once retries are exhausted
        """
        voter_wallet = (voter_wallet or '').strip()
        if not voter_wallet:
            raise InvalidInput('Voter wallet is required', fields={'voter_wallet': 'This field is required.'})
        if decision not in DECISIONS:
            raise InvalidInput(
                'Vote must be approve or reject',
                fields={'vote': f"Expected one of {', '.join(DECISIONS)}."}
            )

        attempt = 1
        while True:
            try:
                outcome = self._apply_once(report_ref, voter_wallet, decision, comment, tx_signature)
                outcome.attempts = attempt
                return outcome
            except StorageConflict:
                if attempt > self.max_retries:
                    logger.warning(
                        f"Vote by {voter_wallet} on {report_ref} abandoned after "
                        f"{attempt} conflicting attempts"
                    )
                    raise
                logger.info(f"Version conflict on {report_ref}, retrying vote by {voter_wallet}")
                attempt += 1

    def _apply_once(self, report_ref, voter_wallet, decision, comment, tx_signature):
        with transaction.atomic():
            report = ReportStore.get(report_ref)

            if report.is_finalized:
                raise AlreadyFinalized(f"Report {report.report_id} is already {report.status}", report=report)

            if normalize_wallet(voter_wallet) == normalize_wallet(report.owner_wallet):
                raise SelfVote('You cannot vote on your own report', report=report)

            try:
                vote = VoteLedger.cast_vote(report, voter_wallet, decision, comment, tx_signature)
            except DuplicateVote as e:
                raise AlreadyVoted('Already voted on this report', report=report) from e

            changes = self._next_state(report, vote)
            updated = Report.objects.filter(
                pk=report.pk,
                version=report.version,
                status=Report.STATUS_PENDING,
            ).update(**changes)

            if not updated:
                # Rolls back the ledger insert with the rest of the unit
                raise StorageConflict(f"Report {report.report_id} changed concurrently", report=report)

            for name, value in changes.items():
                setattr(report, name, value)

            transitioned = None
            if report.status != Report.STATUS_PENDING:
                transitioned = report.status
                self._on_transition(report)

            if tx_signature:
                transaction.on_commit(
                    lambda: self._record_vote_transaction(report, vote),
                    robust=True
                )

        return VoteOutcome(report=report, vote=vote, transitioned=transitioned)

    def _next_state(self, report, vote) -> dict:
        approve = report.approve_votes
        reject = report.reject_votes
        if vote.vote == Vote.DECISION_APPROVE:
            approve += 1
        else:
            reject += 1

        now = timezone.now()
        changes = {
            'approve_votes': approve,
            'reject_votes': reject,
            'voters': list(report.voters or []) + [{
                'wallet': vote.voter_wallet,
                'vote': vote.vote,
                'voted_at': vote.created_at.isoformat(),
            }],
            'version': report.version + 1,
            'updated_at': now,
        }

        if approve >= self.approve_threshold:
            changes.update({
                'status': Report.STATUS_VERIFIED,
                'verified_by': vote.voter_wallet,
                'verified_at': now,
            })
        elif reject >= self.reject_threshold:
            changes.update({
                'status': Report.STATUS_REJECTED,
                'rejected_at': now,
                'rejection_reason': self.rejection_reason,
            })

        return changes

    def _on_transition(self, report):
        if report.status == Report.STATUS_VERIFIED:
            from apps.reports.tasks import settle_report

            report_pk = report.pk
            transaction.on_commit(lambda: settle_report.delay(report_pk))
            logger.info(f"Report verified: {report.report_id} (triggered by {report.verified_by})")
        else:
            logger.info(f"Report rejected: {report.report_id} ({report.rejection_reason})")

    @staticmethod
    def _record_vote_transaction(report, vote):
        from apps.transactions.models import ChainTransaction
        from apps.transactions.services import TransactionLedger

        TransactionLedger.record_vote_transaction(vote.tx_signature, {
            'tx_type': ChainTransaction.TYPE_VOTE,
            'from_wallet': vote.voter_wallet,
            'to_wallet': report.owner_wallet,
            'report_id': report.pk,
            'metadata': {
                'crop_type': report.crop_type,
                'description': f"Vote {vote.vote} for report {report.report_id}",
            },
            'status': ChainTransaction.STATUS_CONFIRMED,
            'block_time': vote.created_at,
        })
