# apps/reports/services/reconciliation.py

import logging

from django.db.models import Count, Q
from django.utils import timezone

from apps.reports.models import Report, Vote
from .vote_ledger import VoteLedger

logger = logging.getLogger(__name__)


class ReconciliationService:
    """
    Offline consistency checks between the vote ledger, report tallies
    and settlement receipts.
    """

    @staticmethod
    def find_tally_drift(report_ids=None) -> list:
        """
        Reports whose stored tallies disagree with the ledger.

        Returns:
            [{'report_id', 'status', 'stored': {...}, 'ledger': {...}}]
        """
        queryset = Report.objects.annotate(
            ledger_approve=Count('votes', filter=Q(votes__vote=Vote.DECISION_APPROVE)),
            ledger_reject=Count('votes', filter=Q(votes__vote=Vote.DECISION_REJECT)),
        )
        if report_ids:
            queryset = queryset.filter(report_id__in=report_ids)

        drift = []
        for report in queryset.order_by('id').iterator():
            if (report.ledger_approve, report.ledger_reject) == (report.approve_votes, report.reject_votes):
                continue
            drift.append({
                'report_id': report.report_id,
                'status': report.status,
                'stored': report.vote_counts,
                'ledger': {'approve': report.ledger_approve, 'reject': report.ledger_reject},
            })
        return drift

    @staticmethod
    def reconcile_tallies(fix=False, report_ids=None) -> list:
        """
        Report tally drift; with ``fix`` rewrite tallies and voters from
        the ledger.  Status is left alone, the ledger is the authority for
        counts only.
        """
        drift = ReconciliationService.find_tally_drift(report_ids=report_ids)

        for entry in drift:
            logger.warning(
                f"Tally drift on {entry['report_id']}: stored {entry['stored']} "
                f"ledger {entry['ledger']}"
            )
            if not fix:
                entry['fixed'] = False
                continue

            report = Report.objects.get(report_id=entry['report_id'])
            tally = VoteLedger.tally(report)
            voters = [
                {
                    'wallet': vote.voter_wallet,
                    'vote': vote.vote,
                    'voted_at': vote.created_at.isoformat(),
                }
                for vote in VoteLedger.votes_for(report)
            ]
            entry['fixed'] = bool(Report.objects.filter(pk=report.pk, version=report.version).update(
                approve_votes=tally['approve'],
                reject_votes=tally['reject'],
                voters=voters,
                version=report.version + 1,
                updated_at=timezone.now(),
            ))

        return drift

    @staticmethod
    def unsettled_reports():
        """Verified reports with a settlement step never completed nor in flight"""
        return Report.objects.filter(status=Report.STATUS_VERIFIED).filter(
            Q(reputation_applied_at__isnull=True) |
            Q(reward_tx_signature__isnull=True, reward_claimed_at__isnull=True) |
            Q(mint_tx_signature__isnull=True, mint_claimed_at__isnull=True)
        ).order_by('verified_at')

    @staticmethod
    def resettle(dispatcher, limit=100) -> list:
        """Re-run settlement for unsettled reports; returns SettlementResults"""
        results = []
        for report in ReconciliationService.unsettled_reports()[:limit]:
            results.append(dispatcher.settle(report.pk))
        return results
