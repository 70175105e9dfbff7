# apps/reports/services/vote_ledger.py

from django.db import IntegrityError, transaction
from django.db.models import Count, Q

from core.exceptions import DuplicateVote, InvalidInput
from apps.reports.models import Report, Vote

DECISIONS = (Vote.DECISION_APPROVE, Vote.DECISION_REJECT)


class VoteLedger:
    """
    Append-only record of one decision per (report, voter).

    Uniqueness is the database constraint's job; there is no pre-check,
    so two processes racing for the same voter get exactly one row.
    """

    @staticmethod
    def cast_vote(report: Report, voter_wallet: str, decision: str,
                  comment=None, tx_signature=None) -> Vote:
        """
        Insert a ledger entry.

        Runs in its own savepoint so a duplicate leaves the caller's
        transaction usable.

        Raises:
            InvalidInput: decision is not approve/reject
            DuplicateVote: (report, voter) already recorded
        """
        if decision not in DECISIONS:
            raise InvalidInput(
                'Vote must be approve or reject',
                fields={'vote': f"Expected one of {', '.join(DECISIONS)}."},
                report=report
            )

        try:
            with transaction.atomic():
                return Vote.objects.create(
                    report=report,
                    voter_wallet=voter_wallet,
                    vote=decision,
                    comment=comment or '',
                    tx_signature=tx_signature or None,
                )
        except IntegrityError as e:
            raise DuplicateVote(
                f"{voter_wallet} already voted on {report.report_id}",
                report=report
            ) from e

    @staticmethod
    def votes_for(report: Report):
        return Vote.objects.filter(report=report).order_by('created_at', 'id')

    @staticmethod
    def tally(report: Report) -> dict:
        """Approve / reject counts as recorded in the ledger"""
        counts = Vote.objects.filter(report=report).aggregate(
            approve=Count('id', filter=Q(vote=Vote.DECISION_APPROVE)),
            reject=Count('id', filter=Q(vote=Vote.DECISION_REJECT)),
        )
        return {'approve': counts['approve'] or 0, 'reject': counts['reject'] or 0}
