# apps/reports/services/submission.py

from django.db import transaction

from apps.accounts.services import ReputationTracker
from .report_store import ReportStore


class ReportSubmissionService:
    """Submission: persist the report and count it against its owner"""

    @staticmethod
    @transaction.atomic
    def submit(owner_wallet, **fields):
        report = ReportStore.create(owner_wallet, **fields)
        ReputationTracker.on_report_submitted(report.owner_wallet)
        return report
