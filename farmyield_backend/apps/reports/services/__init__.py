"""
Reports Services Package

Report lifecycle: storage, vote ledger, verification and settlement.
"""

from apps.reports.services.report_id_generator import ReportIDGenerator
from apps.reports.services.report_store import ReportStore
from apps.reports.services.vote_ledger import VoteLedger
from apps.reports.services.verification_machine import VerificationStateMachine, VoteOutcome
from apps.reports.services.settlement_dispatcher import SettlementDispatcher, SettlementResult
from apps.reports.services.submission import ReportSubmissionService
from apps.reports.services.reconciliation import ReconciliationService
from apps.reports.services.metadata_builder import build_metadata_document, build_mint_request

__all__ = [
    'ReportIDGenerator',
    'ReportStore',
    'VoteLedger',
    'VerificationStateMachine',
    'VoteOutcome',
    'SettlementDispatcher',
    'SettlementResult',
    'ReportSubmissionService',
    'ReconciliationService',
    'build_metadata_document',
    'build_mint_request',
]
