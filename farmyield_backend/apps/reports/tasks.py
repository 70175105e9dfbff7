"""
Reports App Celery Tasks

- Settlement of verified reports (reward, reputation, NFT mint)
- Periodic tally reconciliation against the vote ledger
- Re-settlement of verified reports with missing receipts
"""

import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(name='reports.settle_report')
def settle_report(report_pk: int) -> dict:
    """
    Settle a verified report.

    Enqueued on commit of the verifying vote.  Safe to run more than once:
    every step is claimed before it runs.

    Returns:
        SettlementResult as a dict
    """
    from apps.reports.services import SettlementDispatcher

    with SettlementDispatcher.from_settings() as dispatcher:
        return dispatcher.settle(report_pk).as_dict()


@shared_task(name='reports.reconcile_tallies')
def reconcile_tallies(fix: bool = False) -> dict:
    """
    Compare stored tallies with the vote ledger (run periodically).

    Returns:
        {'drift': int, 'fixed': int}
    """
    from apps.reports.services import ReconciliationService

    drift = ReconciliationService.reconcile_tallies(fix=fix)
    fixed = sum(1 for entry in drift if entry.get('fixed'))
    if drift:
        logger.warning(f"Tally reconciliation: {len(drift)} drifted, {fixed} fixed")
    return {'drift': len(drift), 'fixed': fixed}


@shared_task(name='reports.resettle_verified_reports')
def resettle_verified_reports(limit: int = 100) -> dict:
    """Retry settlement for verified reports missing a receipt"""
    from apps.reports.services import ReconciliationService, SettlementDispatcher

    with SettlementDispatcher.from_settings() as dispatcher:
        results = ReconciliationService.resettle(dispatcher, limit=limit)

    return {
        'processed': len(results),
        'rewards_sent': sum(1 for r in results if r.reward == 'sent'),
        'mints_sent': sum(1 for r in results if r.mint == 'sent'),
    }
