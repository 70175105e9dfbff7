"""
Compare report tallies with the vote ledger and re-run settlement
Run: python manage.py reconcile_votes [--fix] [--resettle]
"""

from django.core.management.base import BaseCommand

from apps.reports.services import ReconciliationService, SettlementDispatcher


class Command(BaseCommand):
    help = 'Detect tally drift against the vote ledger; optionally repair and re-settle'

    def add_arguments(self, parser):
        parser.add_argument('--fix', action='store_true', help='Rewrite drifted tallies from the ledger')
        parser.add_argument('--resettle', action='store_true', help='Retry settlement for verified reports missing receipts')
        parser.add_argument('--limit', type=int, default=100)

    def handle(self, *args, **options):
        drift = ReconciliationService.reconcile_tallies(fix=options['fix'])

        if not drift:
            self.stdout.write(self.style.SUCCESS('Tallies match the vote ledger'))
        for entry in drift:
            state = 'fixed' if entry.get('fixed') else 'drift'
            self.stdout.write(self.style.WARNING(
                f"{entry['report_id']} [{state}] stored={entry['stored']} ledger={entry['ledger']}"
            ))

        if options['resettle']:
            with SettlementDispatcher.from_settings() as dispatcher:
                results = ReconciliationService.resettle(dispatcher, limit=options['limit'])
            for result in results:
                self.stdout.write(
                    f"{result.report_id}: reward={result.reward} mint={result.mint}"
                )
            self.stdout.write(self.style.SUCCESS(f"Re-settled {len(results)} report(s)"))
