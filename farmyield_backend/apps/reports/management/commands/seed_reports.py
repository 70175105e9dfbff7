"""
Django management command to seed sample reports
Run: python manage.py seed_reports [--with-votes]
"""

from django.core.management.base import BaseCommand

from apps.accounts.models import WalletUser
from apps.reports.models import Report
from apps.reports.services import ReportSubmissionService, VerificationStateMachine

FARMERS = [
    ('FARMER1111111111111111111111111111111111', 'Farmer A', 'Multan', 'Punjab'),
    ('FARMER2222222222222222222222222222222222', 'Farmer B', 'Peshawar', 'Khyber Pakhtunkhwa'),
    ('FARMER3333333333333333333333333333333333', 'Farmer C', 'Sukkur', 'Sindh'),
]

VOTERS = [f"VOTER{i}{'0' * 35}" for i in range(1, 5)]

# (farmer index, crop, kg, lat, lng, district, province, village, price, votes)
REPORTS = [
    (0, 'wheat', 500, 30.1575, 71.5249, 'Multan', 'Punjab', 'Basti A', 85, ['approve'] * 3),
    (1, 'rice', 1200, 34.0151, 71.5793, 'Peshawar', 'Khyber Pakhtunkhwa', 'Cantt', 110, ['approve']),
    (2, 'cotton', 800, 27.7052, 68.8574, 'Sukkur', 'Sindh', 'Rohri', 140, ['approve'] * 3),
    (0, 'maize', 300, 33.6844, 73.0479, 'Rawalpindi', 'Punjab', 'Murree Road', 70, []),
    (1, 'sugarcane', 2000, 31.5204, 74.3587, 'Lahore', 'Punjab', 'Raiwind', 60, ['reject'] * 3),
]


class Command(BaseCommand):
    help = 'Seed database with sample farmers and crop reports'

    def add_arguments(self, parser):
        parser.add_argument(
            '--with-votes',
            action='store_true',
            help='Cast community votes so reports reach verified / rejected'
        )

    def handle(self, *args, **options):
        self.stdout.write('🌱 Seeding reports...\n')

        for wallet, username, district, province in FARMERS:
            user, _ = WalletUser.objects.get_or_create_for_wallet(wallet)
            user.username = username
            user.district = district
            user.province = province
            user.save(update_fields=['username', 'district', 'province', 'updated_at'])

        machine = VerificationStateMachine()
        for farmer, crop, kg, lat, lng, district, province, village, price, votes in REPORTS:
            report = ReportSubmissionService.submit(
                FARMERS[farmer][0],
                crop_type=crop,
                quantity=kg,
                latitude=lat,
                longitude=lng,
                district=district,
                province=province,
                village=village,
                market_price=price,
            )

            if options['with_votes']:
                for voter, decision in zip(VOTERS, votes):
                    machine.apply_vote(report.report_id, voter, decision)

            report.refresh_from_db()
            self.stdout.write(f"  {report.report_id}  {crop:<10} {report.status}")

        self.stdout.write(self.style.SUCCESS('\n✅ Seeding completed!'))
        self.stdout.write(
            f"Reports: {Report.objects.count()}  "
            f"Users: {WalletUser.objects.count()}"
        )
