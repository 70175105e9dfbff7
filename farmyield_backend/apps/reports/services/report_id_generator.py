# apps/reports/services/report_id_generator.py

import secrets
from django.utils import timezone


class ReportIDGenerator:
    """
    Service for generating public report codes
    Format: RPT-YYYY-XXXXXXXX where:
    - RPT = report prefix
    - YYYY = submission year
    - XXXXXXXX = 8 random upper-case hex digits
    """

    PREFIX = 'RPT'

    @classmethod
    def generate(cls, max_attempts=10):
        """
        Generate an unused report code

        Args:
            max_attempts (int): Maximum generation attempts

        Returns:
            str: Generated code (e.g., RPT-2024-3F9A0C1B)

        Raises:
            ValueError: If no free code is found
        """
        from apps.reports.models import Report

        year = timezone.now().year
        for _ in range(max_attempts):
            report_id = f"{cls.PREFIX}-{year}-{secrets.token_hex(4).upper()}"
            if not Report.objects.filter(report_id=report_id).exists():
                return report_id

        raise ValueError(f"Unable to generate unique report ID after {max_attempts} attempts")

    @classmethod
    def is_valid(cls, report_id):
        """Check the RPT-YYYY-XXXXXXXX shape"""
        parts = (report_id or '').split('-')
        if len(parts) != 3 or parts[0] != cls.PREFIX:
            return False
        year, suffix = parts[1], parts[2]
        if not (year.isdigit() and len(year) == 4):
            return False
        return len(suffix) == 8 and all(c in '0123456789ABCDEF' for c in suffix)
