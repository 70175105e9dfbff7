# apps/reports/services/report_store.py

import logging
import math
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.db.models import Avg, Count, Q, Sum
from django.utils import timezone
from django.utils.dateparse import parse_date

from core.exceptions import InvalidInput, NotFound
from apps.reports.filters import ReportFilter
from apps.reports.models import Report

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('crop_type', 'quantity', 'latitude', 'longitude')

# Columns the settlement pass may write back onto a report
RECEIPT_FIELDS = {
    'mint_tx_signature',
    'tree_address',
    'reward_tx_signature',
    'reward_amount',
    'reputation_applied_at',
    'reward_claimed_at',
    'mint_claimed_at',
}

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


class ReportStore:
    """
    Durable access to reports.

    Every write is a single-row UPDATE; tallies and status belong to the
    verification state machine, receipts to settlement.
    """

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------
    @staticmethod
    def create(owner_wallet: str, **fields) -> Report:
        """
        Validate and persist a new pending report.

        Required: crop_type, quantity, latitude, longitude.
        Optional: unit, district, province, village, images, soil_type,
        irrigation, harvest_date, market_price.

        Raises:
            InvalidInput: missing or malformed fields (``fields`` maps
                each offending name to a message)
        """
        owner_wallet = (owner_wallet or '').strip()
        if not owner_wallet:
            raise InvalidInput('Owner wallet is required', fields={'owner_wallet': 'This field is required.'})

        missing = [name for name in REQUIRED_FIELDS if fields.get(name) in (None, '')]
        if missing:
            raise InvalidInput(
                'Missing required fields',
                fields={name: 'This field is required.' for name in missing}
            )

        errors = {}

        quantity = _to_decimal(fields['quantity'])
        if quantity is None or quantity <= 0:
            errors['quantity'] = 'Must be a positive number.'

        latitude = _to_float(fields['latitude'])
        if latitude is None or not -90 <= latitude <= 90:
            errors['latitude'] = 'Must be between -90 and 90.'

        longitude = _to_float(fields['longitude'])
        if longitude is None or not -180 <= longitude <= 180:
            errors['longitude'] = 'Must be between -180 and 180.'

        market_price = None
        if fields.get('market_price') not in (None, ''):
            market_price = _to_decimal(fields['market_price'])
            if market_price is None or market_price < 0:
                errors['market_price'] = 'Must be a non-negative number.'

        harvest_date = fields.get('harvest_date') or None
        if isinstance(harvest_date, str):
            try:
                harvest_date = parse_date(harvest_date)
            except ValueError:
                harvest_date = None
            if harvest_date is None:
                errors['harvest_date'] = 'Use YYYY-MM-DD.'

        try:
            images = ReportStore.normalise_images(fields.get('images'))
        except ValueError as e:
            images = []
            errors['images'] = str(e)

        if errors:
            raise InvalidInput('Invalid report fields', fields=errors)

        report = Report.objects.create(
            owner_wallet=owner_wallet,
            crop_type=str(fields['crop_type']).strip().lower(),
            quantity_value=quantity,
            quantity_unit=(fields.get('unit') or 'kg').strip(),
            latitude=latitude,
            longitude=longitude,
            district=(fields.get('district') or '').strip(),
            province=(fields.get('province') or '').strip(),
            village=(fields.get('village') or '').strip(),
            images=images,
            soil_type=(fields.get('soil_type') or '').strip(),
            irrigation=(fields.get('irrigation') or '').strip(),
            harvest_date=harvest_date,
            market_price=market_price,
        )

        logger.info(f"Report submitted: {report.report_id} by {owner_wallet}")
        return report

    @staticmethod
    def normalise_images(images) -> list:
        """
        Accept content-addressed references as bare CIDs or
        ``{"ipfs_hash", "url"}`` dicts; returns stored image entries.
        """
        if not images:
            return []
        if not isinstance(images, (list, tuple)):
            raise ValueError('Images must be a list.')

        gateway = getattr(settings, 'IPFS_GATEWAY_URL', 'https://nftstorage.link/ipfs/')
        uploaded_at = timezone.now().isoformat()

        normalised = []
        for image in images:
            if isinstance(image, str):
                image = {'ipfs_hash': image}
            if not isinstance(image, dict):
                raise ValueError('Each image must be a CID or an object.')

            ipfs_hash = (image.get('ipfs_hash') or image.get('ipfsHash') or '').strip()
            url = (image.get('url') or '').strip()
            if not ipfs_hash and not url:
                raise ValueError('Each image needs an ipfs_hash or url.')

            normalised.append({
                'ipfs_hash': ipfs_hash or None,
                'url': url or f"{gateway}{ipfs_hash}",
                'uploaded_at': image.get('uploaded_at') or uploaded_at,
            })
        return normalised

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------
    @staticmethod
    def get(report_ref) -> Report:
        """Fetch by public code (RPT-...) or internal id"""
        ref = str(report_ref or '').strip()

        report = None
        if ref.isdigit():
            report = Report.objects.filter(pk=int(ref)).first()
        elif ref:
            report = Report.objects.filter(report_id__iexact=ref).first()

        if report is None:
            raise NotFound(f"Report {ref or '<empty>'} not found")
        return report

    @staticmethod
    def filter(status=None, crop_type=None, province=None, district=None,
               owner_wallet=None, page=1, limit=DEFAULT_PAGE_SIZE):
        """
        Page of reports, newest first.

        Returns:
            (list[Report], {'total', 'page', 'limit', 'pages'})
        """
        params = {
            'status': status,
            'crop_type': crop_type,
            'province': province,
            'district': district,
            'wallet': owner_wallet,
        }
        report_filter = ReportFilter(
            data={name: value for name, value in params.items() if value},
            queryset=Report.objects.all(),
        )
        if not report_filter.is_valid():
            errors = report_filter.errors.get_json_data()
            raise InvalidInput(
                'Invalid filters',
                fields={name: [e['message'] for e in errs] for name, errs in errors.items()}
            )
        queryset = report_filter.qs

        page = max(_to_int(page, 1), 1)
        limit = min(max(_to_int(limit, DEFAULT_PAGE_SIZE), 1), MAX_PAGE_SIZE)

        total = queryset.count()
        offset = (page - 1) * limit
        reports = list(queryset.order_by('-created_at', '-id')[offset:offset + limit])

        return reports, {
            'total': total,
            'page': page,
            'limit': limit,
            'pages': math.ceil(total / limit) if total else 0,
        }

    @staticmethod
    def aggregate_map_data() -> list:
        """Per (province, district, crop) counts, quantity and centroid"""
        rows = (
            Report.objects
            .values('province', 'district', 'crop_type')
            .annotate(
                report_count=Count('id'),
                verified_count=Count('id', filter=Q(status=Report.STATUS_VERIFIED)),
                pending_count=Count('id', filter=Q(status=Report.STATUS_PENDING)),
                total_quantity=Sum('quantity_value'),
                avg_latitude=Avg('latitude'),
                avg_longitude=Avg('longitude'),
            )
            .order_by('province', 'district', 'crop_type')
        )
        return list(rows)

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------
    @staticmethod
    def update_receipt(report_pk, **fields) -> int:
        """Single-row UPDATE of receipt / claim columns; returns rows updated"""
        unknown = set(fields) - RECEIPT_FIELDS
        if unknown:
            raise ValueError(f"Not receipt fields: {sorted(unknown)}")

        return Report.objects.filter(pk=report_pk).update(
            **fields, updated_at=timezone.now()
        )


def _to_decimal(value):
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return result if result.is_finite() else None


def _to_float(value):
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return result if math.isfinite(result) else None


def _to_int(value, default):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
