# apps/reports/services/metadata_builder.py

from apps.reports.models import Report


def build_metadata_document(report: Report) -> dict:
    """NFT metadata served at the report's metadata URI"""
    location = ', '.join(part for part in (report.district, report.province) if part)
    image_urls = report.image_urls

    return {
        'name': f"{report.crop_type.upper()} Report",
        'description': f"Crop report from {location}" if location else 'Crop report',
        'image': image_urls[0] if image_urls else '',
        'attributes': [
            {'trait_type': 'Crop Type', 'value': report.crop_type},
            {'trait_type': 'Quantity', 'value': report.quantity_display},
            {'trait_type': 'Location', 'value': report.district},
            {'trait_type': 'Status', 'value': report.status},
            {'trait_type': 'Report ID', 'value': report.report_id},
        ],
        'properties': {
            'category': 'agriculture',
            'creators': [{'address': report.owner_wallet, 'share': 100}],
        },
    }


def build_mint_request(report: Report) -> dict:
    """Payload handed to the minter; ``uri`` is dereferenced later"""
    return {
        'uri': report.metadata_uri,
        'name': f"{report.crop_type.upper()} Report",
        'crop_type': report.crop_type,
        'quantity': report.quantity_display,
        'location': ', '.join(part for part in (report.district, report.province) if part),
        'images': report.image_urls,
        'report_id': report.report_id,
    }
