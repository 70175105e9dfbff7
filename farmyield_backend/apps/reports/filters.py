# apps/reports/filters.py

import django_filters

from .models import Report


class ReportFilter(django_filters.FilterSet):
    """Query filters for report listings"""

    status = django_filters.ChoiceFilter(choices=Report.STATUS_CHOICES)
    crop_type = django_filters.CharFilter(field_name='crop_type', lookup_expr='iexact')
    province = django_filters.CharFilter(field_name='province', lookup_expr='iexact')
    district = django_filters.CharFilter(field_name='district', lookup_expr='iexact')
    wallet = django_filters.CharFilter(method='filter_wallet')

    class Meta:
        model = Report
        fields = ['status', 'crop_type', 'province', 'district', 'wallet']

    def filter_wallet(self, queryset, name, value):
        return queryset.filter(owner_wallet__iexact=value.strip())
