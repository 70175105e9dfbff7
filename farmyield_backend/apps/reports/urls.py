# apps/reports/urls.py

from django.urls import path
from .views import (
    SubmitReportView,
    ReportListView,
    MapDataView,
    UserReportsView,
    ReportDetailView,
    VoteView,
    ReportMetadataView,
)

app_name = 'reports'

urlpatterns = [
    path('', ReportListView.as_view(), name='report_list'),
    path('submit/', SubmitReportView.as_view(), name='submit'),
    path('map/data/', MapDataView.as_view(), name='map_data'),
    path('user/<str:wallet_address>/', UserReportsView.as_view(), name='user_reports'),
    path('<str:report_ref>/', ReportDetailView.as_view(), name='report_detail'),
    path('<str:report_ref>/vote/', VoteView.as_view(), name='vote'),
    path('<str:report_ref>/metadata/', ReportMetadataView.as_view(), name='metadata'),
]
