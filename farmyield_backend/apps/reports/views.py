# apps/reports/views.py

from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView
import logging

from core.mixins.report_error_mixin import ReportErrorResponseMixin
from apps.accounts.permissions import IsWalletUser
from .serializers import (
    ReportSerializer,
    ReportSummarySerializer,
    ReportSubmitSerializer,
    VoteSerializer,
)
from .services import (
    ReportStore,
    ReportSubmissionService,
    VerificationStateMachine,
    build_metadata_document,
)

logger = logging.getLogger(__name__)


class SubmitReportView(ReportErrorResponseMixin, APIView):
    """
    POST /api/v1/reports/submit/
    Submit a crop report for the requesting wallet
    """
    permission_classes = [IsWalletUser]

    def post(self, request):
        serializer = ReportSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        report = ReportSubmissionService.submit(
            request.user.wallet_address,
            **serializer.validated_data
        )

        return Response({
            'success': True,
            'message': 'Report submitted successfully',
            'report': ReportSummarySerializer(report).data
        }, status=status.HTTP_201_CREATED)


class ReportListView(ReportErrorResponseMixin, APIView):
    """
    GET /api/v1/reports/
    Filters: status, crop_type (cropType), province, district, wallet,
    page, limit (max 100)
    """
    permission_classes = [AllowAny]

    def get(self, request):
        params = request.query_params
        reports, pagination = ReportStore.filter(
            status=params.get('status'),
            crop_type=params.get('crop_type') or params.get('cropType'),
            province=params.get('province'),
            district=params.get('district'),
            owner_wallet=params.get('wallet'),
            page=params.get('page', 1),
            limit=params.get('limit', 50),
        )

        return Response({
            'success': True,
            'reports': ReportSerializer(reports, many=True).data,
            'pagination': pagination
        })


class MapDataView(ReportErrorResponseMixin, APIView):
    """
    GET /api/v1/reports/map/data/
    Aggregated report data per province, district and crop
    """
    permission_classes = [AllowAny]

    def get(self, request):
        return Response({
            'success': True,
            'data': ReportStore.aggregate_map_data()
        })


class UserReportsView(ReportErrorResponseMixin, APIView):
    """
    GET /api/v1/reports/user/<wallet_address>/
    """
    permission_classes = [AllowAny]

    def get(self, request, wallet_address):
        reports, pagination = ReportStore.filter(
            owner_wallet=wallet_address,
            page=request.query_params.get('page', 1),
            limit=request.query_params.get('limit', 100),
        )
        return Response({
            'success': True,
            'reports': ReportSerializer(reports, many=True).data,
            'pagination': pagination
        })


class ReportDetailView(ReportErrorResponseMixin, APIView):
    """
    GET /api/v1/reports/<report_ref>/
    ``report_ref`` is the RPT- code or the internal id
    """
    permission_classes = [AllowAny]

    def get(self, request, report_ref):
        report = ReportStore.get(report_ref)
        return Response({
            'success': True,
            'report': ReportSerializer(report).data
        })


class VoteView(ReportErrorResponseMixin, APIView):
    """
    POST /api/v1/reports/<report_ref>/vote/
    Body: {"vote": "approve" | "reject", "comment"?, "tx_signature"?}
    """
    permission_classes = [IsWalletUser]

    def post(self, request, report_ref):
        serializer = VoteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        outcome = VerificationStateMachine().apply_vote(
            report_ref,
            request.user.wallet_address,
            data['vote'],
            comment=data.get('comment'),
            tx_signature=data.get('tx_signature'),
        )

        return Response({
            'success': True,
            'message': 'Vote recorded successfully',
            'report': {
                'report_id': outcome.report.report_id,
                'status': outcome.report.status,
                'votes': outcome.report.vote_counts,
            },
            'transitioned': outcome.transitioned
        })


class ReportMetadataView(ReportErrorResponseMixin, APIView):
    """
    GET /api/v1/reports/<report_ref>/metadata/
    NFT metadata document; dereferenced by the minter and wallets
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, report_ref):
        return Response(build_metadata_document(ReportStore.get(report_ref)))
