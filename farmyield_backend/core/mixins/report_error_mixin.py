from rest_framework.response import Response

from core.exceptions import ReportError, AlreadyFinalized, AlreadyVoted


class ReportErrorResponseMixin:
    """
    Mixin rendering ReportError subclasses raised by services.

    Body: {"success": false, "error": <code>, "message": <str>} plus the
    report's current status and tallies for AlreadyVoted / AlreadyFinalized.
    """

    STATE_CARRYING_ERRORS = (AlreadyVoted, AlreadyFinalized)

    def handle_exception(self, exc):
        if isinstance(exc, ReportError):
            return self.report_error_response(exc)
        return super().handle_exception(exc)

    def report_error_response(self, exc):
        body = {
            'success': False,
            'error': exc.code,
            'message': exc.message,
        }

        fields = getattr(exc, 'fields', None)
        if fields:
            body['fields'] = fields

        report = exc.report
        if report is not None and isinstance(exc, self.STATE_CARRYING_ERRORS):
            body['report'] = {
                'report_id': report.report_id,
                'status': report.status,
                'votes': report.vote_counts,
            }

        return Response(body, status=exc.http_status)
