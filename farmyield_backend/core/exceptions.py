# core/exceptions.py
# ---------------------------------------------------------------------------
# Error taxonomy shared by the report lifecycle, settlement and the chain
# collaborator.  Views map ``code`` / ``http_status`` straight onto the
# response; nothing here knows about HTTP beyond the status number.
# ---------------------------------------------------------------------------


class ReportError(Exception):
    """Base class for every error the report lifecycle surfaces."""

    code = 'report_error'
    http_status = 400

    def __init__(self, message='', report=None):
        super().__init__(message or self.code)
        self.message = message or self.code
        # Report state at the time of failure, when known
        self.report = report


class NotFound(ReportError):
    code = 'not_found'
    http_status = 404


class InvalidInput(ReportError):
    code = 'invalid_input'
    http_status = 400

    def __init__(self, message='', fields=None, report=None):
        super().__init__(message, report=report)
        self.fields = fields or {}


class AlreadyFinalized(ReportError):
    code = 'already_finalized'
    http_status = 409


class SelfVote(ReportError):
    code = 'self_vote'
    http_status = 403


class AlreadyVoted(ReportError):
    code = 'already_voted'
    http_status = 409


class DuplicateVote(ReportError):
    """Raised by the vote ledger when (report, voter) already exists."""

    code = 'duplicate_vote'
    http_status = 409


class StorageConflict(ReportError):
    """A concurrent write changed the report between read and update."""

    code = 'storage_conflict'
    http_status = 503


class ExternalServiceFailure(ReportError):
    """Payment / mint collaborator failure.  Never fatal to a transition."""

    code = 'external_service_failure'
    http_status = 502
