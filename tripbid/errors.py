"""
Error taxonomy shared by every service.

Services raise these; the handler registered in ``create_app`` turns them
into JSON responses so clients can tell a lost race (409) from bad input (400).
"""


class TripBidError(Exception):
    """Base class for errors surfaced verbatim to the caller."""
    status_code = 500
    code = 'error'

    def __init__(self, message, field=None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self):
        data = {'error': self.message, 'code': self.code}
        if self.field:
            data['field'] = self.field
        return data


class ValidationError(TripBidError):
    """Malformed input: missing field, non-positive price or seats."""
    status_code = 400
    code = 'validation_error'


class AuthorizationError(TripBidError):
    """Caller is not the resource owner or not the addressed party."""
    status_code = 403
    code = 'forbidden'


class NotFoundError(TripBidError):
    """Resource absent, or not in the status the action requires."""
    status_code = 404
    code = 'not_found'


class ConflictError(TripBidError):
    """Lost race: trip no longer open, bid no longer pending, duplicate review."""
    status_code = 409
    code = 'conflict'


class DependencyFailure(TripBidError):
    """A best-effort side effect (notification fanout) did not complete."""
    status_code = 502
    code = 'dependency_failure'
