"""
Domain exceptions for the CRM backend.

Every exception carries the HTTP status it maps to; security.setup_error_handlers
turns them into JSON error bodies.
"""
from typing import Dict, Optional


class CRMError(Exception):
    """Base class for all expected, client-facing failures"""
    status_code = 500
    error = 'Internal Server Error'

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict:
        return {
            'success': False,
            'error': self.error,
            'message': self.message,
        }


class ValidationError(CRMError):
    """Missing or malformed input"""
    status_code = 400
    error = 'Validation Error'

    def __init__(self, message: str, field: Optional[str] = None,
                 errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.field = field
        self.errors = dict(errors or {})
        if field and field not in self.errors:
            self.errors[field] = message

    def to_dict(self) -> Dict:
        data = super().to_dict()
        if self.errors:
            data['field_errors'] = self.errors
        return data


class AuthenticationError(CRMError):
    status_code = 401
    error = 'Unauthorized'


class TokenError(AuthenticationError):
    """JWT missing, malformed, badly signed or expired"""


class OwnershipViolationError(CRMError):
    """Record exists but belongs to another agent"""
    status_code = 403
    error = 'Forbidden'

    def __init__(self, resource: str, resource_id):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} {resource_id} does not belong to the current agent")


class NotFoundError(CRMError):
    status_code = 404
    error = 'Not Found'

    def __init__(self, resource: str, resource_id=None):
        self.resource = resource
        self.resource_id = resource_id
        if resource_id is None:
            message = f"{resource} not found"
        else:
            message = f"{resource} not found with id: {resource_id}"
        super().__init__(message)


class DuplicateError(CRMError):
    status_code = 409
    error = 'Conflict'


class InvalidTokenError(CRMError):
    """Password reset token unknown or already used"""
    status_code = 400
    error = 'Invalid Token'


class ExpiredTokenError(CRMError):
    status_code = 400
    error = 'Expired Token'


class RateLimitExceeded(CRMError):
    status_code = 429
    error = 'Rate Limit Exceeded'


class StorageError(CRMError):
    """Upload rejected (wrong type, empty, unreadable or too large)"""
    status_code = 400
    error = 'Storage Error'


class DownstreamError(CRMError):
    """PDF rendering or external service failure"""
    status_code = 502
    error = 'Bad Gateway'
