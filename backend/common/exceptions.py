"""
Service-layer error taxonomy.
Raised by services, mapped to HTTP responses by views.
"""
from typing import Any, Dict, Optional
from rest_framework import status


class ServiceError(Exception):
    """
    Base class for business-rule failures.

    Carries a machine-readable code and a context dict so callers can
    branch on the kind of failure and render a message.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'service_error'

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        data = {'error': self.message, 'code': self.code}
        data.update(self.context)
        return data


class NotFound(ServiceError):
    """Referenced object does not exist."""
    status_code = status.HTTP_404_NOT_FOUND
    default_code = 'not_found'


class Forbidden(ServiceError):
    """Actor lacks the required relationship to the object."""
    status_code = status.HTTP_403_FORBIDDEN
    default_code = 'forbidden'


class InvalidRequest(ServiceError):
    """Request violates a business precondition."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'invalid_request'
