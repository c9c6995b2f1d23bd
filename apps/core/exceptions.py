"""
Ledger error taxonomy shared by every app.

Service layers raise these (or app-specific subclasses of them) and never
HTTP exceptions. ``apps.core.handlers`` is the single place where they are
converted into responses.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError        malformed or missing input
    ├── ConflictError          operation would violate a ledger invariant
    ├── NotFoundError          referenced entity does not exist
    ├── PermissionDeniedError  caller may not act on the entity
    └── ExternalServiceError   payment processor failed or answered garbage
"""

from rest_framework import status


class ServiceError(Exception):
    """Base exception for all ledger service errors."""

    kind = 'error'
    status_code = status.HTTP_400_BAD_REQUEST


class ValidationError(ServiceError):
    """Raised when input is malformed, e.g. empty venue name or non-positive cost."""

    kind = 'validation_error'
    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(ServiceError):
    """Raised when the requested change would break a ledger invariant."""

    kind = 'conflict'
    status_code = status.HTTP_409_CONFLICT


class NotFoundError(ServiceError):
    """Raised when a referenced entity is absent."""

    kind = 'not_found'
    status_code = status.HTTP_404_NOT_FOUND


class PermissionDeniedError(ServiceError):
    """Raised when the caller is authenticated but not allowed to act on the entity."""

    kind = 'permission_denied'
    status_code = status.HTTP_403_FORBIDDEN


class ExternalServiceError(ServiceError):
    """Raised when the payment processor call failed or returned malformed data."""

    kind = 'external_service_error'
    status_code = status.HTTP_502_BAD_GATEWAY
