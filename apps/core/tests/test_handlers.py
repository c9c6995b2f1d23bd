"""
Tests for the ledger exception handler.
"""

from unittest.mock import patch

from rest_framework import exceptions, status

from apps.core.exceptions import (
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from apps.core.handlers import ledger_exception_handler


class TestLedgerExceptionHandler:

    def test_service_errors_map_to_status_and_kind(self):
        cases = [
            (ValidationError('bad input'), 400, 'validation_error'),
            (ConflictError('already paid'), 409, 'conflict'),
            (NotFoundError('no such group'), 404, 'not_found'),
            (PermissionDeniedError('not yours'), 403, 'permission_denied'),
        ]
        for exc, code, kind in cases:
            response = ledger_exception_handler(exc, {})

            assert response.status_code == code
            assert response.data == {'error': str(exc), 'kind': kind, 'status': code}

    def test_external_service_error_is_logged(self):
        with patch('apps.core.handlers.logger') as mock_logger:
            response = ledger_exception_handler(ExternalServiceError('processor down'), {})

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        mock_logger.error.assert_called_once()

    def test_drf_errors_keep_default_shape(self):
        response = ledger_exception_handler(exceptions.NotAuthenticated(), {})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert 'detail' in response.data

    def test_unknown_errors_fall_through(self):
        assert ledger_exception_handler(RuntimeError('boom'), {}) is None
