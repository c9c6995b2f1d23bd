"""DRF exception handler that understands the ledger error taxonomy."""

import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler

from apps.core.exceptions import ExternalServiceError, ServiceError

logger = logging.getLogger(__name__)


def ledger_exception_handler(exc, context):
    """
    Domain errors collapse to ``{"error", "kind", "status"}``; everything
    else falls through to DRF's default handling.
    """
    if isinstance(exc, ServiceError):
        if isinstance(exc, ExternalServiceError):
            logger.error(f"External service failure: {exc}")
        return Response(
            {
                'error': str(exc),
                'kind': exc.kind,
                'status': exc.status_code,
            },
            status=exc.status_code,
        )

    return exception_handler(exc, context)
