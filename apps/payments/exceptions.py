"""
Domain exceptions for payments app.

This module defines the exception hierarchy for payment-related errors,
providing specific error types for better error handling and testing.
"""

from apps.core.exceptions import (
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)


class PaymentNotFoundError(NotFoundError):
    """No payment matches the external reference."""
    pass


class PendingPaymentExistsError(ConflictError):
    """The member already has a payment in flight."""
    pass


class MemberAlreadyPaidError(ConflictError):
    """The member's share is already settled."""
    pass


class NothingToPayError(ValidationError):
    """The member's share is zero."""
    pass


class ReservationCancelledError(ConflictError):
    """Payments cannot be opened for a cancelled reservation."""
    pass


class InvalidFeeRateError(ValidationError):
    """Fee rate is negative or not a number."""
    pass


class PaymentGatewayError(ExternalServiceError):
    """Processor unreachable, rejected the call, or answered garbage."""
    pass


class WebhookSignatureError(ValidationError):
    """Webhook payload could not be authenticated."""
    pass
