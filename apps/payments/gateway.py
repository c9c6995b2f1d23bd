"""
Payment processor gateway.

The ledger talks to the processor through ``PaymentGateway``; the
concrete class comes from ``settings.PAYMENT_GATEWAY_CLASS`` so tests and
other processors can swap it out.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
import hashlib
import hmac
import logging
import time
from typing import Dict, Optional

import requests
from requests.auth import HTTPBasicAuth
from django.conf import settings
from django.utils.module_loading import import_string

from .exceptions import PaymentGatewayError, WebhookSignatureError

logger = logging.getLogger(__name__)


def to_minor_units(amount) -> int:
    """Amount in the currency's smallest unit (cents), rounded half up."""
    return int((Decimal(amount) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class ChargeIntent:
    reference: str
    client_secret: str
    status: str


class PaymentGateway:
    """Interface every processor adapter implements."""

    def create_charge(self, *, amount_minor: int, currency: str,
                      metadata: Optional[Dict[str, str]] = None) -> ChargeIntent:
        raise NotImplementedError

    def retrieve_status(self, reference: str) -> str:
        raise NotImplementedError

    def cancel_charge(self, reference: str) -> str:
        raise NotImplementedError


class StripeGateway(PaymentGateway):
    """Stripe PaymentIntents over the plain REST API."""

    def __init__(self, secret_key=None, api_base=None, timeout=None):
        self.secret_key = secret_key if secret_key is not None else settings.STRIPE_SECRET_KEY
        self.api_base = (api_base or settings.STRIPE_API_BASE).rstrip('/')
        self.timeout = timeout or settings.PAYMENT_GATEWAY_TIMEOUT

    def _request(self, method: str, path: str, data=None) -> dict:
        if not self.secret_key:
            raise PaymentGatewayError("Payment processor credentials are not configured")

        url = f"{self.api_base}{path}"
        try:
            response = requests.request(
                method,
                url,
                auth=HTTPBasicAuth(self.secret_key, ''),
                data=data,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Stripe request {method} {path} failed: {e}")
            raise PaymentGatewayError(f"Payment processor unreachable: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise PaymentGatewayError(
                f"Payment processor returned a non-JSON response ({response.status_code})"
            ) from e

        if not isinstance(body, dict):
            raise PaymentGatewayError("Payment processor returned an unexpected response")

        if not response.ok:
            error = body.get('error') or {}
            message = error.get('message', 'unknown error') if isinstance(error, dict) else str(error)
            logger.warning(f"Stripe rejected {method} {path} ({response.status_code}): {message}")
            raise PaymentGatewayError(
                f"Payment processor rejected the request ({response.status_code}): {message}"
            )

        return body

    def create_charge(self, *, amount_minor, currency, metadata=None):
        data = {
            'amount': amount_minor,
            'currency': currency,
            'automatic_payment_methods[enabled]': 'true',
        }
        for key, value in (metadata or {}).items():
            data[f'metadata[{key}]'] = str(value)

        body = self._request('POST', '/payment_intents', data=data)
        try:
            return ChargeIntent(
                reference=body['id'],
                client_secret=body['client_secret'],
                status=body['status'],
            )
        except KeyError as e:
            raise PaymentGatewayError(
                f"Payment processor response is missing '{e.args[0]}'"
            ) from e

    @staticmethod
    def _intent_status(body: dict) -> str:
        status = body.get('status')
        if not isinstance(status, str):
            raise PaymentGatewayError("Payment processor response is missing 'status'")
        return status

    def retrieve_status(self, reference):
        return self._intent_status(self._request('GET', f'/payment_intents/{reference}'))

    def cancel_charge(self, reference):
        # Stripe refuses to cancel an intent that already succeeded
        return self._intent_status(
            self._request('POST', f'/payment_intents/{reference}/cancel')
        )


def get_payment_gateway() -> PaymentGateway:
    gateway_class = import_string(settings.PAYMENT_GATEWAY_CLASS)
    return gateway_class()


def verify_webhook_signature(payload: bytes, signature_header: str, secret: str,
                             tolerance: int = 300, now: Optional[int] = None) -> None:
    """
    Check a ``Stripe-Signature`` header (``t=<ts>,v1=<hex>``).

    The signed string is ``"<ts>.<raw body>"`` under HMAC-SHA256.

    Raises:
        WebhookSignatureError: Header missing or malformed, signature
            mismatch, or timestamp outside the tolerance window
    """
    if not signature_header:
        raise WebhookSignatureError("Missing webhook signature")

    timestamp = None
    signatures = []
    for item in signature_header.split(','):
        key, _, value = item.strip().partition('=')
        if key == 't':
            timestamp = value
        elif key == 'v1':
            signatures.append(value)

    if not timestamp or not signatures:
        raise WebhookSignatureError("Malformed webhook signature header")

    try:
        signed_at = int(timestamp)
    except ValueError:
        raise WebhookSignatureError("Malformed webhook signature timestamp")

    now = int(time.time()) if now is None else now
    if abs(now - signed_at) > tolerance:
        raise WebhookSignatureError("Webhook signature timestamp outside tolerance")

    signed_payload = f"{timestamp}.".encode() + payload
    expected = hmac.new(secret.encode(), signed_payload, hashlib.sha256).hexdigest()
    if not any(hmac.compare_digest(expected, candidate) for candidate in signatures):
        raise WebhookSignatureError("Webhook signature mismatch")
