"""
Tests for the processor gateway: minor-unit conversion, the Stripe REST
adapter (with ``requests`` mocked) and webhook signature checks.
"""

from decimal import Decimal
import hashlib
import hmac
from unittest.mock import MagicMock, patch

import pytest
import requests

from apps.payments.exceptions import PaymentGatewayError, WebhookSignatureError
from apps.payments.gateway import (
    ChargeIntent,
    StripeGateway,
    get_payment_gateway,
    to_minor_units,
    verify_webhook_signature,
)


def fake_response(status_code=200, body=None, json_error=False):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    if json_error:
        response.json.side_effect = ValueError('No JSON object could be decoded')
    else:
        response.json.return_value = body
    return response


# =============================================================================
# Minor Units
# =============================================================================

class TestToMinorUnits:

    @pytest.mark.parametrize('amount,expected', [
        (Decimal('154.50'), 15450),
        (Decimal('0.01'), 1),
        (Decimal('10'), 1000),
        (Decimal('1.005'), 101),
        ('19.99', 1999),
    ])
    def test_conversion(self, amount, expected):
        assert to_minor_units(amount) == expected


# =============================================================================
# Stripe Adapter
# =============================================================================

class TestStripeGateway:

    @pytest.fixture
    def stripe(self):
        return StripeGateway(secret_key='sk_test_123', api_base='https://stripe.test/v1', timeout=5)

    @patch('apps.payments.gateway.requests.request')
    def test_create_charge(self, mock_request, stripe):
        mock_request.return_value = fake_response(body={
            'id': 'pi_123',
            'client_secret': 'pi_123_secret_abc',
            'status': 'requires_payment_method',
        })

        intent = stripe.create_charge(
            amount_minor=15450, currency='usd', metadata={'payment_id': 'abc'}
        )

        assert intent == ChargeIntent('pi_123', 'pi_123_secret_abc', 'requires_payment_method')
        method, url = mock_request.call_args.args
        kwargs = mock_request.call_args.kwargs
        assert method == 'POST'
        assert url == 'https://stripe.test/v1/payment_intents'
        assert kwargs['data']['amount'] == 15450
        assert kwargs['data']['currency'] == 'usd'
        assert kwargs['data']['metadata[payment_id]'] == 'abc'
        assert kwargs['auth'].username == 'sk_test_123'
        assert kwargs['timeout'] == 5

    @patch('apps.payments.gateway.requests.request')
    def test_retrieve_status(self, mock_request, stripe):
        mock_request.return_value = fake_response(body={'id': 'pi_123', 'status': 'succeeded'})

        assert stripe.retrieve_status('pi_123') == 'succeeded'
        method, url = mock_request.call_args.args
        assert method == 'GET'
        assert url == 'https://stripe.test/v1/payment_intents/pi_123'

    @patch('apps.payments.gateway.requests.request')
    def test_cancel_charge(self, mock_request, stripe):
        mock_request.return_value = fake_response(body={'id': 'pi_123', 'status': 'canceled'})

        assert stripe.cancel_charge('pi_123') == 'canceled'
        method, url = mock_request.call_args.args
        assert method == 'POST'
        assert url == 'https://stripe.test/v1/payment_intents/pi_123/cancel'

    @patch('apps.payments.gateway.requests.request')
    def test_cancel_refused_after_success(self, mock_request, stripe):
        mock_request.return_value = fake_response(
            status_code=400,
            body={'error': {'message': 'You cannot cancel this PaymentIntent because it has a status of succeeded.'}}
        )

        with pytest.raises(PaymentGatewayError, match='succeeded'):
            stripe.cancel_charge('pi_123')

    @patch('apps.payments.gateway.requests.request')
    def test_error_response(self, mock_request, stripe):
        mock_request.return_value = fake_response(
            status_code=402, body={'error': {'message': 'Your card was declined.'}}
        )

        with pytest.raises(PaymentGatewayError, match='declined'):
            stripe.create_charge(amount_minor=100, currency='usd')

    @patch('apps.payments.gateway.requests.request')
    def test_transport_error(self, mock_request, stripe):
        mock_request.side_effect = requests.ConnectionError('connection refused')

        with pytest.raises(PaymentGatewayError, match='unreachable'):
            stripe.retrieve_status('pi_123')

    @patch('apps.payments.gateway.requests.request')
    def test_non_json_body(self, mock_request, stripe):
        mock_request.return_value = fake_response(status_code=502, json_error=True)

        with pytest.raises(PaymentGatewayError):
            stripe.retrieve_status('pi_123')

    @patch('apps.payments.gateway.requests.request')
    def test_missing_fields(self, mock_request, stripe):
        mock_request.return_value = fake_response(body={'id': 'pi_123'})

        with pytest.raises(PaymentGatewayError, match='client_secret'):
            stripe.create_charge(amount_minor=100, currency='usd')

    @patch('apps.payments.gateway.requests.request')
    def test_missing_status(self, mock_request, stripe):
        mock_request.return_value = fake_response(body={'id': 'pi_123'})

        with pytest.raises(PaymentGatewayError, match='status'):
            stripe.retrieve_status('pi_123')

    @patch('apps.payments.gateway.requests.request')
    def test_no_credentials(self, mock_request):
        stripe = StripeGateway(secret_key='', api_base='https://stripe.test/v1')

        with pytest.raises(PaymentGatewayError, match='not configured'):
            stripe.retrieve_status('pi_123')
        mock_request.assert_not_called()

    def test_default_gateway_from_settings(self, settings):
        settings.PAYMENT_GATEWAY_CLASS = 'apps.payments.gateway.StripeGateway'
        assert isinstance(get_payment_gateway(), StripeGateway)


# =============================================================================
# Webhook Signatures
# =============================================================================

class TestWebhookSignature:

    SECRET = 'whsec_test'
    PAYLOAD = b'{"type": "payment_intent.succeeded"}'

    def sign(self, timestamp, payload=None, secret=None):
        signed = f'{timestamp}.'.encode() + (payload or self.PAYLOAD)
        digest = hmac.new((secret or self.SECRET).encode(), signed, hashlib.sha256).hexdigest()
        return f't={timestamp},v1={digest}'

    def test_valid_signature(self):
        header = self.sign(1_700_000_000)
        verify_webhook_signature(self.PAYLOAD, header, self.SECRET, now=1_700_000_010)

    def test_wrong_secret(self):
        header = self.sign(1_700_000_000, secret='whsec_other')
        with pytest.raises(WebhookSignatureError, match='mismatch'):
            verify_webhook_signature(self.PAYLOAD, header, self.SECRET, now=1_700_000_000)

    def test_tampered_payload(self):
        header = self.sign(1_700_000_000)
        with pytest.raises(WebhookSignatureError):
            verify_webhook_signature(b'{"type": "charge.refunded"}', header, self.SECRET, now=1_700_000_000)

    def test_outside_tolerance(self):
        header = self.sign(1_700_000_000)
        with pytest.raises(WebhookSignatureError, match='tolerance'):
            verify_webhook_signature(self.PAYLOAD, header, self.SECRET, tolerance=300, now=1_700_001_000)

    @pytest.mark.parametrize('header', ['', 'garbage', 't=abc,v1=deadbeef', 'v1=deadbeef'])
    def test_malformed_header(self, header):
        with pytest.raises(WebhookSignatureError):
            verify_webhook_signature(self.PAYLOAD, header, self.SECRET, now=1_700_000_000)
