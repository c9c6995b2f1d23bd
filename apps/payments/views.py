import json
import logging

from django.conf import settings
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.decorators import (
    api_view,
    authentication_classes,
    permission_classes,
)
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from .exceptions import PaymentNotFoundError
from .gateway import verify_webhook_signature
from .serializers import (
    ConfirmPaymentSerializer,
    CreatePaymentIntentSerializer,
    PaymentIntentResponseSerializer,
    PaymentSerializer,
    ReconciliationResponseSerializer,
)
from .services import (
    confirm_payment,
    get_user_payments,
    record_refund,
    start_checkout,
    sync_payment,
)

logger = logging.getLogger(__name__)

# Stripe event type -> processor status fed into confirm_payment
INTENT_EVENT_STATUSES = {
    'payment_intent.succeeded': 'succeeded',
    'payment_intent.payment_failed': 'failed',
    'payment_intent.canceled': 'canceled',
}


def _reconciliation_response(result):
    return Response({
        'payment': PaymentSerializer(result.payment).data,
        'status': result.status,
        'changed': result.changed,
    })


def _malformed_webhook():
    return Response({'error': 'Malformed webhook payload'}, status=status.HTTP_400_BAD_REQUEST)


@extend_schema(
    request=CreatePaymentIntentSerializer,
    responses={201: PaymentIntentResponseSerializer},
    description="Open a payment for your share and create the processor charge"
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def create_payment_intent(request):
    serializer = CreatePaymentIntentSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    payment, client_secret = start_checkout(
        member_id=serializer.validated_data['group_member_id'],
        user=request.user
    )

    return Response(
        {
            'payment': PaymentSerializer(payment).data,
            'client_secret': client_secret,
            'amount': str(payment.amount),
            'fee_amount': str(payment.fee_amount),
        },
        status=status.HTTP_201_CREATED
    )


@extend_schema(
    request=ConfirmPaymentSerializer,
    responses=ReconciliationResponseSerializer,
    description="Reconcile a payment with the processor after client-side checkout"
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def confirm_payment_view(request):
    serializer = ConfirmPaymentSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    result = sync_payment(external_reference=serializer.validated_data['payment_intent_id'])
    return _reconciliation_response(result)


@extend_schema(
    request=None,
    responses={200: None},
    description="Processor webhook; authenticated by signature, not by user"
)
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def payment_webhook(request):
    payload = request.body
    secret = settings.STRIPE_WEBHOOK_SECRET
    if secret:
        verify_webhook_signature(
            payload,
            request.headers.get('Stripe-Signature', ''),
            secret,
            tolerance=settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS
        )

    try:
        event = json.loads(payload)
        event_type = event['type']
        event_object = event['data']['object']
    except (ValueError, KeyError, TypeError):
        return _malformed_webhook()
    if not isinstance(event_type, str):
        return _malformed_webhook()

    if event_type in INTENT_EVENT_STATUSES:
        reference_field = 'id'
    elif event_type == 'charge.refunded':
        reference_field = 'payment_intent'
    else:
        logger.debug(f"Ignoring webhook event {event_type}")
        return Response({'received': True})

    try:
        external_reference = event_object[reference_field]
    except (KeyError, TypeError):
        external_reference = None
    if not isinstance(external_reference, str) or not external_reference:
        return _malformed_webhook()

    try:
        if reference_field == 'id':
            confirm_payment(
                external_reference=external_reference,
                external_status=INTENT_EVENT_STATUSES[event_type]
            )
        else:
            record_refund(external_reference=external_reference)
    except PaymentNotFoundError as e:
        # Acknowledge so the processor stops redelivering
        logger.warning(f"Webhook {event_type} for unknown payment: {e}")

    return Response({'received': True})


@extend_schema(
    responses=PaymentSerializer(many=True),
    description="Payments opened by the current user, newest first"
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_payments(request):
    payments = get_user_payments(user=request.user)
    return Response(PaymentSerializer(payments, many=True).data)
