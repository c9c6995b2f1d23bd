from rest_framework import serializers

from .models import Payment


# =============================================================================
# Input Serializers
# =============================================================================

class CreatePaymentIntentSerializer(serializers.Serializer):
    """
    Validate input for opening a payment.

    Fields:
        group_member_id (UUID): Membership whose share is being paid
    """

    group_member_id = serializers.UUIDField()


class ConfirmPaymentSerializer(serializers.Serializer):
    """
    Validate input for confirming a payment after client-side checkout.

    Fields:
        payment_intent_id (str): Processor reference returned at checkout
    """

    payment_intent_id = serializers.CharField(max_length=255)


# =============================================================================
# Output Serializers
# =============================================================================

class PaymentSerializer(serializers.ModelSerializer):
    """Payment with enough context to show which reservation it settles."""

    group_member_id = serializers.UUIDField(read_only=True)
    reservation_id = serializers.UUIDField(
        source='group_member.group.reservation_id',
        read_only=True
    )
    venue_name = serializers.CharField(
        source='group_member.group.reservation.venue_name',
        read_only=True
    )

    class Meta:
        model = Payment
        fields = [
            'id', 'group_member_id', 'reservation_id', 'venue_name',
            'external_reference', 'amount', 'fee_amount', 'currency',
            'status', 'paid_at', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class PaymentIntentResponseSerializer(serializers.Serializer):
    payment = PaymentSerializer()
    client_secret = serializers.CharField()
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    fee_amount = serializers.DecimalField(max_digits=10, decimal_places=2)


class ReconciliationResponseSerializer(serializers.Serializer):
    payment = PaymentSerializer()
    status = serializers.CharField()
    changed = serializers.BooleanField()
