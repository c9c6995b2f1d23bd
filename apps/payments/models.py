from django.db import models
from django.core.validators import MinValueValidator
from decimal import Decimal
import uuid


class PaymentStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    COMPLETED = 'completed', 'Completed'
    FAILED = 'failed', 'Failed'
    REFUNDED = 'refunded', 'Refunded'


class Payment(models.Model):
    """One attempt by a group member to settle their share."""
    
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    
    group_member = models.ForeignKey(
        'groups.GroupMember',
        on_delete=models.CASCADE,
        related_name='payments'
    )
    
    # Processor intent id, set once the charge has been opened
    external_reference = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True
    )
    
    # Share plus processing fee, frozen when the payment is opened
    amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    fee_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    currency = models.CharField(max_length=3, default='usd')
    
    status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING
    )
    paid_at = models.DateTimeField(null=True, blank=True)
    
    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    
    class Meta:
        db_table = 'payments'
        indexes = [
            models.Index(fields=['group_member', 'status'], name='payment_member_status_idx'),
            models.Index(fields=['status', 'created_at'], name='payment_status_created_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['group_member'],
                condition=models.Q(status='pending'),
                name='one_pending_payment_per_member',
            ),
        ]
        ordering = ['-created_at']
    
    def __str__(self):
        return f"{self.amount} {self.currency.upper()} ({self.status})"
    
    @property
    def share_amount(self):
        return self.amount - self.fee_amount
    
    def mark_completed(self):
        from django.utils import timezone
        
        self.status = PaymentStatus.COMPLETED
        self.paid_at = timezone.now()
        self.save(update_fields=['status', 'paid_at', 'updated_at'])
    
    def mark_failed(self):
        self.status = PaymentStatus.FAILED
        self.save(update_fields=['status', 'updated_at'])
    
    def mark_refunded(self):
        self.status = PaymentStatus.REFUNDED
        self.save(update_fields=['status', 'updated_at'])
