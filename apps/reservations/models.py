# ==========================================
# apps/reservations/models.py
# ==========================================

from decimal import Decimal
import uuid

from django.core.validators import MinValueValidator
from django.db import models


class ReservationStatus(models.TextChoices):
    ACTIVE = 'active', 'Active'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'


# Completed and cancelled are terminal
ALLOWED_STATUS_TRANSITIONS = {
    ReservationStatus.ACTIVE: {ReservationStatus.COMPLETED, ReservationStatus.CANCELLED},
    ReservationStatus.COMPLETED: set(),
    ReservationStatus.CANCELLED: set(),
}


class Reservation(models.Model):
    """A cost-bearing event whose total is split across one group."""
    
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='owned_reservations'
    )
    
    # Venue / event
    venue_name = models.CharField(max_length=200)
    venue_image = models.URLField(max_length=500, blank=True)
    event_date = models.DateTimeField()
    description = models.TextField(blank=True)
    
    # Financial details (immutable after creation)
    total_cost = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    
    status = models.CharField(
        max_length=20,
        choices=ReservationStatus.choices,
        default=ReservationStatus.ACTIVE
    )
    
    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    
    class Meta:
        db_table = 'reservations'
        indexes = [
            models.Index(fields=['owner', 'created_at'], name='reservation_owner_idx'),
            models.Index(fields=['status'], name='reservation_status_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_cost__gt=0),
                name='reservation_total_cost_positive',
            ),
        ]
        ordering = ['-created_at']
    
    def __str__(self):
        return f"{self.venue_name} - {self.total_cost} ({self.status})"
    
    def save(self, *args, **kwargs):
        """Refuse to persist a changed total cost on an existing reservation."""
        update_fields = kwargs.get('update_fields')
        if not self._state.adding and (update_fields is None or 'total_cost' in update_fields):
            stored_cost = (
                Reservation.objects
                .filter(pk=self.pk)
                .values_list('total_cost', flat=True)
                .first()
            )
            if stored_cost is not None and stored_cost != self.total_cost:
                from .services.exceptions import ImmutableTotalCostError
                raise ImmutableTotalCostError(
                    f"Total cost of reservation {self.pk} cannot change after creation"
                )
        super().save(*args, **kwargs)
    
    @property
    def is_active(self):
        return self.status == ReservationStatus.ACTIVE
    
    def can_transition_to(self, new_status):
        return new_status in ALLOWED_STATUS_TRANSITIONS.get(self.status, set())
