# ==========================================
# apps/activity/models.py
# ==========================================

import uuid

from django.db import models

from apps.core.exceptions import ConflictError


class ActivityType(models.TextChoices):
    CREATE = 'create', 'Create'
    JOIN = 'join', 'Join'
    PAYMENT = 'payment', 'Payment'
    REMINDER = 'reminder', 'Reminder'


class ImmutableActivityError(ConflictError):
    """Raised when an activity row is updated or deleted."""
    pass


class Activity(models.Model):
    """Append-only feed entry describing something a user did."""
    
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='activities')
    reservation = models.ForeignKey(
        'reservations.Reservation',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='activities'
    )
    payment = models.ForeignKey(
        'payments.Payment',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='activities'
    )
    activity_type = models.CharField(max_length=20, choices=ActivityType.choices)
    message = models.CharField(max_length=500)
    created_at = models.DateTimeField(auto_now_add=True)
    
    class Meta:
        db_table = 'activities'
        verbose_name_plural = 'activities'
        indexes = [
            models.Index(fields=['user', '-created_at'], name='activity_user_created_idx'),
            models.Index(fields=['reservation', '-created_at'], name='activity_reservation_idx'),
        ]
        ordering = ['-created_at']
    
    def __str__(self):
        return f"[{self.activity_type}] {self.message}"
    
    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ImmutableActivityError(f"Activity {self.pk} cannot be modified")
        super().save(*args, **kwargs)
    
    def delete(self, *args, **kwargs):
        raise ImmutableActivityError(f"Activity {self.pk} cannot be deleted")
