# ==========================================
# apps/groups/models.py
# ==========================================

from decimal import Decimal
import uuid

from django.core.validators import MinValueValidator
from django.db import models


class Group(models.Model):
    """The set of people splitting one reservation's cost."""
    
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    reservation = models.OneToOneField(
        'reservations.Reservation',
        on_delete=models.CASCADE,
        related_name='group'
    )
    name = models.CharField(max_length=200)
    invite_code = models.CharField(max_length=16, unique=True, db_index=True, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    
    class Meta:
        db_table = 'groups'
        ordering = ['-created_at']
    
    def __str__(self):
        return self.name
    
    def has_member(self, user):
        return self.members.filter(user=user).exists()
    
    def get_member(self, user):
        try:
            return self.members.get(user=user)
        except GroupMember.DoesNotExist:
            return None


class GroupMember(models.Model):
    """A user's participation in a group and their current share of the cost."""
    
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    group = models.ForeignKey(Group, on_delete=models.CASCADE, related_name='members')
    user = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='group_memberships')
    share_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    is_paid = models.BooleanField(default=False)
    # 0 is the reservation owner; decides who absorbs rounding cents
    join_order = models.PositiveIntegerField()
    joined_at = models.DateTimeField(auto_now_add=True)
    
    class Meta:
        db_table = 'group_members'
        unique_together = [['group', 'user'], ['group', 'join_order']]
        indexes = [
            models.Index(fields=['user', 'joined_at'], name='group_member_user_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(share_amount__gte=0),
                name='group_member_share_non_negative',
            ),
        ]
        ordering = ['join_order']
    
    def __str__(self):
        return f"{self.user.email} in {self.group.name}: {self.share_amount}"
    
    def mark_paid(self):
        self.is_paid = True
        self.save(update_fields=['is_paid'])
    
    def mark_unpaid(self):
        self.is_paid = False
        self.save(update_fields=['is_paid'])
