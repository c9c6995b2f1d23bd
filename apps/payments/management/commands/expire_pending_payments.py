"""
Management command to fail checkouts that were never completed.

A pending payment freezes the member's share, so abandoned ones are
cancelled at the processor and failed here, which rebalances the group.
Charges that did go through in the meantime are completed instead.

Usage:
    python manage.py expire_pending_payments --hours 24
"""

from datetime import timedelta

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from apps.payments.models import Payment, PaymentStatus
from apps.payments.services import expire_stale_payments


class Command(BaseCommand):
    help = 'Mark pending payments older than the cutoff as failed'

    def add_arguments(self, parser):
        parser.add_argument(
            '--hours',
            type=int,
            default=24,
            help='Age in hours after which a pending payment is considered abandoned (default 24)',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be expired without making changes',
        )

    def handle(self, *args, **options):
        hours = options['hours']
        if hours <= 0:
            raise CommandError('--hours must be positive')

        cutoff = timezone.now() - timedelta(hours=hours)
        stale = Payment.objects.filter(
            status=PaymentStatus.PENDING,
            created_at__lt=cutoff
        ).select_related('group_member__user')

        if not stale.exists():
            self.stdout.write(
                self.style.SUCCESS('No stale pending payments. All good!')
            )
            return

        self.stdout.write(f'\nFound {stale.count()} pending payment(s) older than {hours}h:\n')
        for payment in stale:
            self.stdout.write(
                f'  - {payment.id} | {payment.amount} {payment.currency.upper()} '
                f'| {payment.group_member.user.email} | opened {payment.created_at:%Y-%m-%d %H:%M}'
            )

        if options['dry_run']:
            self.stdout.write(
                self.style.WARNING('\n--dry-run mode: No changes made.')
            )
            return

        expired = expire_stale_payments(older_than=cutoff)
        self.stdout.write(
            self.style.SUCCESS(f'\nExpired {expired} pending payment(s).')
        )
