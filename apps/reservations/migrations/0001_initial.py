# Generated manually for the reservations app

from decimal import Decimal
import uuid

from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Reservation',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('venue_name', models.CharField(max_length=200)),
                ('venue_image', models.URLField(blank=True, max_length=500)),
                ('event_date', models.DateTimeField()),
                ('description', models.TextField(blank=True)),
                ('total_cost', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('status', models.CharField(choices=[('active', 'Active'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='active', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='owned_reservations', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'reservations',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['owner', 'created_at'], name='reservation_owner_idx'),
                    models.Index(fields=['status'], name='reservation_status_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('total_cost__gt', 0)), name='reservation_total_cost_positive'),
                ],
            },
        ),
    ]
