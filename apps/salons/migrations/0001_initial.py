import django.core.validators
import django.db.models.deletion
import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Salon',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('name', models.CharField(max_length=120)),
                ('timezone', models.CharField(default='Europe/Zurich', help_text='IANA zone name; opening and working hours are wall-clock times in this zone.', max_length=64)),
                ('is_active', models.BooleanField(db_index=True, default=True)),
            ],
            options={
                'verbose_name': 'Salon',
                'verbose_name_plural': 'Salons',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='OpeningHours',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('weekday', models.IntegerField(choices=[(0, 'Monday'), (1, 'Tuesday'), (2, 'Wednesday'), (3, 'Thursday'), (4, 'Friday'), (5, 'Saturday'), (6, 'Sunday')])),
                ('open_time', models.TimeField(blank=True, null=True)),
                ('close_time', models.TimeField(blank=True, null=True)),
                ('is_closed', models.BooleanField(default=False)),
                ('salon', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='opening_hours', to='salons.salon')),
            ],
            options={
                'verbose_name': 'Opening Hours',
                'verbose_name_plural': 'Opening Hours',
                'ordering': ['weekday'],
                'unique_together': {('salon', 'weekday')},
            },
        ),
        migrations.CreateModel(
            name='BookingRules',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('slot_granularity_minutes', models.PositiveIntegerField(default=15, help_text='Grid on which start times are offered (e.g. 15 or 30).', validators=[django.core.validators.MinValueValidator(1)])),
                ('lead_time_minutes', models.PositiveIntegerField(default=60, help_text='Minimum notice before a booking may start.')),
                ('horizon_days', models.PositiveIntegerField(default=30, help_text='How many days ahead customers may book.')),
                ('buffer_between_minutes', models.PositiveIntegerField(default=0, help_text='Idle time kept free around every appointment.')),
                ('cancellation_deadline_hours', models.PositiveIntegerField(default=24, help_text='Customers may cancel until this many hours before the start.')),
                ('salon', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='booking_rules', to='salons.salon')),
            ],
            options={
                'verbose_name': 'Booking Rules',
                'verbose_name_plural': 'Booking Rules',
            },
        ),
    ]
