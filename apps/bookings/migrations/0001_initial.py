import django.db.models.deletion
import django.utils.timezone
import uuid
from django.db import migrations, models

APPOINTMENT_STATUSES = [('CONFIRMED', 'Confirmed'), ('COMPLETED', 'Completed'), ('CANCELLED', 'Cancelled'), ('NO_SHOW', 'No-show')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('customers', '0001_initial'),
        ('salons', '0001_initial'),
        ('services', '0001_initial'),
        ('staff', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='SlotReservation',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('slot_key', models.CharField(max_length=160, unique=True)),
                ('starts_at', models.DateTimeField(db_index=True)),
                ('ends_at', models.DateTimeField()),
                ('holder_key', models.CharField(db_index=True, help_text='Opaque session/holder identifier supplied by the caller', max_length=64)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('expires_at', models.DateTimeField(db_index=True)),
                ('customer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='reservations', to='customers.customer')),
                ('salon', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='reservations', to='salons.salon')),
                ('staff', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='reservations', to='staff.staff')),
            ],
            options={
                'verbose_name': 'Slot Reservation',
                'verbose_name_plural': 'Slot Reservations',
                'ordering': ['starts_at'],
            },
        ),
        migrations.CreateModel(
            name='ReservationService',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('position', models.PositiveSmallIntegerField(default=0)),
                ('reservation', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='service_lines', to='bookings.slotreservation')),
                ('service', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='+', to='services.bookableservice')),
            ],
            options={
                'ordering': ['position'],
                'unique_together': {('reservation', 'position')},
            },
        ),
        migrations.AddField(
            model_name='slotreservation',
            name='services',
            field=models.ManyToManyField(blank=True, related_name='+', through='bookings.ReservationService', to='services.bookableservice'),
        ),
        migrations.CreateModel(
            name='Appointment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('booking_number', models.CharField(max_length=32, unique=True)),
                ('starts_at', models.DateTimeField(db_index=True)),
                ('ends_at', models.DateTimeField()),
                ('duration_minutes', models.PositiveIntegerField()),
                ('status', models.CharField(choices=APPOINTMENT_STATUSES, db_index=True, default='CONFIRMED', max_length=20)),
                ('payment_method', models.CharField(choices=[('ONLINE', 'Online'), ('AT_VENUE', 'Pay at venue')], max_length=10)),
                ('payment_status', models.CharField(choices=[('PENDING', 'Pending'), ('PAID', 'Paid')], default='PENDING', max_length=10)),
                ('payment_reference', models.CharField(blank=True, help_text='Reference of the verified payment returned by the payment provider', max_length=100)),
                ('total_cents', models.PositiveIntegerField(default=0)),
                ('customer_name', models.CharField(max_length=120)),
                ('customer_email', models.EmailField(blank=True, max_length=254)),
                ('customer_phone', models.CharField(blank=True, max_length=20)),
                ('notes', models.TextField(blank=True)),
                ('confirmed_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('customer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='appointments', to='customers.customer')),
                ('salon', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='appointments', to='salons.salon')),
                ('staff', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='appointments', to='staff.staff')),
            ],
            options={
                'verbose_name': 'Appointment',
                'verbose_name_plural': 'Appointments',
                'ordering': ['-starts_at'],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status', 'CANCELLED'), _negated=True), fields=('staff', 'starts_at'), name='uq_live_appointment_slot'),
                ],
            },
        ),
        migrations.CreateModel(
            name='AppointmentService',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('service_name', models.CharField(max_length=150)),
                ('duration_minutes', models.PositiveIntegerField()),
                ('price_cents', models.PositiveIntegerField()),
                ('position', models.PositiveSmallIntegerField(default=0)),
                ('appointment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='service_lines', to='bookings.appointment')),
                ('service', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='services.bookableservice')),
            ],
            options={
                'ordering': ['position'],
            },
        ),
        migrations.CreateModel(
            name='AppointmentStatusLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('from_status', models.CharField(blank=True, choices=APPOINTMENT_STATUSES, max_length=20)),
                ('to_status', models.CharField(choices=APPOINTMENT_STATUSES, max_length=20)),
                ('changed_by', models.CharField(help_text='customer / staff / system', max_length=80)),
                ('reason', models.TextField(blank=True)),
                ('changed_at', models.DateTimeField(auto_now_add=True)),
                ('appointment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='status_logs', to='bookings.appointment')),
            ],
            options={
                'verbose_name': 'Appointment Status Log',
                'verbose_name_plural': 'Appointment Status Logs',
                'ordering': ['changed_at'],
            },
        ),
    ]
