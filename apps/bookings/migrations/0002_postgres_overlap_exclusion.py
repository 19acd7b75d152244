"""
Migration: forbid overlapping live reservations and appointments per staff
member at the database level.

PostgreSQL only (needs btree_gist); other backends keep the unique slot_key
and the partial unique constraint on (staff, starts_at).
"""
from django.db import migrations

FORWARD = [
    'CREATE EXTENSION IF NOT EXISTS btree_gist',
    """
    ALTER TABLE bookings_slotreservation
      ADD CONSTRAINT excl_reservation_overlap
      EXCLUDE USING gist (staff_id WITH =, tstzrange(starts_at, ends_at, '[)') WITH &&)
    """,
    """
    ALTER TABLE bookings_appointment
      ADD CONSTRAINT excl_appointment_overlap
      EXCLUDE USING gist (staff_id WITH =, tstzrange(starts_at, ends_at, '[)') WITH &&)
      WHERE (status <> 'CANCELLED')
    """,
]

BACKWARD = [
    'ALTER TABLE bookings_appointment DROP CONSTRAINT IF EXISTS excl_appointment_overlap',
    'ALTER TABLE bookings_slotreservation DROP CONSTRAINT IF EXISTS excl_reservation_overlap',
]


def _run(statements):
    def run(apps, schema_editor):
        if schema_editor.connection.vendor != 'postgresql':
            return
        for sql in statements:
            schema_editor.execute(sql)
    return run


class Migration(migrations.Migration):

    dependencies = [
        ('bookings', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(_run(FORWARD), _run(BACKWARD)),
    ]
