"""
management command: sweep_expired_reservations

Deletes slot reservations whose expires_at has passed. Expired holds already
stop blocking availability the moment they expire; sweeping only keeps the
table small.

Run via OS cron every 5 minutes:
  */5 * * * *  /path/to/venv/bin/python manage.py sweep_expired_reservations
"""
from django.core.management.base import BaseCommand
from apps.bookings.reservations import sweep_expired


class Command(BaseCommand):
    help = 'Delete expired slot reservations'

    def handle(self, *args, **options):
        count = sweep_expired()
        self.stdout.write(
            self.style.SUCCESS(f'sweep_expired_reservations: deleted {count} expired reservations')
        )
