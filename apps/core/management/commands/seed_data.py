"""
Seed management command.

Populates the database with a demo salon:
  - opening hours Tue–Sat (Sunday and Monday closed)
  - 5 services (cut, colour, blow-dry, beard trim, treatment)
  - 3 staff members with their capabilities and weekly working hours,
    one of them on a split shift
  - booking rules with a 10-minute buffer between appointments

Usage:
    python manage.py seed_data
    python manage.py seed_data --flush   # wipe and re-seed
"""
from datetime import time

from django.core.management.base import BaseCommand
from django.db import transaction

from apps.salons.models import BookingRules, OpeningHours, Salon
from apps.services.models import BookableService
from apps.staff.models import Staff, StaffWorkingHours

SALON_NAME = 'Salon Lumière'

SERVICES = [
    # name, duration, price_cents
    ('Haircut', 30, 4500),
    ('Colour', 60, 9500),
    ('Blow-dry', 20, 3000),
    ('Beard trim', 15, 2000),
    ('Scalp treatment', 25, 3500),
]

STAFF = [
    # name, services, weekly windows
    ('Anna', ['Haircut', 'Colour', 'Blow-dry', 'Scalp treatment'],
     [(day, time(9, 0), time(17, 0)) for day in (1, 2, 3, 4)]),
    ('Marco', ['Haircut', 'Beard trim', 'Blow-dry'],
     [(day, time(10, 0), time(14, 0)) for day in (1, 2, 3, 4, 5)]
     + [(day, time(15, 0), time(19, 0)) for day in (1, 2, 3, 4, 5)]),
    ('Lea', ['Colour', 'Blow-dry', 'Scalp treatment'],
     [(day, time(11, 0), time(19, 0)) for day in (3, 4, 5)]),
]


class Command(BaseCommand):
    help = 'Seed a demo salon with opening hours, services, staff and working hours'

    def add_arguments(self, parser):
        parser.add_argument(
            '--flush', action='store_true',
            help='Delete the demo salon and everything attached before creating fresh records',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        if options['flush']:
            self.stdout.write('Flushing existing demo data...')
            Salon.objects.filter(name=SALON_NAME).delete()

        self.stdout.write('Seeding salon...')
        salon, _ = Salon.objects.get_or_create(name=SALON_NAME, defaults={'timezone': 'Europe/Zurich'})
        BookingRules.objects.get_or_create(salon=salon, defaults={'buffer_between_minutes': 10})

        for weekday in range(7):
            closed = weekday in (0, 6)
            OpeningHours.objects.get_or_create(
                salon=salon, weekday=weekday,
                defaults={
                    'is_closed': closed,
                    'open_time': None if closed else time(9, 0),
                    'close_time': None if closed else time(19, 0),
                },
            )
        self.stdout.write(self.style.SUCCESS('  ✔ Salon and opening hours created (Tue–Sat, 09:00–19:00)'))

        self.stdout.write('Seeding services...')
        services = {}
        for name, duration, price in SERVICES:
            services[name], _ = BookableService.objects.get_or_create(
                salon=salon, name=name, duration_minutes=duration,
                defaults={'price_cents': price},
            )
        self.stdout.write(self.style.SUCCESS(f'  ✔ {len(services)} services created'))

        self.stdout.write('Seeding staff...')
        for name, offered, windows in STAFF:
            member, _ = Staff.objects.get_or_create(salon=salon, name=name)
            member.services.set([services[s] for s in offered])
            for weekday, start, end in windows:
                StaffWorkingHours.objects.get_or_create(
                    staff=member, weekday=weekday, start_time=start,
                    defaults={'end_time': end},
                )
        self.stdout.write(self.style.SUCCESS(f'  ✔ {len(STAFF)} staff members with working hours created'))

        self.stdout.write(self.style.SUCCESS(f'\n✅ Seed complete! Salon id: {salon.pk}'))
