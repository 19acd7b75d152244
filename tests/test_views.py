"""
JSON endpoints. Views run on the real clock, so bookings target the next
Monday at least two days ahead (staff fixtures work every Monday).
"""
import json
import uuid
from datetime import timedelta

import pytest
from django.urls import reverse
from django.utils import timezone

from apps.bookings.models import Appointment, SlotReservation

from .conftest import at

pytestmark = pytest.mark.django_db


def upcoming_monday():
    today = timezone.localdate()
    days = (7 - today.weekday()) % 7
    if days < 2:
        days += 7
    return today + timedelta(days=days)


def post_json(client, url, payload=None):
    return client.post(url, data=json.dumps(payload or {}), content_type='application/json')


@pytest.fixture
def monday():
    return upcoming_monday()


@pytest.fixture
def hold_payload(anna, haircut, monday):
    return {
        'staff_id': str(anna.pk),
        'starts_at': at(monday, 14).isoformat(),
        'ends_at': at(monday, 14, 30).isoformat(),
        'services': [str(haircut.pk)],
        'holder_key': 'clara-browser',
    }


class TestSlotsEndpoint:

    def test_returns_slots_grouped_by_date(self, client, salon, anna, haircut, monday):
        url = reverse('bookings:slots', args=[salon.pk])
        response = client.get(url, {'from': monday.isoformat(), 'to': monday.isoformat(), 'services': str(haircut.pk)})

        assert response.status_code == 200
        data = response.json()
        assert [d['date'] for d in data['days']] == [monday.isoformat()]
        first = data['days'][0]['slots'][0]
        assert first['staff_name'] == 'Anna'
        assert first['starts_at'] == at(monday, 9).isoformat()
        assert first['total_duration'] == 30

    def test_to_defaults_to_from(self, client, salon, anna, haircut, monday):
        url = reverse('bookings:slots', args=[salon.pk])
        response = client.get(url, {'from': monday.isoformat(), 'services': str(haircut.pk)})
        assert response.json()['to'] == monday.isoformat()

    def test_bad_date(self, client, salon, haircut):
        url = reverse('bookings:slots', args=[salon.pk])
        response = client.get(url, {'from': '07.01.2030', 'services': str(haircut.pk)})
        assert response.status_code == 400
        assert response.json()['error'] == 'VALIDATION_ERROR'
        assert response.json()['fields'] == {'from': 'invalid'}

    def test_missing_services(self, client, salon, anna, monday):
        url = reverse('bookings:slots', args=[salon.pk])
        response = client.get(url, {'from': monday.isoformat()})
        assert response.status_code == 400
        assert response.json()['fields'] == {'services': 'required'}

    def test_beyond_horizon(self, client, salon, anna, haircut, monday):
        url = reverse('bookings:slots', args=[salon.pk])
        far = (monday + timedelta(days=60)).isoformat()
        response = client.get(url, {'from': far, 'services': str(haircut.pk)})
        assert response.status_code == 400
        assert response.json()['error'] == 'OUTSIDE_BOOKING_WINDOW'

    def test_reversed_range(self, client, salon, anna, haircut, monday):
        url = reverse('bookings:slots', args=[salon.pk])
        response = client.get(url, {
            'from': (monday + timedelta(days=2)).isoformat(), 'to': monday.isoformat(), 'services': str(haircut.pk),
        })
        assert response.status_code == 400
        assert response.json()['fields'] == {'from': 'after_to'}

    def test_last_representable_date(self, client, salon, anna, haircut, monday):
        url = reverse('bookings:slots', args=[salon.pk])
        response = client.get(url, {'from': monday.isoformat(), 'to': '9999-12-31', 'services': str(haircut.pk)})
        assert response.status_code == 400
        assert response.json()['error'] == 'OUTSIDE_BOOKING_WINDOW'

    def test_unknown_salon(self, client, db, monday):
        url = reverse('bookings:slots', args=[uuid.uuid4()])
        response = client.get(url, {'from': monday.isoformat(), 'services': str(uuid.uuid4())})
        assert response.status_code == 400
        assert response.json()['fields'] == {'salon': 'unknown'}

    def test_post_not_allowed(self, client, salon):
        assert client.post(reverse('bookings:slots', args=[salon.pk])).status_code == 405


class TestHoldEndpoint:

    def test_hold_then_conflict(self, client, hold_payload):
        url = reverse('bookings:hold')
        first = post_json(client, url, hold_payload)
        second = post_json(client, url, dict(hold_payload, holder_key='someone-else'))

        assert first.status_code == 201
        assert first.json()['holder_key'] == 'clara-browser'
        assert second.status_code == 409
        assert second.json()['error'] == 'SLOT_ALREADY_TAKEN'
        assert 'pick another time' in second.json()['message']

    def test_session_key_is_the_default_holder(self, client, hold_payload):
        del hold_payload['holder_key']
        response = post_json(client, reverse('bookings:hold'), hold_payload)
        assert response.status_code == 201
        assert response.json()['holder_key'] == client.session.session_key

    def test_invalid_json(self, client, db):
        response = client.post(reverse('bookings:hold'), data='{nope', content_type='application/json')
        assert response.status_code == 400

    def test_naive_datetime_rejected(self, client, hold_payload):
        hold_payload['starts_at'] = hold_payload['starts_at'][:19]
        response = post_json(client, reverse('bookings:hold'), hold_payload)
        assert response.status_code == 400
        assert response.json()['fields'] == {'starts_at': 'invalid'}

    def test_impossible_datetime_rejected(self, client, hold_payload):
        hold_payload['starts_at'] = '2030-13-45T10:00:00+01:00'
        response = post_json(client, reverse('bookings:hold'), hold_payload)
        assert response.status_code == 400
        assert response.json()['fields'] == {'starts_at': 'invalid'}

    def test_reversed_range_rejected(self, client, hold_payload):
        hold_payload['starts_at'], hold_payload['ends_at'] = hold_payload['ends_at'], hold_payload['starts_at']
        response = post_json(client, reverse('bookings:hold'), hold_payload)
        assert response.status_code == 400
        assert response.json()['error'] == 'VALIDATION_ERROR'

    def test_staff_unavailable_is_conflict(self, client, hold_payload, anna):
        anna.is_bookable = False
        anna.save()
        response = post_json(client, reverse('bookings:hold'), hold_payload)
        assert response.status_code == 409
        assert response.json()['error'] == 'STAFF_UNAVAILABLE'


class TestReleaseEndpoint:

    def test_release_is_idempotent(self, client, hold_payload):
        reservation_id = post_json(client, reverse('bookings:hold'), hold_payload).json()['reservation_id']
        url = reverse('bookings:release', args=[reservation_id])

        assert post_json(client, url, {'holder_key': 'clara-browser'}).status_code == 204
        assert post_json(client, url, {'holder_key': 'clara-browser'}).status_code == 204
        assert not SlotReservation.objects.exists()

    def test_other_holder_cannot_release(self, client, hold_payload):
        reservation_id = post_json(client, reverse('bookings:hold'), hold_payload).json()['reservation_id']
        url = reverse('bookings:release', args=[reservation_id])
        assert post_json(client, url, {'holder_key': 'mallory'}).status_code == 204
        assert SlotReservation.objects.filter(pk=reservation_id).exists()


class TestConfirmEndpoint:

    def test_confirm(self, client, hold_payload):
        reservation_id = post_json(client, reverse('bookings:hold'), hold_payload).json()['reservation_id']
        response = post_json(client, reverse('bookings:confirm', args=[reservation_id]), {
            'holder_key': 'clara-browser',
            'customer': {'name': 'Clara Keller', 'phone': '+41 79 123 45 67', 'email': 'clara@example.com'},
            'payment_method': 'ONLINE',
            'payment_reference': 'pay_42',
        })

        assert response.status_code == 201
        data = response.json()
        assert data['payment_status'] == 'PAID'
        assert data['booking_number'].startswith('SB-')
        assert Appointment.objects.filter(pk=data['appointment_id']).exists()

    def test_expired_reservation_is_gone(self, client, salon, anna, monday):
        reservation = SlotReservation.objects.create(
            salon=salon, staff=anna, starts_at=at(monday, 14), ends_at=at(monday, 14, 30),
            holder_key='clara-browser', expires_at=timezone.now() - timedelta(minutes=1),
        )
        response = post_json(client, reverse('bookings:confirm', args=[reservation.pk]), {
            'holder_key': 'clara-browser',
            'customer': {'name': 'Clara', 'phone': '+41791234567'},
            'payment_method': 'AT_VENUE',
        })
        assert response.status_code == 410
        assert response.json()['error'] == 'RESERVATION_EXPIRED'

    def test_invalid_customer(self, client, hold_payload):
        reservation_id = post_json(client, reverse('bookings:hold'), hold_payload).json()['reservation_id']
        response = post_json(client, reverse('bookings:confirm', args=[reservation_id]), {
            'holder_key': 'clara-browser',
            'customer': {'name': 'Clara'},
            'payment_method': 'AT_VENUE',
        })
        assert response.status_code == 400
        assert 'phone' in response.json()['fields']


class TestCancelEndpoint:

    def test_cancel(self, client, hold_payload):
        reservation_id = post_json(client, reverse('bookings:hold'), hold_payload).json()['reservation_id']
        confirmed = post_json(client, reverse('bookings:confirm', args=[reservation_id]), {
            'holder_key': 'clara-browser',
            'customer': {'name': 'Clara', 'phone': '+41791234567'},
            'payment_method': 'AT_VENUE',
        }).json()

        response = post_json(client, reverse('bookings:cancel', args=[confirmed['appointment_id']]), {'reason': 'Ill'})
        assert response.status_code == 200
        assert response.json()['status'] == 'CANCELLED'
