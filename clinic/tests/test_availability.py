from datetime import date, datetime, timezone as dt_timezone

import pytest
from rest_framework.test import APIClient

from clinic.exceptions import InvalidArgument, NotFound
from clinic.models import Appointment
from clinic.services.availability import available_slots

from .factories import make_doctor, make_patient

pytestmark = pytest.mark.django_db

DAY = date(2024, 6, 1)
BEFORE_DAY = datetime(2024, 5, 31, 12, 0, tzinfo=dt_timezone.utc)
ALL_SLOTS = ['09:00', '10:00', '11:00', '12:00', '13:00', '14:00', '15:00', '16:00']


def _book(doctor, patient, hour, status=Appointment.STATUS_SCHEDULED):
    return Appointment.objects.create(
        doctor=doctor, patient=patient, status=status,
        appt_time=datetime(DAY.year, DAY.month, DAY.day, hour, tzinfo=dt_timezone.utc),
    )


def test_empty_day_lists_every_slot(doctor):
    assert available_slots(doctor.id, DAY, now=BEFORE_DAY) == ALL_SLOTS


def test_booked_slot_is_excluded_and_returns_after_cancel(doctor, patient):
    appt = _book(doctor, patient, 10)
    slots = available_slots(doctor.id, '2024-06-01', now=BEFORE_DAY)
    assert '10:00' not in slots
    assert '09:00' in slots and '11:00' in slots

    appt.status = Appointment.STATUS_CANCELLED
    appt.save()
    assert available_slots(doctor.id, '2024-06-01', now=BEFORE_DAY) == ALL_SLOTS


def test_completed_appointment_still_occupies_slot(doctor, patient):
    _book(doctor, patient, 15, status=Appointment.STATUS_COMPLETED)
    assert '15:00' not in available_slots(doctor.id, DAY, now=BEFORE_DAY)


def test_other_doctors_bookings_do_not_count(doctor, patient):
    other = make_doctor(username='doc2')
    _book(other, patient, 9)
    assert available_slots(doctor.id, DAY, now=BEFORE_DAY) == ALL_SLOTS


def test_past_day_is_empty(doctor):
    later = datetime(2024, 6, 2, 8, 0, tzinfo=dt_timezone.utc)
    assert available_slots(doctor.id, DAY, now=later) == []


def test_today_skips_slots_already_started(doctor):
    midday = datetime(2024, 6, 1, 12, 30, tzinfo=dt_timezone.utc)
    assert available_slots(doctor.id, DAY, now=midday) == ['13:00', '14:00', '15:00', '16:00']


def test_result_is_ascending_and_unique(doctor):
    patient_a = make_patient(username='pa')
    _book(doctor, patient_a, 12)
    slots = available_slots(doctor.id, DAY, now=BEFORE_DAY)
    assert slots == sorted(set(slots))


@pytest.mark.parametrize('value', ['2024/06/01', '01-06-2024', '2024-13-01', 'tomorrow', ''])
def test_bad_date_is_invalid_argument(doctor, value):
    with pytest.raises(InvalidArgument):
        available_slots(doctor.id, value, now=BEFORE_DAY)


def test_unknown_doctor_is_not_found(db):
    with pytest.raises(NotFound):
        available_slots(999, DAY, now=BEFORE_DAY)


def test_malformed_doctor_id_is_invalid_argument(db):
    with pytest.raises(InvalidArgument):
        available_slots('abc', DAY, now=BEFORE_DAY)


def test_endpoint_is_public_and_returns_labels(doctor):
    client = APIClient()
    r = client.get(f'/api/doctors/{doctor.id}/availability', {'date': '2999-01-01'})
    assert r.status_code == 200
    assert r.data == ALL_SLOTS


def test_endpoint_error_bodies(doctor):
    client = APIClient()
    r = client.get(f'/api/doctors/{doctor.id}/availability')
    assert r.status_code == 400
    assert r.data['ok'] is False
    assert r.data['error']['code'] == 'invalid_argument'

    r = client.get(f'/api/doctors/{doctor.id}/availability', {'date': '06/01/2024'})
    assert r.status_code == 400

    r = client.get('/api/doctors/4242/availability', {'date': '2999-01-01'})
    assert r.status_code == 404
    assert r.data['error']['code'] == 'not_found'
