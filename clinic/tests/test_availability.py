import datetime as dt

import pytest
from django.test import override_settings
from rest_framework.test import APIClient

from clinic.models import AvailabilityException
from clinic.services.availability import AvailabilityChecker

pytestmark = pytest.mark.django_db

DAY = dt.date(2026, 6, 1)


def _client(user):
    c = APIClient()
    c.force_authenticate(user=user)
    return c


def test_no_exception_means_available(env):
    assert AvailabilityChecker().check(env.clinic.id, env.doctor.id, DAY) is True


def test_closed_exception_means_unavailable(env):
    AvailabilityChecker().create(env.clinic.id, env.doctor.id, DAY, is_available=False)
    assert AvailabilityChecker().check(env.clinic.id, env.doctor.id, DAY) is False
    assert AvailabilityChecker().check(env.clinic.id, env.doctor.id, DAY + dt.timedelta(days=1)) is True


def test_oldest_row_decides_when_duplicated(env):
    checker = AvailabilityChecker()
    checker.create(env.clinic.id, env.doctor.id, DAY, is_available=True)
    checker.create(env.clinic.id, env.doctor.id, DAY, is_available=False)
    assert checker.check(env.clinic.id, env.doctor.id, DAY) is True


def test_availability_endpoint(env):
    c = _client(env.nurse)
    r = c.get('/api/availability', {'doctorId': env.doctor.id, 'date': DAY.isoformat()})
    assert r.status_code == 200
    assert r.data == {'doctorId': env.doctor.id, 'date': '2026-06-01', 'available': True}


def test_availability_requires_both_params(env):
    r = _client(env.nurse).get('/api/availability', {'doctorId': env.doctor.id})
    assert r.status_code == 400
    assert r.data['field'] == 'date'


def test_bulk_block_then_unblock(env):
    c = _client(env.doctor)
    dates = ['2026-06-01', '2026-06-02', '2026-06-03']
    r = c.post('/api/availability-exceptions',
               {'doctorId': env.doctor.id, 'dates': dates, 'reason': 'Congresso'}, format='json')
    assert r.status_code == 201
    assert [e['date'] for e in r.data] == dates
    assert all(e['isAvailable'] is False for e in r.data)

    r = c.get('/api/availability-exceptions', {'doctorId': env.doctor.id})
    assert len(r.data) == 3

    r = c.post('/api/availability-exceptions/bulk-delete',
               {'doctorId': env.doctor.id, 'dates': dates[:2]}, format='json')
    assert r.status_code == 200
    assert r.data['deleted'] == 2
    assert AvailabilityException.objects.count() == 1


def test_open_exception_for_single_date(env):
    r = _client(env.operator).post('/api/availability-exceptions',
                                   {'doctorId': env.doctor.id, 'date': '2026-06-07', 'isAvailable': True},
                                   format='json')
    assert r.status_code == 201
    assert r.data[0]['isAvailable'] is True


def test_exception_needs_a_date(env):
    r = _client(env.operator).post('/api/availability-exceptions', {'doctorId': env.doctor.id}, format='json')
    assert r.status_code == 400


def test_delete_exception(env):
    row = AvailabilityChecker().create(env.clinic.id, env.doctor.id, DAY)
    c = _client(env.operator)
    assert c.delete(f'/api/availability-exceptions/{row.id}').status_code == 200
    assert c.delete(f'/api/availability-exceptions/{row.id}').status_code == 404


def test_nurse_cannot_manage_agenda(env):
    r = _client(env.nurse).post('/api/availability-exceptions',
                                {'doctorId': env.doctor.id, 'date': '2026-06-07'}, format='json')
    assert r.status_code == 403


@override_settings(CLINIC_ENFORCE_AVAILABILITY=False)
def test_closed_agenda_can_be_booked_when_not_enforced(env):
    AvailabilityChecker().create(env.clinic.id, env.doctor.id, DAY)
    r = _client(env.operator).post('/api/appointments', {
        'patientId': env.patient.id, 'doctorId': env.doctor.id,
        'date': DAY.isoformat(), 'startTime': '14:00',
    }, format='json')
    assert r.status_code == 201
    assert r.data['duration'] == 30
