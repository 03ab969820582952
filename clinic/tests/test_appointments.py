"""
Integration tests for the appointment API.

Covers listing filters, the booking policy, check-in, the transition
table and access control.  Run with ``pytest clinic/tests``.
"""
import datetime as dt

import pytest
from django.test import override_settings
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from clinic.models import Appointment, AppointmentTransition, AvailabilityException, Patient
from clinic.services.appointments import AppointmentFilters, AppointmentStore
from clinic.tests.helpers import make_appointment, make_clinic

D1 = dt.date(2026, 5, 4)
D2 = dt.date(2026, 5, 5)
D3 = dt.date(2026, 5, 6)


class AppointmentAPITests(APITestCase):
    def setUp(self) -> None:
        self.env = make_clinic()
        self.other = make_clinic('Outra Clínica')

    def authenticate(self, user) -> None:
        self.client.force_authenticate(user=user)

    def booking(self, **overrides):
        body = {
            'patientId': self.env.patient.id,
            'doctorId': self.env.doctor.id,
            'date': D1.isoformat(),
            'startTime': '09:00',
            'duration': 30,
        }
        body.update(overrides)
        return body

    def test_list_excludes_canceled_without_status_filter(self):
        make_appointment(self.env, D1, dt.time(9, 0))
        make_appointment(self.env, D1, dt.time(10, 0), status=Appointment.Status.CANCELED)
        self.authenticate(self.env.operator)
        resp = self.client.get('/api/appointments', {'date': D1.isoformat()})
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual([a['startTime'] for a in resp.data], ['09:00'])
        self.assertNotIn('cancelado', {a['status'] for a in resp.data})

    def test_date_range_is_inclusive_and_newest_first(self):
        a = make_appointment(self.env, D1, dt.time(9, 0))
        b = make_appointment(self.env, D1, dt.time(10, 0))
        c = make_appointment(self.env, D2, dt.time(8, 0))
        make_appointment(self.env, D3, dt.time(8, 0))
        self.authenticate(self.env.operator)
        resp = self.client.get('/api/appointments', {'startDate': D1.isoformat(), 'endDate': D2.isoformat()})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([x['id'] for x in resp.data], [c.id, b.id, a.id])
        self.assertEqual(resp.data[0]['patient']['name'], 'Carlos Souza')

    def test_listing_is_scoped_to_the_callers_clinic(self):
        make_appointment(self.other, D1, dt.time(9, 0))
        self.authenticate(self.env.operator)
        resp = self.client.get('/api/appointments')
        self.assertEqual(resp.data, [])

    def test_booking_returns_camel_case_payload(self):
        self.authenticate(self.env.operator)
        resp = self.client.post('/api/appointments', self.booking(notes='<b>retorno</b>'), format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data['startTime'], '09:00')
        self.assertEqual(resp.data['status'], 'agendado')
        self.assertEqual(resp.data['paymentStatus'], 'pendente')
        self.assertEqual(resp.data['price'], 15000)
        self.assertEqual(resp.data['notes'], 'retorno')

    def test_overlapping_booking_is_rejected_by_default(self):
        make_appointment(self.env, D1, dt.time(9, 0), duration=30)
        self.authenticate(self.env.operator)
        resp = self.client.post('/api/appointments', self.booking(startTime='09:15'), format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(resp.data['ok'])
        self.assertEqual(resp.data['error']['code'], 'scheduling_conflict')
        self.assertEqual(Appointment.objects.count(), 1)

    def test_back_to_back_bookings_do_not_overlap(self):
        make_appointment(self.env, D1, dt.time(9, 0), duration=30)
        self.authenticate(self.env.operator)
        resp = self.client.post('/api/appointments', self.booking(startTime='09:30'), format='json')
        self.assertEqual(resp.status_code, 201)

    def test_canceled_slot_can_be_booked_again(self):
        make_appointment(self.env, D1, dt.time(9, 0), status=Appointment.Status.CANCELED)
        self.authenticate(self.env.operator)
        resp = self.client.post('/api/appointments', self.booking(), format='json')
        self.assertEqual(resp.status_code, 201)

    @override_settings(CLINIC_OVERLAP_POLICY='allow')
    def test_overlap_allowed_when_policy_is_allow(self):
        make_appointment(self.env, D1, dt.time(9, 0), duration=30)
        self.authenticate(self.env.operator)
        resp = self.client.post('/api/appointments', self.booking(startTime='09:15'), format='json')
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(Appointment.objects.filter(date=D1).count(), 2)

    def test_booking_on_closed_agenda_is_rejected(self):
        AvailabilityException.objects.create(
            clinic=self.env.clinic, doctor=self.env.doctor, date=D1, is_available=False,
        )
        self.authenticate(self.env.operator)
        resp = self.client.post('/api/appointments', self.booking(), format='json')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data['error']['code'], 'agenda_closed')

    def test_patient_from_another_clinic_is_rejected(self):
        self.authenticate(self.env.operator)
        resp = self.client.post(
            '/api/appointments', self.booking(patientId=self.other.patient.id), format='json'
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data['field'], 'patientId')

    def test_missing_field_reports_first_error(self):
        self.authenticate(self.env.operator)
        body = self.booking()
        del body['date']
        resp = self.client.post('/api/appointments', body, format='json')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data['field'], 'date')
        self.assertTrue(resp.data['message'])

    def test_moving_into_an_occupied_slot_is_rejected(self):
        make_appointment(self.env, D1, dt.time(9, 0))
        later = make_appointment(self.env, D1, dt.time(11, 0))
        self.authenticate(self.env.operator)
        resp = self.client.put(f'/api/appointments/{later.id}', {'startTime': '09:10'}, format='json')
        self.assertEqual(resp.status_code, 400)
        resp = self.client.put(f'/api/appointments/{later.id}', {'startTime': '11:30', 'notes': 'x'},
                               format='json')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['startTime'], '11:30')

    def test_editing_notes_does_not_recheck_own_slot(self):
        appt = make_appointment(self.env, D1, dt.time(9, 0))
        self.authenticate(self.env.doctor)
        resp = self.client.put(f'/api/appointments/{appt.id}', {'notes': 'jejum'}, format='json')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['notes'], 'jejum')

    def test_check_in_persists_payment_with_status(self):
        appt = make_appointment(self.env, D1, dt.time(9, 0))
        self.authenticate(self.env.operator)
        resp = self.client.patch(
            f'/api/appointments/{appt.id}/status',
            {'status': 'presente', 'paymentMethod': 'pix', 'paymentStatus': 'pago', 'price': 20000},
            format='json',
        )
        self.assertEqual(resp.status_code, 200)
        appt.refresh_from_db()
        self.assertEqual(appt.status, 'presente')
        self.assertEqual(appt.payment_method, 'pix')
        self.assertEqual(appt.payment_status, 'pago')
        self.assertEqual(appt.price, 20000)
        t = AppointmentTransition.objects.get(appointment=appt)
        self.assertEqual((t.from_status, t.to_status, t.reason), ('agendado', 'presente', 'Check-in'))
        self.assertEqual(t.operator, self.env.operator)

    def test_nurse_can_move_status_but_not_take_payment(self):
        appt = make_appointment(self.env, D1, dt.time(9, 0))
        self.authenticate(self.env.nurse)
        resp = self.client.patch(
            f'/api/appointments/{appt.id}/status',
            {'status': 'presente', 'paymentMethod': 'pix', 'paymentStatus': 'pago'},
            format='json',
        )
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        resp = self.client.patch(f'/api/appointments/{appt.id}/status', {'status': 'presente'}, format='json')
        self.assertEqual(resp.status_code, 200)

    def test_illegal_transition_is_rejected(self):
        appt = make_appointment(self.env, D1, dt.time(9, 0), status=Appointment.Status.COMPLETED)
        self.authenticate(self.env.operator)
        resp = self.client.patch(f'/api/appointments/{appt.id}/status', {'status': 'agendado'}, format='json')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data['error']['code'], 'illegal_transition')
        appt.refresh_from_db()
        self.assertEqual(appt.status, 'finalizado')
        self.assertFalse(AppointmentTransition.objects.exists())

    def test_transition_history_is_returned_in_order(self):
        appt = make_appointment(self.env, D1, dt.time(9, 0))
        self.authenticate(self.env.operator)
        for target in ('confirmado', 'presente', 'em_atendimento'):
            resp = self.client.patch(f'/api/appointments/{appt.id}/status', {'status': target}, format='json')
            self.assertEqual(resp.status_code, 200)
        resp = self.client.get(f'/api/appointments/{appt.id}/transitions')
        self.assertEqual([(t['from'], t['to']) for t in resp.data], [
            ('agendado', 'confirmado'), ('confirmado', 'presente'), ('presente', 'em_atendimento'),
        ])

    def test_triage_marks_appointment(self):
        appt = make_appointment(self.env, D1, dt.time(9, 0))
        self.authenticate(self.env.nurse)
        resp = self.client.patch(
            f'/api/appointments/{appt.id}/triage',
            {'bloodPressure': '120/80', 'temperature': '36.5', 'notes': 'ok'},
            format='json',
        )
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.data['triageDone'])
        self.assertEqual(resp.data['triageData']['bloodPressure'], '120/80')

    def test_triage_is_rejected_on_closed_appointments(self):
        done = make_appointment(self.env, D1, dt.time(9, 0), status=Appointment.Status.COMPLETED)
        dropped = make_appointment(self.env, D1, dt.time(10, 0), status=Appointment.Status.CANCELED)
        self.authenticate(self.env.nurse)
        for appt in (done, dropped):
            resp = self.client.patch(f'/api/appointments/{appt.id}/triage', {'weight': '70'}, format='json')
            self.assertEqual(resp.status_code, 400)
            appt.refresh_from_db()
            self.assertFalse(appt.triage_done)

    def test_anonymous_calls_get_401(self):
        client = APIClient()
        resp = client.get('/api/appointments')
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(resp.data['ok'])

    def test_capabilities_gate_each_action(self):
        appt = make_appointment(self.env, D1, dt.time(9, 0))
        self.authenticate(self.env.nurse)
        self.assertEqual(self.client.post('/api/appointments', self.booking(), format='json').status_code, 403)
        self.authenticate(self.env.doctor)
        self.assertEqual(self.client.delete(f'/api/appointments/{appt.id}').status_code, 403)
        self.authenticate(self.env.operator)
        self.assertEqual(self.client.patch(f'/api/appointments/{appt.id}/triage', {}, format='json').status_code,
                         403)
        self.assertEqual(self.client.delete(f'/api/appointments/{appt.id}').status_code, 200)
        self.assertFalse(Appointment.objects.filter(id=appt.id).exists())

    def test_other_clinics_appointment_is_not_found(self):
        appt = make_appointment(self.other, D1, dt.time(9, 0))
        self.authenticate(self.env.operator)
        resp = self.client.patch(f'/api/appointments/{appt.id}/status', {'status': 'confirmado'}, format='json')
        self.assertEqual(resp.status_code, 404)


pytestmark = pytest.mark.django_db


def test_store_accepts_overlapping_bookings(env):
    store = AppointmentStore()
    base = {'patient_id': env.patient.id, 'doctor_id': env.doctor.id, 'date': D1, 'duration': 30}
    store.create(env.clinic.id, {**base, 'start_time': dt.time(9, 0)})
    store.create(env.clinic.id, {**base, 'start_time': dt.time(9, 0)})
    assert len(store.list(env.clinic.id, AppointmentFilters(date=D1))) == 2
    assert len(store.find_overlaps(env.clinic.id, env.doctor.id, D1, dt.time(9, 10), 10)) == 2


def test_store_range_needs_both_bounds(env):
    make_appointment(env, D1, dt.time(9, 0))
    make_appointment(env, D3, dt.time(9, 0))
    store = AppointmentStore()
    assert len(store.list(env.clinic.id, AppointmentFilters(start_date=D2))) == 2
    assert len(store.list(env.clinic.id, AppointmentFilters(start_date=D2, end_date=D3))) == 1


def test_store_never_lists_canceled_even_when_filtered(env):
    make_appointment(env, D1, dt.time(9, 0), status=Appointment.Status.CANCELED)
    store = AppointmentStore()
    assert store.list(env.clinic.id) == []
    assert len(store.list(env.clinic.id, AppointmentFilters(status='cancelado'))) == 0


def test_deleting_patient_cascades_to_appointments(env):
    make_appointment(env, D1, dt.time(9, 0))
    Patient.objects.filter(id=env.patient.id).delete()
    assert not Appointment.objects.exists()
