"""
Medical record tests, focused on the record → appointment cascade.

A finalized record completes its appointment in the same transaction;
when the appointment cannot be completed neither write is kept.
"""
import datetime as dt

import pytest
from rest_framework.test import APITestCase

from clinic.exceptions import IllegalTransition
from clinic.models import Appointment, AppointmentTransition, MedicalRecord, MedicalRecordLog
from clinic.services.status import default_handler
from clinic.tests.helpers import make_appointment, make_clinic

DAY = dt.date(2026, 5, 4)


class MedicalRecordAPITests(APITestCase):
    def setUp(self) -> None:
        self.env = make_clinic()
        self.appt = make_appointment(self.env, DAY, dt.time(9, 0), status=Appointment.Status.IN_PROGRESS)
        self.client.force_authenticate(user=self.env.doctor)

    def record(self, **overrides):
        body = {
            'patientId': self.env.patient.id,
            'appointmentId': self.appt.id,
            'chiefComplaint': 'Dor de cabeça',
            'diagnosis': 'Cefaleia tensional',
            'vitals': {'bloodPressure': '120/80', 'heartRate': '72'},
        }
        body.update(overrides)
        return body

    def test_finalized_record_completes_appointment(self):
        resp = self.client.post('/api/medical-records', self.record(status='finalizado'), format='json')
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data['status'], 'finalizado')
        self.assertIsNotNone(resp.data['finalizedAt'])
        self.appt.refresh_from_db()
        self.assertEqual(self.appt.status, 'finalizado')
        t = AppointmentTransition.objects.get(appointment=self.appt)
        self.assertEqual((t.from_status, t.to_status), ('em_atendimento', 'finalizado'))

    def test_record_defaults_to_final(self):
        resp = self.client.post('/api/medical-records', self.record(), format='json')
        self.assertEqual(resp.status_code, 201)
        self.appt.refresh_from_db()
        self.assertEqual(self.appt.status, 'finalizado')

    def test_draft_leaves_appointment_open_until_finalized(self):
        resp = self.client.post('/api/medical-records', self.record(status='rascunho'), format='json')
        self.assertEqual(resp.status_code, 201)
        self.appt.refresh_from_db()
        self.assertEqual(self.appt.status, 'em_atendimento')

        rid = resp.data['id']
        resp = self.client.put(f'/api/medical-records/{rid}', {'status': 'finalizado'}, format='json')
        self.assertEqual(resp.status_code, 200)
        self.appt.refresh_from_db()
        self.assertEqual(self.appt.status, 'finalizado')
        actions = list(MedicalRecordLog.objects.filter(record_id=rid).order_by('id').values_list('action', flat=True))
        self.assertEqual(actions, ['create', 'update', 'finalize'])

    def test_canceled_appointment_rolls_back_record(self):
        Appointment.objects.filter(id=self.appt.id).update(status=Appointment.Status.CANCELED)
        resp = self.client.post('/api/medical-records', self.record(status='finalizado'), format='json')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data['error']['code'], 'illegal_transition')
        self.assertFalse(MedicalRecord.objects.exists())
        self.assertFalse(MedicalRecordLog.objects.exists())

    def test_final_record_cannot_return_to_draft(self):
        rid = self.client.post('/api/medical-records', self.record(), format='json').data['id']
        resp = self.client.put(f'/api/medical-records/{rid}', {'status': 'rascunho'}, format='json')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data['field'], 'status')

    def test_only_final_records_can_be_signed(self):
        draft = self.client.post('/api/medical-records', self.record(status='rascunho'), format='json').data
        resp = self.client.post(f"/api/medical-records/{draft['id']}/sign", {'signatureHash': 'abc'}, format='json')
        self.assertEqual(resp.status_code, 400)
        self.client.put(f"/api/medical-records/{draft['id']}", {'status': 'finalizado'}, format='json')
        resp = self.client.post(f"/api/medical-records/{draft['id']}/sign", {'signatureHash': 'abc'}, format='json')
        self.assertEqual(resp.status_code, 201)
        logs = self.client.get(f"/api/medical-records/{draft['id']}/logs").data
        self.assertEqual(logs[0]['action'], 'sign')

    def test_patient_history_lists_records(self):
        self.client.post('/api/medical-records', self.record(), format='json')
        self.client.force_authenticate(user=self.env.nurse)
        for url in (f'/api/patients/{self.env.patient.id}/records',
                    f'/api/medical-records/patient/{self.env.patient.id}'):
            resp = self.client.get(url)
            self.assertEqual(resp.status_code, 200)
            self.assertEqual(len(resp.data), 1)
            self.assertEqual(resp.data[0]['vitals']['bloodPressure'], '120/80')

    def test_nurse_and_operator_cannot_write_records(self):
        for user in (self.env.nurse, self.env.operator):
            self.client.force_authenticate(user=user)
            resp = self.client.post('/api/medical-records', self.record(), format='json')
            self.assertEqual(resp.status_code, 403)

    def test_appointment_of_another_patient_is_rejected(self):
        other = make_clinic('Outra')
        resp = self.client.post('/api/medical-records', self.record(patientId=other.patient.id), format='json')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data['field'], 'patientId')


pytestmark = pytest.mark.django_db


def test_handler_rolls_back_record_on_illegal_cascade(env):
    appt = make_appointment(env, DAY, dt.time(9, 0), status=Appointment.Status.CANCELED)
    with pytest.raises(IllegalTransition):
        default_handler().create_record(env.clinic.id, {
            'patient_id': env.patient.id, 'doctor': env.doctor, 'appointment_id': appt.id,
            'status': MedicalRecord.STATUS_FINAL,
        }, operator=env.doctor)
    assert MedicalRecord.objects.count() == 0


def test_handler_completes_scheduled_appointment(env):
    appt = make_appointment(env, DAY, dt.time(9, 0))
    default_handler().create_record(env.clinic.id, {
        'patient_id': env.patient.id, 'doctor': env.doctor, 'appointment_id': appt.id,
    }, operator=env.doctor)
    appt.refresh_from_db()
    assert appt.status == Appointment.Status.COMPLETED


@pytest.mark.parametrize('start', [Appointment.Status.NO_SHOW, Appointment.Status.RESCHEDULED])
def test_handler_completes_late_or_rescheduled_appointment(env, start):
    appt = make_appointment(env, DAY, dt.time(9, 0), status=start)
    record = default_handler().create_record(env.clinic.id, {
        'patient_id': env.patient.id, 'doctor': env.doctor, 'appointment_id': appt.id, 'status': 'finalizado',
    }, operator=env.doctor)
    appt.refresh_from_db()
    assert appt.status == Appointment.Status.COMPLETED
    assert MedicalRecord.objects.filter(id=record.id).exists()


def test_deleting_appointment_keeps_record(env):
    appt = make_appointment(env, DAY, dt.time(9, 0))
    record = default_handler().create_record(env.clinic.id, {
        'patient_id': env.patient.id, 'doctor': env.doctor, 'appointment_id': appt.id,
    }, operator=env.doctor)
    appt.delete()
    record.refresh_from_db()
    assert record.appointment_id is None


def test_handler_requires_shared_alias():
    from clinic.services.appointments import AppointmentStore
    from clinic.services.medical_records import MedicalRecordService
    from clinic.services.status import StatusTransitionHandler

    with pytest.raises(ValueError):
        StatusTransitionHandler(AppointmentStore('default'), MedicalRecordService('replica'))
