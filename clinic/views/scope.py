"""Tenant scoping helpers shared by the views."""
from rest_framework.exceptions import ValidationError

from clinic.models import Appointment, Patient, User


def clinic_patient(clinic_id: int, patient_id: int, field: str = 'patientId') -> Patient:
    patient = Patient.objects.filter(clinic_id=clinic_id, id=patient_id).first()
    if patient is None:
        raise ValidationError({field: 'Paciente não pertence a esta clínica.'})
    return patient


def clinic_doctor(clinic_id: int, doctor_id: int, field: str = 'doctorId') -> User:
    doctor = User.objects.filter(clinic_id=clinic_id, id=doctor_id, role=User.ROLE_DOCTOR).first()
    if doctor is None:
        raise ValidationError({field: 'Médico não pertence a esta clínica.'})
    return doctor


def clinic_appointment(clinic_id: int, appointment_id: int, field: str = 'appointmentId') -> Appointment:
    appt = Appointment.objects.filter(clinic_id=clinic_id, id=appointment_id).first()
    if appt is None:
        raise ValidationError({field: 'Agendamento não pertence a esta clínica.'})
    return appt
