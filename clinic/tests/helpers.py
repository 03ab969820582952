"""Test data builders shared by the API tests."""
import datetime as dt
from types import SimpleNamespace

from clinic.models import Appointment, Clinic, Patient, User

PASSWORD = 'S3nha-Forte-42'


def make_clinic(name='Clínica Central'):
    """A clinic with one user per role and one patient."""
    clinic = Clinic.objects.create(name=name, address='Rua A, 1', phone='(11) 3000-0000')
    prefix = f'c{clinic.id}_'
    users = {}
    for role in (User.ROLE_ADMIN, User.ROLE_DOCTOR, User.ROLE_OPERATOR, User.ROLE_NURSE):
        users[role] = User.objects.create_user(
            username=prefix + role, password=PASSWORD, role=role, clinic=clinic, name=role.title(),
        )
    patient = Patient.objects.create(clinic=clinic, name='Carlos Souza', birth_date=dt.date(1985, 3, 14))
    return SimpleNamespace(
        clinic=clinic,
        admin=users[User.ROLE_ADMIN],
        doctor=users[User.ROLE_DOCTOR],
        operator=users[User.ROLE_OPERATOR],
        nurse=users[User.ROLE_NURSE],
        patient=patient,
    )


def make_appointment(env, date, start, duration=30, status=Appointment.Status.SCHEDULED, **extra):
    return Appointment.objects.create(
        clinic=env.clinic, patient=env.patient, doctor=env.doctor,
        date=date, start_time=start, duration=duration, status=status, **extra,
    )
