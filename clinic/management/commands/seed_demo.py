# clinic/management/commands/seed_demo.py
import datetime as dt

from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from clinic.models import Appointment, Clinic, InventoryItem, Patient, User

DEMO_PASSWORD = "password123"

STAFF = [
    ("superadmin", "Super Admin", User.ROLE_SUPER_ADMIN, None),
    ("admin", "Administrador", User.ROLE_ADMIN, None),
    ("doctor", "Dr. João Silva", User.ROLE_DOCTOR, "Clínico Geral"),
    ("operator", "Maria Recepção", User.ROLE_OPERATOR, None),
    ("nurse", "Ana Enfermeira", User.ROLE_NURSE, None),
]

PATIENTS = [
    ("Carlos Souza", "123.456.789-00", dt.date(1985, 3, 14), "(11) 98888-1111"),
    ("Fernanda Lima", "987.654.321-00", dt.date(1992, 7, 2), "(11) 97777-2222"),
]

STOCK = [
    ("Luvas de procedimento", "material", "caixa", 20, 5),
    ("Dipirona 500mg", "medicamento", "caixa", 3, 5),
]


class Command(BaseCommand):
    help = "Create a demo clinic with staff, patients, today's agenda and stock (idempotent)."

    @transaction.atomic
    def handle(self, *args, **opts):
        clinic, _ = Clinic.objects.get_or_create(
            name="Clínica Demo",
            defaults={"address": "Rua das Flores, 100 - São Paulo", "phone": "(11) 3333-4444"},
        )

        staff = {}
        for username, name, role, specialty in STAFF:
            u, created = User.objects.get_or_create(
                username=username,
                defaults={
                    "name": name, "role": role, "specialty": specialty, "clinic": clinic,
                    "password": make_password(DEMO_PASSWORD), "is_active": True,
                    "is_staff": role == User.ROLE_SUPER_ADMIN,
                    "is_superuser": role == User.ROLE_SUPER_ADMIN,
                },
            )
            if not created:
                u.password = make_password(DEMO_PASSWORD)
                u.role = role
                u.clinic = clinic
                u.is_active = True
                u.save(update_fields=["password", "role", "clinic", "is_active"])
            staff[role] = u
            self.stdout.write(self.style.SUCCESS(f"ok: {username} ({role})"))

        patients = []
        for name, cpf, birth, phone in PATIENTS:
            p, _ = Patient.objects.get_or_create(
                clinic=clinic, cpf=cpf, defaults={"name": name, "birth_date": birth, "phone": phone}
            )
            patients.append(p)

        today = timezone.localdate()
        doctor = staff[User.ROLE_DOCTOR]
        for patient, start in zip(patients, (dt.time(9, 0), dt.time(10, 0))):
            Appointment.objects.get_or_create(
                clinic=clinic, doctor=doctor, date=today, start_time=start,
                defaults={"patient": patient, "duration": 30, "price": 15000},
            )

        for name, category, unit, quantity, minimum in STOCK:
            InventoryItem.objects.get_or_create(
                clinic=clinic, name=name,
                defaults={"category": category, "unit": unit, "quantity": quantity, "min_quantity": minimum},
            )

        self.stdout.write(self.style.SUCCESS(f"Demo clinic #{clinic.id} ready; password: {DEMO_PASSWORD}"))
