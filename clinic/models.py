"""
Database models for the clinic backend.

Every tenant-owned row carries a ``clinic`` foreign key and all API
queries are scoped by it.  Money is stored as integer cents.  Status and
category fields keep the Portuguese tags the front-end displays.
"""
from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.db import models

from .workflow import AppointmentStatus


class Clinic(models.Model):
    """A tenant: owns its staff, patients, agenda and stock."""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
    ]
    name = models.CharField(max_length=255)
    address = models.CharField(max_length=255)
    phone = models.CharField(max_length=32)
    subscription_status = models.CharField(max_length=16, choices=STATUS_CHOICES, default='active')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.id})"


class User(AbstractUser):
    """Staff account.

    The role only selects a capability set (see ``clinic.permissions``);
    views never authorize by comparing role strings.  Super admins are not bound
    to a clinic.
    """
    ROLE_SUPER_ADMIN = 'super_admin'
    ROLE_ADMIN = 'admin'
    ROLE_DOCTOR = 'doctor'
    ROLE_OPERATOR = 'operator'
    ROLE_NURSE = 'nurse'
    ROLE_CHOICES = [
        (ROLE_SUPER_ADMIN, 'Super administrator'),
        (ROLE_ADMIN, 'Administrator'),
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_OPERATOR, 'Reception'),
        (ROLE_NURSE, 'Nurse'),
    ]
    name = models.CharField(max_length=255, blank=True)
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default=ROLE_OPERATOR, db_index=True)
    specialty = models.CharField(max_length=128, blank=True, null=True)
    clinic = models.ForeignKey(
        Clinic, null=True, blank=True, on_delete=models.CASCADE, related_name='users'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    @property
    def display_name(self) -> str:
        return self.name or self.get_full_name() or self.username

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class Patient(models.Model):
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name='patients')
    name = models.CharField(max_length=255)
    cpf = models.CharField(max_length=14, blank=True, null=True)
    birth_date = models.DateField()
    phone = models.CharField(max_length=32, blank=True, null=True)
    email = models.EmailField(blank=True, null=True)
    gender = models.CharField(max_length=32, blank=True, null=True)
    address = models.CharField(max_length=255, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['clinic', 'name'], name='patient_clinic_name_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.id})"


class Appointment(models.Model):
    Status = AppointmentStatus

    TYPE_CHOICES = [
        ('consulta', 'Consulta'),
        ('retorno', 'Retorno'),
        ('exame', 'Exame'),
    ]
    PAYMENT_METHOD_CHOICES = [
        ('dinheiro', 'Dinheiro'),
        ('cartao_credito', 'Cartão de crédito'),
        ('cartao_debito', 'Cartão de débito'),
        ('pix', 'Pix'),
        ('convenio', 'Convênio'),
    ]
    PAYMENT_STATUS_CHOICES = [
        ('pendente', 'Pendente'),
        ('pago', 'Pago'),
    ]

    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name='appointments')
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='appointments')
    doctor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='doctor_appointments')
    date = models.DateField()
    start_time = models.TimeField()
    duration = models.PositiveIntegerField(default=30, help_text="minutes")
    price = models.PositiveIntegerField(default=15000, help_text="cents")
    type = models.CharField(max_length=16, choices=TYPE_CHOICES, default='consulta')
    exam_type = models.CharField(max_length=128, blank=True, null=True)
    procedure = models.CharField(max_length=255, blank=True, null=True)
    insurance = models.CharField(max_length=128, blank=True, null=True)
    is_private = models.BooleanField(default=False)
    notes = models.TextField(blank=True, null=True)
    status = models.CharField(
        max_length=20, choices=AppointmentStatus.choices, default=AppointmentStatus.SCHEDULED, db_index=True
    )
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, blank=True, null=True)
    payment_status = models.CharField(max_length=10, choices=PAYMENT_STATUS_CHOICES, default='pendente')
    triage_done = models.BooleanField(default=False)
    triage_data = models.JSONField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['clinic', 'date', 'start_time'], name='appt_clinic_date_time_idx'),
            models.Index(fields=['doctor', 'date'], name='appt_doctor_date_idx'),
        ]

    def __str__(self) -> str:
        return f"appt {self.id} {self.date} {self.start_time} d={self.doctor_id} p={self.patient_id}"


class AppointmentTransition(models.Model):
    """Records a status transition for an appointment."""
    appointment = models.ForeignKey(Appointment, related_name='transitions', on_delete=models.CASCADE)
    from_status = models.CharField(max_length=20, null=True, blank=True)
    to_status = models.CharField(max_length=20)
    operator = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointment_transitions'
    )
    reason = models.CharField(max_length=255, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.appointment_id}: {self.from_status} → {self.to_status}"


class AvailabilityException(models.Model):
    """Per doctor/date override of the default (open) agenda."""
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name='availability_exceptions')
    doctor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='availability_exceptions')
    date = models.DateField()
    is_available = models.BooleanField(default=False)
    reason = models.CharField(max_length=255, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['clinic', 'doctor', 'date'], name='avail_clinic_doctor_date_idx'),
        ]

    def __str__(self) -> str:
        state = 'open' if self.is_available else 'closed'
        return f"doctor {self.doctor_id} {self.date} {state}"


class MedicalRecord(models.Model):
    STATUS_DRAFT = 'rascunho'
    STATUS_FINAL = 'finalizado'
    STATUS_CHOICES = [
        (STATUS_DRAFT, 'Rascunho'),
        (STATUS_FINAL, 'Finalizado'),
    ]

    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name='medical_records')
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='medical_records')
    doctor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='medical_records')
    # Deleting the appointment keeps the clinical history.
    appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='medical_records'
    )
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default=STATUS_FINAL)

    # Anamnesis
    chief_complaint = models.TextField(blank=True, null=True)
    history = models.TextField(blank=True, null=True)
    medications = models.TextField(blank=True, null=True)
    allergies = models.TextField(blank=True, null=True)
    vitals = models.JSONField(blank=True, null=True)

    # Clinical evolution
    diagnosis = models.TextField(blank=True, null=True)
    prescription = models.TextField(blank=True, null=True)
    notes = models.TextField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    finalized_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        indexes = [
            models.Index(fields=['patient', 'created_at'], name='record_patient_created_idx'),
        ]

    @property
    def is_final(self) -> bool:
        return self.status == self.STATUS_FINAL

    def __str__(self) -> str:
        return f"record {self.id} p={self.patient_id} ({self.status})"


class MedicalRecordLog(models.Model):
    ACTION_CHOICES = (
        ("create", "create"),
        ("update", "update"),
        ("finalize", "finalize"),
        ("sign", "sign"),
    )
    record = models.ForeignKey(MedicalRecord, on_delete=models.CASCADE, related_name='logs')
    user = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL)
    action = models.CharField(max_length=16, choices=ACTION_CHOICES)
    changes = models.JSONField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.action}:{self.record_id} by {self.user_id}"


class DigitalSignature(models.Model):
    record = models.ForeignKey(MedicalRecord, on_delete=models.CASCADE, related_name='signatures')
    doctor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='signatures')
    signature_hash = models.CharField(max_length=512)
    certificate_info = models.TextField(blank=True, null=True)
    signed_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"sig {self.id} record={self.record_id}"


class InventoryItem(models.Model):
    CATEGORY_CHOICES = [
        ('material', 'Material'),
        ('medicamento', 'Medicamento'),
        ('equipamento', 'Equipamento'),
        ('outro', 'Outro'),
    ]
    UNIT_CHOICES = [
        ('unidade', 'Unidade'),
        ('ml', 'ml'),
        ('mg', 'mg'),
        ('caixa', 'Caixa'),
        ('frasco', 'Frasco'),
        ('pacote', 'Pacote'),
    ]
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name='inventory')
    name = models.CharField(max_length=255)
    category = models.CharField(max_length=16, choices=CATEGORY_CHOICES)
    unit = models.CharField(max_length=16, choices=UNIT_CHOICES)
    quantity = models.IntegerField(default=0)
    min_quantity = models.IntegerField(default=5)
    price_per_unit = models.PositiveIntegerField(default=0, help_text="cents")
    supplier = models.CharField(max_length=255, blank=True, null=True)
    location = models.CharField(max_length=255, blank=True, null=True)
    batch_number = models.CharField(max_length=64, blank=True, null=True)
    expiry_date = models.DateField(blank=True, null=True)
    description = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.min_quantity

    def __str__(self) -> str:
        return f"{self.name} x{self.quantity}"


class InventoryTransaction(models.Model):
    TYPE_IN = 'entrada'
    TYPE_OUT = 'saida'
    TYPE_AUTO = 'baixa_automatica'
    TYPE_CHOICES = (
        (TYPE_IN, 'Entrada'),
        (TYPE_OUT, 'Saída'),
        (TYPE_AUTO, 'Baixa automática'),
    )
    item = models.ForeignKey(InventoryItem, on_delete=models.CASCADE, related_name='transactions')
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    quantity = models.PositiveIntegerField()
    appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='inventory_transactions'
    )
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.type} {self.quantity} of {self.item_id}"


class TissBill(models.Model):
    """TISS insurance guide.  ``xml_data`` is stored as received."""
    STATUS_CHOICES = [
        ('pendente', 'Pendente'),
        ('gerada', 'Gerada'),
        ('enviada', 'Enviada'),
        ('paga', 'Paga'),
    ]
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name='tiss_bills')
    appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='tiss_bills'
    )
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='tiss_bills')
    insurance_id = models.CharField(max_length=64)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='pendente')
    xml_data = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"tiss {self.id} appt={self.appointment_id} ({self.status})"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    clinic = models.ForeignKey(Clinic, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.IntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_created_idx'),
        ]

    def __str__(self):
        return f"{self.action}:{self.object_type}#{self.object_id}"
