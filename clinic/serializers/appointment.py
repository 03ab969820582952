from django.conf import settings
from rest_framework import serializers

from clinic.models import Appointment
from clinic.serializers import clean_text
from clinic.serializers.patient import serialize_patient
from clinic.serializers.user import serialize_user
from clinic.workflow import AppointmentStatus, allowed_targets

TIME_FORMATS = ['%H:%M', '%H:%M:%S']

# A booking may only be created in one of the opening states.
BOOKABLE_STATUSES = [AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED]


class AppointmentListQuerySerializer(serializers.Serializer):
    date = serializers.DateField(required=False)
    startDate = serializers.DateField(required=False)
    endDate = serializers.DateField(required=False)
    doctorId = serializers.IntegerField(min_value=1, required=False)
    patientId = serializers.IntegerField(min_value=1, required=False)
    status = serializers.ChoiceField(choices=AppointmentStatus.choices, required=False)

    def validate(self, attrs):
        start, end = attrs.get('startDate'), attrs.get('endDate')
        if start and end and start > end:
            raise serializers.ValidationError({'endDate': 'A data final deve ser posterior à inicial.'})
        return attrs


class AppointmentWriteSerializer(serializers.Serializer):
    patientId = serializers.IntegerField(min_value=1)
    doctorId = serializers.IntegerField(min_value=1)
    date = serializers.DateField()
    startTime = serializers.TimeField(input_formats=TIME_FORMATS)
    duration = serializers.IntegerField(min_value=5, max_value=24 * 60, required=False)
    price = serializers.IntegerField(min_value=0, required=False)
    type = serializers.ChoiceField(choices=Appointment.TYPE_CHOICES, required=False)
    examType = serializers.CharField(max_length=128, required=False, allow_blank=True, allow_null=True)
    procedure = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)
    insurance = serializers.CharField(max_length=128, required=False, allow_blank=True, allow_null=True)
    isPrivate = serializers.BooleanField(required=False)
    notes = serializers.CharField(max_length=4000, required=False, allow_blank=True, allow_null=True)
    status = serializers.ChoiceField(choices=BOOKABLE_STATUSES, required=False)
    paymentMethod = serializers.ChoiceField(choices=Appointment.PAYMENT_METHOD_CHOICES, required=False, allow_null=True)
    paymentStatus = serializers.ChoiceField(choices=Appointment.PAYMENT_STATUS_CHOICES, required=False)

    def validate_notes(self, v):
        return clean_text(v)

    def validate_procedure(self, v):
        return clean_text(v)

    def to_model_fields(self) -> dict:
        """Map validated camelCase input to model field names."""
        vd = self.validated_data
        mapping = {
            'patientId': 'patient_id',
            'doctorId': 'doctor_id',
            'date': 'date',
            'startTime': 'start_time',
            'duration': 'duration',
            'price': 'price',
            'type': 'type',
            'examType': 'exam_type',
            'procedure': 'procedure',
            'insurance': 'insurance',
            'isPrivate': 'is_private',
            'notes': 'notes',
            'status': 'status',
            'paymentMethod': 'payment_method',
            'paymentStatus': 'payment_status',
        }
        fields = {mapping[k]: v for k, v in vd.items() if k in mapping}
        if not self.partial:
            fields.setdefault('duration', settings.CLINIC_DEFAULT_DURATION)
        return fields


class AppointmentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=AppointmentStatus.choices)
    paymentMethod = serializers.ChoiceField(choices=Appointment.PAYMENT_METHOD_CHOICES, required=False, allow_null=True)
    paymentStatus = serializers.ChoiceField(choices=Appointment.PAYMENT_STATUS_CHOICES, required=False, allow_null=True)
    price = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    type = serializers.ChoiceField(choices=Appointment.TYPE_CHOICES, required=False, allow_null=True)
    examType = serializers.CharField(max_length=128, required=False, allow_blank=True, allow_null=True)
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True)

    def has_payment(self) -> bool:
        vd = self.validated_data
        return any(vd.get(k) not in (None, '') for k in ('paymentMethod', 'paymentStatus', 'price'))


class TriageSerializer(serializers.Serializer):
    weight = serializers.CharField(max_length=16, required=False, allow_blank=True)
    height = serializers.CharField(max_length=16, required=False, allow_blank=True)
    bloodPressure = serializers.CharField(max_length=16, required=False, allow_blank=True)
    temperature = serializers.CharField(max_length=16, required=False, allow_blank=True)
    heartRate = serializers.CharField(max_length=16, required=False, allow_blank=True)
    respiratoryRate = serializers.CharField(max_length=16, required=False, allow_blank=True)
    oxygenSaturation = serializers.CharField(max_length=16, required=False, allow_blank=True)
    notes = serializers.CharField(max_length=2000, required=False, allow_blank=True)

    def validate_notes(self, v):
        return clean_text(v) or ''


def serialize_appointment(a: Appointment) -> dict:
    return {
        'id': a.id,
        'clinicId': a.clinic_id,
        'patientId': a.patient_id,
        'doctorId': a.doctor_id,
        'date': a.date.isoformat() if hasattr(a.date, 'isoformat') else a.date,
        'startTime': a.start_time.strftime('%H:%M') if hasattr(a.start_time, 'strftime') else a.start_time,
        'duration': a.duration,
        'price': a.price,
        'type': a.type,
        'examType': a.exam_type,
        'procedure': a.procedure,
        'insurance': a.insurance,
        'isPrivate': a.is_private,
        'notes': a.notes,
        'status': a.status,
        'allowedStatuses': allowed_targets(a.status),
        'paymentMethod': a.payment_method,
        'paymentStatus': a.payment_status,
        'triageDone': a.triage_done,
        'triageData': a.triage_data,
        'createdAt': a.created_at.isoformat() if a.created_at else None,
        'patient': serialize_patient(a.patient),
        'doctor': serialize_user(a.doctor),
    }


def serialize_transition(t) -> dict:
    return {
        'from': t.from_status,
        'to': t.to_status,
        'operator': t.operator.display_name if t.operator else '',
        'reason': t.reason,
        'timestamp': t.timestamp.isoformat(),
    }
