from rest_framework import serializers

from clinic.models import MedicalRecord
from clinic.serializers import clean_text

_TEXT_FIELDS = {
    'chiefComplaint': 'chief_complaint',
    'history': 'history',
    'medications': 'medications',
    'allergies': 'allergies',
    'diagnosis': 'diagnosis',
    'prescription': 'prescription',
    'notes': 'notes',
}


class VitalsSerializer(serializers.Serializer):
    bloodPressure = serializers.CharField(max_length=16, required=False, allow_blank=True)
    heartRate = serializers.CharField(max_length=16, required=False, allow_blank=True)
    temperature = serializers.CharField(max_length=16, required=False, allow_blank=True)
    weight = serializers.CharField(max_length=16, required=False, allow_blank=True)
    height = serializers.CharField(max_length=16, required=False, allow_blank=True)
    oxygenSaturation = serializers.CharField(max_length=16, required=False, allow_blank=True)


class MedicalRecordSerializer(serializers.Serializer):
    patientId = serializers.IntegerField(min_value=1)
    appointmentId = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    status = serializers.ChoiceField(choices=MedicalRecord.STATUS_CHOICES, required=False)
    chiefComplaint = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    history = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    medications = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    allergies = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    vitals = VitalsSerializer(required=False, allow_null=True)
    diagnosis = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    prescription = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def to_internal_value(self, data):
        vd = super().to_internal_value(data)
        for key in _TEXT_FIELDS:
            if vd.get(key):
                vd[key] = clean_text(vd[key])
        return vd

    def to_model_fields(self) -> dict:
        vd = self.validated_data
        fields = {_TEXT_FIELDS[k]: v for k, v in vd.items() if k in _TEXT_FIELDS}
        if 'status' in vd:
            fields['status'] = vd['status']
        if 'vitals' in vd:
            fields['vitals'] = dict(vd['vitals']) if vd['vitals'] else None
        if 'patientId' in vd:
            fields['patient_id'] = vd['patientId']
        if 'appointmentId' in vd:
            fields['appointment_id'] = vd['appointmentId']
        return fields


class SignatureSerializer(serializers.Serializer):
    signatureHash = serializers.CharField(max_length=512)
    certificateInfo = serializers.CharField(required=False, allow_blank=True, allow_null=True)


def serialize_record(r: MedicalRecord) -> dict:
    return {
        'id': r.id,
        'clinicId': r.clinic_id,
        'patientId': r.patient_id,
        'doctorId': r.doctor_id,
        'doctorName': r.doctor.display_name if r.doctor_id else None,
        'appointmentId': r.appointment_id,
        'status': r.status,
        'chiefComplaint': r.chief_complaint,
        'history': r.history,
        'medications': r.medications,
        'allergies': r.allergies,
        'vitals': r.vitals,
        'diagnosis': r.diagnosis,
        'prescription': r.prescription,
        'notes': r.notes,
        'createdAt': r.created_at.isoformat() if r.created_at else None,
        'finalizedAt': r.finalized_at.isoformat() if r.finalized_at else None,
    }


def serialize_log(log) -> dict:
    return {
        'id': log.id,
        'action': log.action,
        'user': log.user.display_name if log.user else None,
        'changes': log.changes,
        'createdAt': log.created_at.isoformat(),
    }
