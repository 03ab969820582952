from rest_framework import serializers

from clinic.models import TissBill


class TissCreateSerializer(serializers.Serializer):
    appointmentId = serializers.IntegerField(min_value=1)
    insuranceId = serializers.CharField(max_length=64)
    xmlData = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class TissUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=TissBill.STATUS_CHOICES, required=False)
    xmlData = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class TissListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=TissBill.STATUS_CHOICES, required=False)


def serialize_bill(b: TissBill) -> dict:
    return {
        'id': b.id,
        'clinicId': b.clinic_id,
        'appointmentId': b.appointment_id,
        'patientId': b.patient_id,
        'insuranceId': b.insurance_id,
        'status': b.status,
        'xmlData': b.xml_data,
        'createdAt': b.created_at.isoformat() if b.created_at else None,
    }
