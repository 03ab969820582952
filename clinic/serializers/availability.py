from rest_framework import serializers

from clinic.models import AvailabilityException
from clinic.serializers import clean_text


class AvailabilityQuerySerializer(serializers.Serializer):
    doctorId = serializers.IntegerField(min_value=1)
    date = serializers.DateField()


class ExceptionListQuerySerializer(serializers.Serializer):
    doctorId = serializers.IntegerField(min_value=1, required=False)
    date = serializers.DateField(required=False)


class ExceptionCreateSerializer(serializers.Serializer):
    """One row with ``date`` or a bulk write with ``dates``."""
    doctorId = serializers.IntegerField(min_value=1)
    date = serializers.DateField(required=False)
    dates = serializers.ListField(child=serializers.DateField(), required=False, allow_empty=False, max_length=366)
    isAvailable = serializers.BooleanField(required=False, default=False)
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)

    def validate_reason(self, v):
        return clean_text(v)

    def validate(self, attrs):
        if not attrs.get('date') and not attrs.get('dates'):
            raise serializers.ValidationError({'date': 'Informe a data ou a lista de datas.'})
        return attrs

    def all_dates(self):
        vd = self.validated_data
        dates = list(vd.get('dates') or [])
        if vd.get('date') and vd['date'] not in dates:
            dates.insert(0, vd['date'])
        return dates


class BulkDeleteSerializer(serializers.Serializer):
    doctorId = serializers.IntegerField(min_value=1)
    dates = serializers.ListField(child=serializers.DateField(), allow_empty=False, max_length=366)


def serialize_exception(e: AvailabilityException) -> dict:
    return {
        'id': e.id,
        'clinicId': e.clinic_id,
        'doctorId': e.doctor_id,
        'date': e.date.isoformat() if hasattr(e.date, 'isoformat') else e.date,
        'isAvailable': e.is_available,
        'reason': e.reason,
    }
