from rest_framework import serializers

from clinic.models import Patient
from clinic.serializers import clean_text


class PatientSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    cpf = serializers.CharField(max_length=14, required=False, allow_blank=True, allow_null=True)
    birthDate = serializers.DateField()
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True, allow_null=True)
    email = serializers.EmailField(required=False, allow_blank=True, allow_null=True)
    gender = serializers.CharField(max_length=32, required=False, allow_blank=True, allow_null=True)
    address = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)

    def validate_name(self, v):
        v = clean_text(v) or ''
        if len(v) < 2:
            raise serializers.ValidationError('Nome deve ter ao menos 2 caracteres')
        return v

    def validate_cpf(self, v):
        digits = ''.join(ch for ch in (v or '') if ch.isdigit())
        if v and len(digits) != 11:
            raise serializers.ValidationError('CPF inválido')
        return v or None

    def validate_address(self, v):
        return clean_text(v)

    def to_model_fields(self) -> dict:
        vd = self.validated_data
        keys = {'birthDate': 'birth_date'}
        return {keys.get(k, k): v for k, v in vd.items()}


class PatientListQuerySerializer(serializers.Serializer):
    search = serializers.CharField(required=False, allow_blank=True, max_length=64)


def serialize_patient(p: Patient) -> dict:
    return {
        'id': p.id,
        'clinicId': p.clinic_id,
        'name': p.name,
        'cpf': p.cpf,
        'birthDate': p.birth_date.isoformat() if hasattr(p.birth_date, 'isoformat') else p.birth_date,
        'phone': p.phone,
        'email': p.email,
        'gender': p.gender,
        'address': p.address,
    }
