from rest_framework import serializers

from clinic.models import Clinic


class ClinicSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    address = serializers.CharField(max_length=255)
    phone = serializers.CharField(max_length=32)
    subscriptionStatus = serializers.ChoiceField(choices=Clinic.STATUS_CHOICES, required=False)

    def to_model_fields(self) -> dict:
        keys = {'subscriptionStatus': 'subscription_status'}
        return {keys.get(k, k): v for k, v in self.validated_data.items()}


def serialize_clinic(c: Clinic) -> dict:
    return {
        'id': c.id,
        'name': c.name,
        'address': c.address,
        'phone': c.phone,
        'subscriptionStatus': c.subscription_status,
        'createdAt': c.created_at.isoformat() if c.created_at else None,
    }
