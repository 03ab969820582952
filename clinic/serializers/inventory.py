from rest_framework import serializers

from clinic.models import InventoryItem, InventoryTransaction
from clinic.serializers import clean_text

_FIELD_MAP = {
    'name': 'name',
    'category': 'category',
    'unit': 'unit',
    'quantity': 'quantity',
    'minQuantity': 'min_quantity',
    'pricePerUnit': 'price_per_unit',
    'supplier': 'supplier',
    'location': 'location',
    'batchNumber': 'batch_number',
    'expiryDate': 'expiry_date',
    'description': 'description',
}


class InventoryItemSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    category = serializers.ChoiceField(choices=InventoryItem.CATEGORY_CHOICES)
    unit = serializers.ChoiceField(choices=InventoryItem.UNIT_CHOICES)
    quantity = serializers.IntegerField(min_value=0, required=False)
    minQuantity = serializers.IntegerField(min_value=0, required=False)
    pricePerUnit = serializers.IntegerField(min_value=0, required=False)
    supplier = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)
    location = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)
    batchNumber = serializers.CharField(max_length=64, required=False, allow_blank=True, allow_null=True)
    expiryDate = serializers.DateField(required=False, allow_null=True)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate_name(self, v):
        return clean_text(v) or ''

    def validate_description(self, v):
        return clean_text(v)

    def to_model_fields(self) -> dict:
        return {_FIELD_MAP[k]: v for k, v in self.validated_data.items() if k in _FIELD_MAP}


class InventoryTransactionSerializer(serializers.Serializer):
    itemId = serializers.IntegerField(min_value=1)
    type = serializers.ChoiceField(choices=InventoryTransaction.TYPE_CHOICES)
    quantity = serializers.IntegerField(min_value=1)
    appointmentId = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate_notes(self, v):
        return clean_text(v)


def serialize_item(i: InventoryItem) -> dict:
    return {
        'id': i.id,
        'clinicId': i.clinic_id,
        'name': i.name,
        'category': i.category,
        'unit': i.unit,
        'quantity': i.quantity,
        'minQuantity': i.min_quantity,
        'pricePerUnit': i.price_per_unit,
        'supplier': i.supplier,
        'location': i.location,
        'batchNumber': i.batch_number,
        'expiryDate': i.expiry_date.isoformat() if i.expiry_date else None,
        'description': i.description,
        'lowStock': i.is_low_stock,
    }


def serialize_transaction(t: InventoryTransaction) -> dict:
    return {
        'id': t.id,
        'itemId': t.item_id,
        'type': t.type,
        'quantity': t.quantity,
        'appointmentId': t.appointment_id,
        'notes': t.notes,
        'createdAt': t.created_at.isoformat() if t.created_at else None,
    }
