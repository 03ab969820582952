from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import InventoryItem
from clinic.permissions import Capability, ClinicBound
from clinic.serializers.inventory import (
    InventoryItemSerializer,
    InventoryTransactionSerializer,
    serialize_item,
    serialize_transaction,
)
from clinic.services.audit import log_action
from clinic.services.inventory import record_transaction


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, ClinicBound, Capability('inventory.manage', read='inventory.view')])
def inventory(request):
    clinic_id = request.user.clinic_id
    if request.method == 'GET':
        qs = InventoryItem.objects.filter(clinic_id=clinic_id).order_by('name', 'id')
        return Response([serialize_item(i) for i in qs])

    s = InventoryItemSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    item = InventoryItem.objects.create(clinic_id=clinic_id, **s.to_model_fields())
    log_action(user=request.user, action='inventory_create', object_type='inventory_item', object_id=item.id)
    return Response(serialize_item(item), status=201)


@api_view(['PUT', 'DELETE'])
@permission_classes([IsAuthenticated, ClinicBound, Capability('inventory.manage')])
def inventory_detail(request, pk: int):
    item = InventoryItem.objects.filter(clinic_id=request.user.clinic_id, id=pk).first()
    if item is None:
        raise NotFound('Item não encontrado')
    if request.method == 'DELETE':
        item.delete()
        log_action(user=request.user, action='inventory_delete', object_type='inventory_item', object_id=pk)
        return Response({'ok': True})

    s = InventoryItemSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    fields = s.to_model_fields()
    # Quantity only changes through stock movements.
    fields.pop('quantity', None)
    for key, value in fields.items():
        setattr(item, key, value)
    item.save()
    return Response(serialize_item(item))


@api_view(['POST'])
@permission_classes([IsAuthenticated, ClinicBound, Capability('inventory.manage')])
def inventory_transaction(request):
    s = InventoryTransactionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    item, tx = record_transaction(
        request.user.clinic_id, vd['itemId'], vd['type'], vd['quantity'],
        appointment_id=vd.get('appointmentId'), notes=vd.get('notes'),
    )
    log_action(user=request.user, action='inventory_move', object_type='inventory_item', object_id=item.id,
               detail={'type': tx.type, 'quantity': tx.quantity})
    return Response({'item': serialize_item(item), 'transaction': serialize_transaction(tx)}, status=201)
