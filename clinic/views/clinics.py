"""Tenant administration, reserved to platform super admins."""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import Clinic
from clinic.permissions import Capability
from clinic.serializers.clinic import ClinicSerializer, serialize_clinic
from clinic.services.audit import log_action


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, Capability('clinics.manage')])
def clinics(request):
    if request.method == 'GET':
        return Response([serialize_clinic(c) for c in Clinic.objects.order_by('name', 'id')])
    s = ClinicSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    c = Clinic.objects.create(**s.to_model_fields())
    log_action(user=request.user, action='clinic_create', object_type='clinic', object_id=c.id)
    return Response(serialize_clinic(c), status=201)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, Capability('clinics.manage')])
def clinic_detail(request, pk: int):
    c = Clinic.objects.filter(id=pk).first()
    if c is None:
        raise NotFound('Clínica não encontrada')
    if request.method == 'GET':
        return Response(serialize_clinic(c))
    if request.method == 'DELETE':
        c.delete()
        log_action(user=request.user, action='clinic_delete', object_type='clinic', object_id=pk)
        return Response({'ok': True})
    s = ClinicSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    for key, value in s.to_model_fields().items():
        setattr(c, key, value)
    c.save()
    log_action(user=request.user, action='clinic_update', object_type='clinic', object_id=pk)
    return Response(serialize_clinic(c))
