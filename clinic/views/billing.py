"""
TISS insurance guides.

The XML payload is stored and returned as-is; generating or validating
TISS documents is left to the client.
"""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import TissBill
from clinic.permissions import Capability, ClinicBound
from clinic.serializers.billing import (
    TissCreateSerializer,
    TissListQuerySerializer,
    TissUpdateSerializer,
    serialize_bill,
)
from clinic.services.audit import log_action
from clinic.views.scope import clinic_appointment


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, ClinicBound, Capability('billing.manage', read='billing.view')])
def tiss(request):
    clinic_id = request.user.clinic_id
    if request.method == 'GET':
        q = TissListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        qs = TissBill.objects.filter(clinic_id=clinic_id)
        if q.validated_data.get('status'):
            qs = qs.filter(status=q.validated_data['status'])
        return Response([serialize_bill(b) for b in qs.order_by('-created_at', '-id')])

    s = TissCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    appt = clinic_appointment(clinic_id, vd['appointmentId'])
    bill = TissBill.objects.create(
        clinic_id=clinic_id,
        appointment=appt,
        patient_id=appt.patient_id,
        insurance_id=vd['insuranceId'],
        xml_data=vd.get('xmlData'),
    )
    log_action(user=request.user, action='tiss_create', object_type='tiss_bill', object_id=bill.id)
    return Response(serialize_bill(bill), status=201)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, ClinicBound, Capability('billing.manage')])
def tiss_detail(request, pk: int):
    bill = TissBill.objects.filter(clinic_id=request.user.clinic_id, id=pk).first()
    if bill is None:
        raise NotFound('Guia não encontrada')
    s = TissUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    if 'status' in vd:
        bill.status = vd['status']
    if 'xmlData' in vd:
        bill.xml_data = vd['xmlData']
    bill.save(update_fields=['status', 'xml_data'])
    log_action(user=request.user, action='tiss_update', object_type='tiss_bill', object_id=pk,
               detail={'status': bill.status})
    return Response(serialize_bill(bill))
