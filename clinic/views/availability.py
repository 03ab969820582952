from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import Capability, ClinicBound
from clinic.serializers.availability import (
    AvailabilityQuerySerializer,
    BulkDeleteSerializer,
    ExceptionCreateSerializer,
    ExceptionListQuerySerializer,
    serialize_exception,
)
from clinic.services.audit import log_action
from clinic.services.availability import AvailabilityChecker
from clinic.views.scope import clinic_doctor


@api_view(['GET'])
@permission_classes([IsAuthenticated, ClinicBound, Capability('availability.view')])
def availability(request):
    q = AvailabilityQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    doctor_id, date = q.validated_data['doctorId'], q.validated_data['date']
    available = AvailabilityChecker().check(request.user.clinic_id, doctor_id, date)
    return Response({'doctorId': doctor_id, 'date': date.isoformat(), 'available': available})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, ClinicBound, Capability('availability.manage', read='availability.view')])
def availability_exceptions(request):
    checker = AvailabilityChecker()
    clinic_id = request.user.clinic_id
    if request.method == 'GET':
        q = ExceptionListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        rows = checker.list(clinic_id, q.validated_data.get('doctorId'), q.validated_data.get('date'))
        return Response([serialize_exception(e) for e in rows])

    s = ExceptionCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    clinic_doctor(clinic_id, vd['doctorId'])
    dates = s.all_dates()
    if vd['isAvailable']:
        rows = checker.open_dates(clinic_id, vd['doctorId'], dates, reason=vd.get('reason'))
    else:
        rows = checker.block_dates(clinic_id, vd['doctorId'], dates, reason=vd.get('reason'))
    log_action(user=request.user, action='availability_set', object_type='user', object_id=vd['doctorId'],
               detail={'dates': [d.isoformat() for d in dates], 'isAvailable': vd['isAvailable']})
    return Response([serialize_exception(e) for e in rows], status=201)


@api_view(['POST'])
@permission_classes([IsAuthenticated, ClinicBound, Capability('availability.manage')])
def availability_bulk_delete(request):
    s = BulkDeleteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    deleted = AvailabilityChecker().unblock_dates(request.user.clinic_id, vd['doctorId'], vd['dates'])
    log_action(user=request.user, action='availability_clear', object_type='user', object_id=vd['doctorId'],
               detail={'deleted': deleted})
    return Response({'ok': True, 'deleted': deleted})


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, ClinicBound, Capability('availability.manage')])
def availability_exception_detail(request, pk: int):
    AvailabilityChecker().delete(request.user.clinic_id, pk)
    return Response({'ok': True})
