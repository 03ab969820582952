"""
Appointment endpoints: booking, editing, status changes and triage.

Listing and writes go through :class:`AppointmentStore`; status changes go
through the transition handler so the transition log stays complete.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import Capability, ClinicBound, require_capability
from clinic.serializers.appointment import (
    AppointmentListQuerySerializer,
    AppointmentStatusSerializer,
    AppointmentWriteSerializer,
    TriageSerializer,
    serialize_appointment,
    serialize_transition,
)
from clinic.services.appointments import AppointmentFilters, AppointmentStore, book, reschedule
from clinic.services.audit import log_action
from clinic.services.availability import AvailabilityChecker
from clinic.services.status import default_handler
from clinic.workflow import AppointmentStatus
from clinic.views.scope import clinic_doctor, clinic_patient


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, ClinicBound, Capability('appointments.book', read='appointments.view')])
def appointments(request):
    store = AppointmentStore()
    clinic_id = request.user.clinic_id
    if request.method == 'GET':
        q = AppointmentListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        vd = q.validated_data
        filters = AppointmentFilters(
            date=vd.get('date'),
            start_date=vd.get('startDate'),
            end_date=vd.get('endDate'),
            doctor_id=vd.get('doctorId'),
            patient_id=vd.get('patientId'),
            status=vd.get('status'),
        )
        return Response([serialize_appointment(a) for a in store.list(clinic_id, filters)])

    s = AppointmentWriteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    fields = s.to_model_fields()
    clinic_patient(clinic_id, fields['patient_id'])
    clinic_doctor(clinic_id, fields['doctor_id'])
    appt = book(store, AvailabilityChecker(), clinic_id, fields)
    log_action(user=request.user, action='appointment_create', object_type='appointment', object_id=appt.id)
    return Response(serialize_appointment(store.get_or_404(clinic_id, appt.id)), status=201)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, ClinicBound, Capability('appointments.edit', read='appointments.view')])
def appointment_detail(request, pk: int):
    store = AppointmentStore()
    clinic_id = request.user.clinic_id
    if request.method == 'GET':
        return Response(serialize_appointment(store.get_or_404(clinic_id, pk)))

    if request.method == 'DELETE':
        require_capability(request.user, 'appointments.delete')
        store.delete(clinic_id, pk)
        log_action(user=request.user, action='appointment_delete', object_type='appointment', object_id=pk)
        return Response({'ok': True})

    s = AppointmentWriteSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    fields = s.to_model_fields()
    # Status only moves through the status endpoint.
    fields.pop('status', None)
    if 'patient_id' in fields:
        clinic_patient(clinic_id, fields['patient_id'])
    if 'doctor_id' in fields:
        clinic_doctor(clinic_id, fields['doctor_id'])
    appt = reschedule(store, AvailabilityChecker(), clinic_id, pk, fields)
    log_action(user=request.user, action='appointment_update', object_type='appointment', object_id=pk,
               detail={'fields': sorted(fields)})
    return Response(serialize_appointment(appt))


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, ClinicBound, Capability('appointments.status')])
def appointment_status(request, pk: int):
    """Change the status; payment fields turn the call into a check-in."""
    s = AppointmentStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    handler = default_handler()
    clinic_id = request.user.clinic_id
    new_status = vd['status']
    reason = vd.get('reason') or ''

    if s.has_payment():
        require_capability(request.user, 'appointments.checkin')
    if s.has_payment() and new_status == AppointmentStatus.ARRIVED:
        appt = handler.check_in(
            clinic_id, pk,
            payment_method=vd.get('paymentMethod'),
            payment_status=vd.get('paymentStatus'),
            price=vd.get('price'),
            operator=request.user,
        )
    else:
        appt = handler.apply(
            clinic_id, pk, new_status,
            payment_method=vd.get('paymentMethod'),
            payment_status=vd.get('paymentStatus'),
            price=vd.get('price'),
            type=vd.get('type'),
            exam_type=vd.get('examType'),
            operator=request.user,
            reason=reason,
        )
    log_action(user=request.user, action='appointment_status', object_type='appointment', object_id=pk,
               detail={'status': new_status})
    return Response(serialize_appointment(appt))


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, ClinicBound, Capability('triage.write')])
def appointment_triage(request, pk: int):
    s = TriageSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    store = AppointmentStore()
    appt = store.update_triage(request.user.clinic_id, pk, dict(s.validated_data))
    log_action(user=request.user, action='appointment_triage', object_type='appointment', object_id=pk)
    return Response(serialize_appointment(store.get_or_404(request.user.clinic_id, appt.id)))


@api_view(['GET'])
@permission_classes([IsAuthenticated, ClinicBound, Capability('appointments.view')])
def appointment_transitions(request, pk: int):
    rows = AppointmentStore().transitions(request.user.clinic_id, pk)
    return Response([serialize_transition(t) for t in rows])
