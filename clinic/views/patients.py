"""
Patient registry endpoints.

Patients belong to exactly one clinic; every lookup is scoped by the
caller's clinic.
"""
from __future__ import annotations

from django.db.models import Q
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import Patient
from clinic.permissions import Capability, ClinicBound
from clinic.serializers.patient import PatientListQuerySerializer, PatientSerializer, serialize_patient
from clinic.services.audit import log_action


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, ClinicBound, Capability('patients.manage', read='patients.view')])
def patients(request):
    clinic_id = request.user.clinic_id
    if request.method == 'GET':
        q = PatientListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        qs = Patient.objects.filter(clinic_id=clinic_id)
        term = (q.validated_data.get('search') or '').strip()
        if term:
            qs = qs.filter(Q(name__icontains=term) | Q(cpf__icontains=term) | Q(phone__icontains=term))
        return Response([serialize_patient(p) for p in qs.order_by('name', 'id')])

    s = PatientSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient = Patient.objects.create(clinic_id=clinic_id, **s.to_model_fields())
    log_action(user=request.user, action='patient_create', object_type='patient', object_id=patient.id)
    return Response(serialize_patient(patient), status=201)


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, ClinicBound, Capability('patients.manage', read='patients.view')])
def patient_detail(request, pk: int):
    patient = Patient.objects.filter(clinic_id=request.user.clinic_id, id=pk).first()
    if patient is None:
        raise NotFound('Paciente não encontrado')
    if request.method == 'GET':
        return Response(serialize_patient(patient))

    s = PatientSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    fields = s.to_model_fields()
    for key, value in fields.items():
        setattr(patient, key, value)
    patient.save()
    log_action(user=request.user, action='patient_update', object_type='patient', object_id=pk,
               detail={'fields': sorted(fields)})
    return Response(serialize_patient(patient))
