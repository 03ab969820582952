"""
Medical record endpoints.

Creating or finalizing a record goes through the transition handler so
the linked appointment is completed in the same transaction.
"""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import Patient
from clinic.permissions import Capability, ClinicBound
from clinic.serializers.medical_record import (
    MedicalRecordSerializer,
    SignatureSerializer,
    serialize_log,
    serialize_record,
)
from clinic.services.audit import log_action
from clinic.services.medical_records import MedicalRecordService
from clinic.services.status import default_handler
from clinic.views.scope import clinic_appointment, clinic_patient


@api_view(['POST'])
@permission_classes([IsAuthenticated, ClinicBound, Capability('records.write')])
def medical_records(request):
    s = MedicalRecordSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    clinic_id = request.user.clinic_id
    fields = s.to_model_fields()
    clinic_patient(clinic_id, fields['patient_id'])
    if fields.get('appointment_id'):
        appt = clinic_appointment(clinic_id, fields['appointment_id'])
        if appt.patient_id != fields['patient_id']:
            raise ValidationError({'appointmentId': 'Agendamento pertence a outro paciente.'})
    fields['doctor'] = request.user
    record = default_handler().create_record(clinic_id, fields, operator=request.user)
    log_action(user=request.user, action='record_create', object_type='medical_record', object_id=record.id)
    return Response(serialize_record(record), status=201)


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, ClinicBound, Capability('records.write', read='records.view')])
def medical_record_detail(request, pk: int):
    clinic_id = request.user.clinic_id
    if request.method == 'GET':
        return Response(serialize_record(MedicalRecordService().get_or_404(clinic_id, pk)))

    s = MedicalRecordSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    fields = s.to_model_fields()
    # The owning patient and appointment are fixed at creation.
    fields.pop('patient_id', None)
    fields.pop('appointment_id', None)
    record = default_handler().update_record(clinic_id, pk, fields, operator=request.user)
    log_action(user=request.user, action='record_update', object_type='medical_record', object_id=pk)
    return Response(serialize_record(record))


@api_view(['POST'])
@permission_classes([IsAuthenticated, ClinicBound, Capability('records.sign')])
def medical_record_sign(request, pk: int):
    s = SignatureSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    sig = MedicalRecordService().sign(
        request.user.clinic_id, pk, request.user,
        s.validated_data['signatureHash'], s.validated_data.get('certificateInfo'),
    )
    log_action(user=request.user, action='record_sign', object_type='medical_record', object_id=pk)
    return Response({'ok': True, 'signatureId': sig.id, 'signedAt': sig.signed_at.isoformat()}, status=201)


@api_view(['GET'])
@permission_classes([IsAuthenticated, ClinicBound, Capability('records.view')])
def medical_record_logs(request, pk: int):
    logs = MedicalRecordService().logs(request.user.clinic_id, pk)
    return Response([serialize_log(log) for log in logs])


@api_view(['GET'])
@permission_classes([IsAuthenticated, ClinicBound, Capability('records.view')])
def patient_records(request, pk: int):
    clinic_id = request.user.clinic_id
    if not Patient.objects.filter(clinic_id=clinic_id, id=pk).exists():
        raise NotFound('Paciente não encontrado')
    records = MedicalRecordService().list_for_patient(clinic_id, pk)
    return Response([serialize_record(r) for r in records])
