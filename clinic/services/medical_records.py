"""
Medical record persistence with an audit trail.

Every write appends a :class:`MedicalRecordLog` row holding the changed
fields.  Cross-entity effects (completing the appointment) are not done
here; see :mod:`clinic.services.status`.
"""
from __future__ import annotations

from typing import Any, Optional

import structlog
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from clinic.models import DigitalSignature, MedicalRecord, MedicalRecordLog

logger = structlog.get_logger(__name__)

RECORD_FIELDS = (
    'status', 'chief_complaint', 'history', 'medications', 'allergies', 'vitals',
    'diagnosis', 'prescription', 'notes',
)


def _jsonable(value):
    return value if isinstance(value, (str, int, float, bool, dict, list, type(None))) else str(value)


class MedicalRecordService:
    def __init__(self, using: str = 'default'):
        self.using = using

    def _qs(self):
        return MedicalRecord.objects.using(self.using)

    def _log(self, record: MedicalRecord, user, action: str, changes: Optional[dict] = None) -> None:
        MedicalRecordLog.objects.using(self.using).create(
            record=record,
            user=user if getattr(user, 'pk', None) else None,
            action=action,
            changes=changes or None,
        )

    def list_for_patient(self, clinic_id: int, patient_id: int) -> list[MedicalRecord]:
        return list(
            self._qs()
            .select_related('doctor')
            .filter(clinic_id=clinic_id, patient_id=patient_id)
            .order_by('-created_at', '-id')
        )

    def get_or_404(self, clinic_id: int, record_id: int) -> MedicalRecord:
        record = self._qs().select_related('doctor').filter(clinic_id=clinic_id, id=record_id).first()
        if record is None:
            raise NotFound('Registro não encontrado')
        return record

    def create(self, clinic_id: int, fields: dict[str, Any], user=None) -> MedicalRecord:
        record = MedicalRecord(clinic_id=clinic_id, **fields)
        if record.is_final:
            record.finalized_at = timezone.now()
        record.save(using=self.using)
        self._log(record, user, 'create', {k: _jsonable(v) for k, v in fields.items() if k in RECORD_FIELDS})
        if record.is_final:
            self._log(record, user, 'finalize')
        logger.info('medical_record.created', record_id=record.id, status=record.status,
                    appointment_id=record.appointment_id)
        return record

    def update(self, clinic_id: int, record_id: int, fields: dict[str, Any], user=None) -> MedicalRecord:
        """Apply a partial update.  Final records cannot go back to draft."""
        record = self.get_or_404(clinic_id, record_id)
        was_final = record.is_final
        if was_final and fields.get('status') == MedicalRecord.STATUS_DRAFT:
            raise ValidationError({'status': 'Prontuário finalizado não pode voltar a rascunho.'})
        changes = {}
        for key, value in fields.items():
            if key not in RECORD_FIELDS:
                continue
            old = getattr(record, key)
            if old != value:
                changes[key] = {'from': _jsonable(old), 'to': _jsonable(value)}
                setattr(record, key, value)
        if not was_final and record.is_final:
            record.finalized_at = timezone.now()
        if changes:
            record.save(using=self.using)
            self._log(record, user, 'update', changes)
        if not was_final and record.is_final:
            self._log(record, user, 'finalize')
        logger.info('medical_record.updated', record_id=record.id, fields=sorted(changes))
        return record

    def sign(self, clinic_id: int, record_id: int, doctor, signature_hash: str,
             certificate_info: Optional[str] = None) -> DigitalSignature:
        record = self.get_or_404(clinic_id, record_id)
        if not record.is_final:
            raise ValidationError({'status': 'Somente prontuários finalizados podem ser assinados.'})
        sig = DigitalSignature(
            record=record, doctor=doctor, signature_hash=signature_hash, certificate_info=certificate_info
        )
        sig.save(using=self.using)
        self._log(record, doctor, 'sign', {'signatureId': sig.id})
        return sig

    def logs(self, clinic_id: int, record_id: int) -> list[MedicalRecordLog]:
        record = self.get_or_404(clinic_id, record_id)
        return list(
            MedicalRecordLog.objects.using(self.using)
            .select_related('user')
            .filter(record=record)
            .order_by('-created_at', '-id')
        )
