"""
Appointment status transitions and the record → appointment cascade.

Finalizing a medical record completes the appointment it belongs to.
Both writes share one transaction: if the appointment cannot be
completed (for instance it was canceled) the record is not kept either.
"""
from __future__ import annotations

from typing import Any, Optional

import structlog
from django.db import transaction

from clinic.models import Appointment, MedicalRecord
from clinic.services.appointments import AppointmentStore, PaymentDetails
from clinic.services.medical_records import MedicalRecordService
from clinic.workflow import AppointmentStatus

logger = structlog.get_logger(__name__)


class StatusTransitionHandler:
    def __init__(self, store: AppointmentStore, records: MedicalRecordService):
        if store.using != records.using:
            raise ValueError('store and records must share a database alias')
        self.store = store
        self.records = records

    @property
    def using(self) -> str:
        return self.store.using

    def apply(
        self,
        clinic_id: int,
        appointment_id: int,
        status: str,
        *,
        payment_method: Optional[str] = None,
        payment_status: Optional[str] = None,
        price: Optional[int] = None,
        type: Optional[str] = None,
        exam_type: Optional[str] = None,
        operator=None,
        reason: str = '',
    ) -> Appointment:
        """Move the appointment to ``status``, writing any payment details with it."""
        payment = PaymentDetails(
            method=payment_method, status=payment_status, price=price, type=type, exam_type=exam_type
        )
        return self.store.update_status(
            clinic_id, appointment_id, status, payment, operator=operator, reason=reason
        )

    def check_in(
        self,
        clinic_id: int,
        appointment_id: int,
        *,
        payment_method: Optional[str] = None,
        payment_status: Optional[str] = None,
        price: Optional[int] = None,
        operator=None,
    ) -> Appointment:
        """Reception check-in: mark the patient present and record payment in one write."""
        return self.apply(
            clinic_id, appointment_id, AppointmentStatus.ARRIVED,
            payment_method=payment_method, payment_status=payment_status, price=price,
            operator=operator, reason='Check-in',
        )

    def _complete_for(self, clinic_id: int, record: MedicalRecord, operator) -> None:
        if not record.is_final or not record.appointment_id:
            return
        self.store.update_status(
            clinic_id, record.appointment_id, AppointmentStatus.COMPLETED,
            operator=operator, reason='Prontuário finalizado',
        )
        logger.info('appointment.completed_by_record', appointment_id=record.appointment_id,
                    record_id=record.id)

    def create_record(self, clinic_id: int, fields: dict[str, Any], operator=None) -> MedicalRecord:
        with transaction.atomic(using=self.using):
            record = self.records.create(clinic_id, fields, user=operator)
            self._complete_for(clinic_id, record, operator)
        return record

    def update_record(self, clinic_id: int, record_id: int, fields: dict[str, Any], operator=None) -> MedicalRecord:
        with transaction.atomic(using=self.using):
            before = self.records.get_or_404(clinic_id, record_id)
            record = self.records.update(clinic_id, record_id, fields, user=operator)
            if not before.is_final:
                self._complete_for(clinic_id, record, operator)
        return record


def default_handler(using: str = 'default') -> StatusTransitionHandler:
    return StatusTransitionHandler(AppointmentStore(using), MedicalRecordService(using))
