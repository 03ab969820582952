"""
Appointment persistence and filtered listing.

``AppointmentStore`` is the only code that writes appointment rows.  It
is built around an explicit database alias so callers (and tests) decide
which connection it talks to.  The store itself never refuses a booking
for scheduling reasons; overlap and agenda policy live in
:func:`check_booking`, which the API applies before calling ``create``.
"""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Any, Iterable, Optional

import structlog
from django.conf import settings
from django.db import transaction
from rest_framework.exceptions import NotFound, ValidationError

from clinic.exceptions import AgendaClosed, IllegalTransition, SchedulingConflict
from clinic.models import Appointment, AppointmentTransition
from clinic.workflow import TERMINAL, AppointmentStatus, can_transition

logger = structlog.get_logger(__name__)

UPDATABLE_FIELDS = frozenset({
    'patient_id', 'doctor_id', 'date', 'start_time', 'duration', 'price', 'type', 'exam_type',
    'procedure', 'insurance', 'is_private', 'notes', 'payment_method', 'payment_status',
})


@dataclass
class AppointmentFilters:
    date: Optional[dt.date] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    doctor_id: Optional[int] = None
    patient_id: Optional[int] = None
    status: Optional[str] = None


@dataclass
class PaymentDetails:
    method: Optional[str] = None
    status: Optional[str] = None
    price: Optional[int] = None
    type: Optional[str] = None
    exam_type: Optional[str] = None

    def as_fields(self) -> dict[str, Any]:
        fields: dict[str, Any] = {}
        if self.method:
            fields['payment_method'] = self.method
        if self.status:
            fields['payment_status'] = self.status
        if self.price is not None:
            fields['price'] = self.price
        if self.type:
            fields['type'] = self.type
        if self.exam_type:
            fields['exam_type'] = self.exam_type
        return fields


def _minutes(t: dt.time) -> int:
    return t.hour * 60 + t.minute


class AppointmentStore:
    def __init__(self, using: str = 'default'):
        self.using = using

    def _qs(self):
        return Appointment.objects.using(self.using)

    def list(self, clinic_id: int, filters: Optional[AppointmentFilters] = None) -> list[Appointment]:
        """Return the clinic's appointments, newest first, with patient and doctor joined.

        Canceled appointments are never part of this listing.  An exact
        ``date`` wins over a range; a range needs both bounds.
        """
        f = filters or AppointmentFilters()
        qs = (
            self._qs()
            .select_related('patient', 'doctor')
            .filter(clinic_id=clinic_id)
            .exclude(status=AppointmentStatus.CANCELED)
        )
        if f.date:
            qs = qs.filter(date=f.date)
        elif f.start_date and f.end_date:
            qs = qs.filter(date__gte=f.start_date, date__lte=f.end_date)
        if f.doctor_id:
            qs = qs.filter(doctor_id=f.doctor_id)
        if f.patient_id:
            qs = qs.filter(patient_id=f.patient_id)
        if f.status:
            qs = qs.filter(status=f.status)
        return list(qs.order_by('-date', '-start_time', '-id'))

    def get(self, clinic_id: int, appointment_id: int) -> Optional[Appointment]:
        return (
            self._qs()
            .select_related('patient', 'doctor')
            .filter(clinic_id=clinic_id, id=appointment_id)
            .first()
        )

    def get_or_404(self, clinic_id: int, appointment_id: int) -> Appointment:
        appt = self.get(clinic_id, appointment_id)
        if appt is None:
            raise NotFound('Agendamento não encontrado')
        return appt

    def create(self, clinic_id: int, fields: dict[str, Any]) -> Appointment:
        appt = Appointment(clinic_id=clinic_id, **fields)
        appt.save(using=self.using)
        logger.info('appointment.created', appointment_id=appt.id, doctor_id=appt.doctor_id,
                    date=str(appt.date), start_time=str(appt.start_time))
        return appt

    def update(self, clinic_id: int, appointment_id: int, fields: dict[str, Any]) -> Appointment:
        """Partial update; last write wins."""
        appt = self.get_or_404(clinic_id, appointment_id)
        changed = {k: v for k, v in fields.items() if k in UPDATABLE_FIELDS}
        for key, value in changed.items():
            setattr(appt, key, value)
        if changed:
            appt.save(using=self.using, update_fields=[*changed.keys(), 'updated_at'])
        logger.info('appointment.updated', appointment_id=appt.id, fields=sorted(changed))
        return self.get_or_404(clinic_id, appointment_id)

    def update_status(
        self,
        clinic_id: int,
        appointment_id: int,
        status: str,
        payment: Optional[PaymentDetails] = None,
        *,
        operator=None,
        reason: str = '',
    ) -> Appointment:
        """Move an appointment to ``status`` and write any payment details with it.

        Status and payment columns go out in a single UPDATE; the row is
        locked for the duration so concurrent transitions serialize.
        """
        with transaction.atomic(using=self.using):
            locked = (
                self._qs()
                .select_for_update()
                .filter(clinic_id=clinic_id, id=appointment_id)
                .first()
            )
            if locked is None:
                raise NotFound('Agendamento não encontrado')
            old_status = locked.status
            if not can_transition(old_status, status):
                raise IllegalTransition(old_status, status)
            fields = {'status': status, **(payment.as_fields() if payment else {})}
            for key, value in fields.items():
                setattr(locked, key, value)
            locked.save(using=self.using, update_fields=[*fields.keys(), 'updated_at'])
            if old_status != status:
                AppointmentTransition.objects.using(self.using).create(
                    appointment=locked,
                    from_status=old_status,
                    to_status=status,
                    operator=operator if getattr(operator, 'pk', None) else None,
                    reason=reason,
                )
        logger.info('appointment.status_changed', appointment_id=appointment_id,
                    from_status=old_status, to_status=status, fields=sorted(fields))
        return self.get_or_404(clinic_id, appointment_id)

    def update_triage(self, clinic_id: int, appointment_id: int, triage: dict[str, Any]) -> Appointment:
        appt = self.get_or_404(clinic_id, appointment_id)
        if appt.status in TERMINAL:
            raise ValidationError(f'Não é possível registrar triagem em um agendamento com status "{appt.status}".')
        appt.triage_data = triage
        appt.triage_done = True
        appt.save(using=self.using, update_fields=['triage_data', 'triage_done', 'updated_at'])
        logger.info('appointment.triaged', appointment_id=appt.id)
        return appt

    def delete(self, clinic_id: int, appointment_id: int) -> None:
        """Hard delete.  Linked medical records survive with no appointment."""
        appt = self.get_or_404(clinic_id, appointment_id)
        appt.delete(using=self.using)
        logger.info('appointment.deleted', appointment_id=appointment_id)

    def transitions(self, clinic_id: int, appointment_id: int) -> list[AppointmentTransition]:
        appt = self.get_or_404(clinic_id, appointment_id)
        return list(
            AppointmentTransition.objects.using(self.using)
            .select_related('operator')
            .filter(appointment=appt)
            .order_by('timestamp', 'id')
        )

    def find_overlaps(
        self,
        clinic_id: int,
        doctor_id: int,
        date: dt.date,
        start_time: dt.time,
        duration: int,
        exclude_id: Optional[int] = None,
    ) -> list[Appointment]:
        """Non-canceled appointments of the doctor whose slot intersects ``[start, start+duration)``."""
        start = _minutes(start_time)
        end = start + duration
        same_day: Iterable[Appointment] = self.list(
            clinic_id, AppointmentFilters(date=date, doctor_id=doctor_id)
        )
        hits = []
        for other in same_day:
            if exclude_id is not None and other.id == exclude_id:
                continue
            other_start = _minutes(other.start_time)
            if start < other_start + other.duration and end > other_start:
                hits.append(other)
        return hits


def check_booking(
    store: AppointmentStore,
    checker,
    clinic_id: int,
    *,
    doctor_id: int,
    date: dt.date,
    start_time: dt.time,
    duration: int,
    exclude_id: Optional[int] = None,
) -> None:
    """Apply the clinic booking policy; raise if the slot may not be booked."""
    if settings.CLINIC_ENFORCE_AVAILABILITY and not checker.check(clinic_id, doctor_id, date):
        raise AgendaClosed()
    if settings.CLINIC_OVERLAP_POLICY == 'reject':
        clashes = store.find_overlaps(clinic_id, doctor_id, date, start_time, duration, exclude_id=exclude_id)
        if clashes:
            logger.info('appointment.conflict', doctor_id=doctor_id, date=str(date),
                        start_time=start_time.strftime('%H:%M'), clashes=[c.id for c in clashes])
            raise SchedulingConflict()


def _lock_doctor(using: str, doctor_id: int) -> None:
    # Bookings for one doctor serialize on the doctor row.
    from clinic.models import User

    list(User.objects.using(using).select_for_update().filter(id=doctor_id).values_list('id', flat=True))


def book(store: AppointmentStore, checker, clinic_id: int, fields: dict[str, Any]) -> Appointment:
    """Check the booking policy and create the appointment under one lock."""
    with transaction.atomic(using=store.using):
        _lock_doctor(store.using, fields['doctor_id'])
        check_booking(
            store, checker, clinic_id,
            doctor_id=fields['doctor_id'], date=fields['date'],
            start_time=fields['start_time'], duration=fields['duration'],
        )
        return store.create(clinic_id, fields)


SLOT_FIELDS = ('doctor_id', 'date', 'start_time', 'duration')


def reschedule(
    store: AppointmentStore, checker, clinic_id: int, appointment_id: int, fields: dict[str, Any]
) -> Appointment:
    """Update an appointment, re-checking the policy only when its slot moves."""
    with transaction.atomic(using=store.using):
        current = store.get_or_404(clinic_id, appointment_id)
        if any(k in fields and fields[k] != getattr(current, k) for k in SLOT_FIELDS):
            slot = {k: fields.get(k, getattr(current, k)) for k in SLOT_FIELDS}
            _lock_doctor(store.using, slot['doctor_id'])
            check_booking(store, checker, clinic_id, exclude_id=appointment_id, **slot)
        return store.update(clinic_id, appointment_id, fields)
