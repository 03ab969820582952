"""
Doctor availability lookups and bulk exception management.

A doctor is available on any date that has no exception row.  Bulk
operations write one row at a time without a surrounding transaction:
rows written before a failure stay written.
"""
from __future__ import annotations

import datetime as dt
from typing import Iterable, Optional

import structlog
from rest_framework.exceptions import NotFound

from clinic.models import AvailabilityException

logger = structlog.get_logger(__name__)


class AvailabilityChecker:
    def __init__(self, using: str = 'default'):
        self.using = using

    def _qs(self):
        return AvailabilityException.objects.using(self.using)

    def list(
        self, clinic_id: int, doctor_id: Optional[int] = None, date: Optional[dt.date] = None
    ) -> list[AvailabilityException]:
        qs = self._qs().filter(clinic_id=clinic_id)
        if doctor_id:
            qs = qs.filter(doctor_id=doctor_id)
        if date:
            qs = qs.filter(date=date)
        return list(qs.order_by('date', 'id'))

    def check(self, clinic_id: int, doctor_id: int, date: dt.date) -> bool:
        """Is the doctor's agenda open on ``date``?

        With several rows for the same key the oldest one decides.
        """
        first = (
            self._qs()
            .filter(clinic_id=clinic_id, doctor_id=doctor_id, date=date)
            .order_by('id')
            .values_list('is_available', flat=True)
            .first()
        )
        return True if first is None else bool(first)

    def create(
        self,
        clinic_id: int,
        doctor_id: int,
        date: dt.date,
        is_available: bool = False,
        reason: Optional[str] = None,
    ) -> AvailabilityException:
        row = AvailabilityException(
            clinic_id=clinic_id, doctor_id=doctor_id, date=date, is_available=is_available, reason=reason
        )
        row.save(using=self.using)
        return row

    def _bulk(self, clinic_id, doctor_id, dates, is_available, reason):
        rows = [self.create(clinic_id, doctor_id, d, is_available=is_available, reason=reason) for d in dates]
        logger.info('availability.blocked' if not is_available else 'availability.opened',
                    doctor_id=doctor_id, dates=[str(d) for d in dates])
        return rows

    def block_dates(
        self, clinic_id: int, doctor_id: int, dates: Iterable[dt.date], reason: Optional[str] = None
    ) -> list[AvailabilityException]:
        return self._bulk(clinic_id, doctor_id, list(dates), False, reason)

    def open_dates(
        self, clinic_id: int, doctor_id: int, dates: Iterable[dt.date], reason: Optional[str] = None
    ) -> list[AvailabilityException]:
        return self._bulk(clinic_id, doctor_id, list(dates), True, reason)

    def unblock_dates(self, clinic_id: int, doctor_id: int, dates: Iterable[dt.date]) -> int:
        """Delete every exception of the doctor on any of ``dates``; return how many went."""
        deleted = 0
        for d in dates:
            n, _ = self._qs().filter(clinic_id=clinic_id, doctor_id=doctor_id, date=d).delete()
            deleted += n
        logger.info('availability.unblocked', doctor_id=doctor_id, deleted=deleted)
        return deleted

    def delete(self, clinic_id: int, exception_id: int) -> None:
        n, _ = self._qs().filter(clinic_id=clinic_id, id=exception_id).delete()
        if not n:
            raise NotFound('Exceção de disponibilidade não encontrada')
