"""
Appointment status state machine.

Statuses are stored with their Portuguese tags.  ``TRANSITIONS`` is the
single source of truth for which moves the server accepts; the UI may
hide buttons but it never decides legality.
"""
from __future__ import annotations

from django.db import models


class AppointmentStatus(models.TextChoices):
    SCHEDULED = 'agendado', 'Agendado'
    CONFIRMED = 'confirmado', 'Confirmado'
    ARRIVED = 'presente', 'Presente'
    IN_PROGRESS = 'em_atendimento', 'Em atendimento'
    COMPLETED = 'finalizado', 'Finalizado'
    CANCELED = 'cancelado', 'Cancelado'
    RESCHEDULED = 'remarcado', 'Remarcado'
    NO_SHOW = 'ausente', 'Ausente'


S = AppointmentStatus

TRANSITIONS: dict[str, frozenset[str]] = {
    S.SCHEDULED: frozenset({
        S.CONFIRMED, S.ARRIVED, S.IN_PROGRESS, S.COMPLETED, S.CANCELED, S.RESCHEDULED, S.NO_SHOW,
    }),
    S.CONFIRMED: frozenset({
        S.SCHEDULED, S.ARRIVED, S.IN_PROGRESS, S.COMPLETED, S.CANCELED, S.RESCHEDULED, S.NO_SHOW,
    }),
    S.ARRIVED: frozenset({S.IN_PROGRESS, S.COMPLETED, S.CANCELED}),
    S.IN_PROGRESS: frozenset({S.COMPLETED}),
    S.RESCHEDULED: frozenset({S.SCHEDULED, S.CONFIRMED, S.COMPLETED, S.CANCELED}),
    S.NO_SHOW: frozenset({S.RESCHEDULED, S.COMPLETED, S.CANCELED}),
    S.COMPLETED: frozenset(),
    S.CANCELED: frozenset(),
}

TERMINAL = frozenset(s for s, targets in TRANSITIONS.items() if not targets)


def can_transition(current: str, new: str) -> bool:
    """Return True if an appointment may move from ``current`` to ``new``.

    Re-applying the current status is accepted so that payment data can be
    amended without moving the appointment.
    """
    if new not in TRANSITIONS:
        return False
    if current == new:
        return True
    return new in TRANSITIONS.get(current, frozenset())


def allowed_targets(current: str) -> list[str]:
    return sorted(str(s) for s in TRANSITIONS.get(current, frozenset()))
