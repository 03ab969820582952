"""
Stock movements.

A transaction row and the matching quantity change are written together;
the item row is locked while the new balance is computed.
"""
from __future__ import annotations

from typing import Optional

import structlog
from django.db import transaction
from django.db.models import F
from rest_framework.exceptions import NotFound, ValidationError

from clinic.models import Appointment, InventoryItem, InventoryTransaction

logger = structlog.get_logger(__name__)

_SIGN = {
    InventoryTransaction.TYPE_IN: 1,
    InventoryTransaction.TYPE_OUT: -1,
    InventoryTransaction.TYPE_AUTO: -1,
}


def record_transaction(
    clinic_id: int,
    item_id: int,
    type: str,
    quantity: int,
    *,
    appointment_id: Optional[int] = None,
    notes: Optional[str] = None,
    using: str = 'default',
) -> tuple[InventoryItem, InventoryTransaction]:
    if type not in _SIGN:
        raise ValidationError({'type': 'Tipo de movimentação inválido.'})
    if quantity <= 0:
        raise ValidationError({'quantity': 'Quantidade deve ser positiva.'})
    with transaction.atomic(using=using):
        item = (
            InventoryItem.objects.using(using)
            .select_for_update()
            .filter(clinic_id=clinic_id, id=item_id)
            .first()
        )
        if item is None:
            raise NotFound('Item não encontrado')
        if appointment_id and not Appointment.objects.using(using).filter(
            clinic_id=clinic_id, id=appointment_id
        ).exists():
            raise NotFound('Agendamento não encontrado')
        delta = _SIGN[type] * quantity
        if item.quantity + delta < 0:
            raise ValidationError({'quantity': 'Estoque insuficiente.'})
        InventoryItem.objects.using(using).filter(id=item.id).update(quantity=F('quantity') + delta)
        tx = InventoryTransaction.objects.using(using).create(
            item=item, type=type, quantity=quantity, appointment_id=appointment_id, notes=notes
        )
    item.refresh_from_db(using=using)
    logger.info('inventory.moved', item_id=item.id, type=type, quantity=quantity, balance=item.quantity)
    if item.is_low_stock:
        logger.warning('inventory.low_stock', item_id=item.id, balance=item.quantity,
                       min_quantity=item.min_quantity)
    return item, tx
