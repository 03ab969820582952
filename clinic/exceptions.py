"""
API error envelope and domain exceptions.

Every error leaves the API as ``{"ok": false, "message": ..., "error":
{"code": ..., "message": ...}}``.  Validation failures carry only the
first message (and the field it belongs to) so the client can show a
single toast.
"""
from __future__ import annotations

import structlog
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = structlog.get_logger(__name__)


class IllegalTransition(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Transição de status não permitida.'
    default_code = 'illegal_transition'

    def __init__(self, current: str, new: str):
        super().__init__(f'Não é possível mudar o status de "{current}" para "{new}".')
        self.current = current
        self.new = new


class AgendaClosed(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'A agenda deste médico está fechada para esta data.'
    default_code = 'agenda_closed'


class SchedulingConflict(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Este horário já está ocupado para este médico.'
    default_code = 'scheduling_conflict'


def _first_message(data, field=None):
    """Walk DRF error detail and return ``(field, message)`` of the first error."""
    if isinstance(data, dict):
        for key, value in data.items():
            if key in ('detail', 'non_field_errors'):
                return _first_message(value, field)
            return _first_message(value, field or key)
        return field, ''
    if isinstance(data, (list, tuple)):
        if not data:
            return field, ''
        return _first_message(data[0], field)
    return field, str(data)


def _code_of(exc, detail) -> str:
    codes = exc.get_codes() if isinstance(exc, APIException) else None
    while isinstance(codes, (dict, list)):
        if isinstance(codes, dict):
            codes = next(iter(codes.values()), None)
        else:
            codes = codes[0] if codes else None
    return codes or 'api_error'


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        view = context.get('view')
        logger.error('api.unhandled_error', view=getattr(view, '__name__', None) or type(view).__name__,
                     exc_info=exc)
        return Response(
            {'ok': False, 'message': 'Erro interno do servidor',
             'error': {'code': 'server_error', 'message': 'Erro interno do servidor'}},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    field, message = _first_message(resp.data)
    code = _code_of(exc, resp.data)
    body = {'ok': False, 'message': message, 'error': {'code': code, 'message': message}}
    if field:
        body['field'] = field
    if resp.status_code >= 500:
        logger.error('api.error', status=resp.status_code, code=code, message=message)
    else:
        logger.info('api.rejected', status=resp.status_code, code=code, message=message)
    resp.data = body
    return resp
