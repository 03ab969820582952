from typing import Optional, Any, Dict

import structlog
from django.contrib.auth import get_user_model

from clinic.models import AuditEvent

User = get_user_model()
logger = structlog.get_logger(__name__)


def log_action(*, user: Optional[User], action: str, object_type: Optional[str]=None, object_id: Optional[int]=None, detail: Optional[Dict[str, Any]]=None) -> AuditEvent:
    actor = user if getattr(user, 'pk', None) else None
    logger.info('audit.' + action, object_type=object_type, object_id=object_id)
    return AuditEvent.objects.create(
        user=actor,
        clinic_id=getattr(actor, 'clinic_id', None),
        action=action,
        object_type=object_type, object_id=object_id,
        detail=detail or {},
    )
