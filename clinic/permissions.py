"""
Capability based access control.

Roles are mapped to capability sets in ``ROLE_CAPABILITIES``; routes ask
for a capability, never for a role.  ``Capability('appointments.book')``
builds a DRF permission class for use in ``@permission_classes``.
"""
from __future__ import annotations

from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import BasePermission

CAPABILITIES = frozenset({
    'appointments.view',
    'appointments.book',
    'appointments.edit',
    'appointments.delete',
    'appointments.status',
    'appointments.checkin',
    'triage.write',
    'availability.view',
    'availability.manage',
    'patients.view',
    'patients.manage',
    'records.view',
    'records.write',
    'records.sign',
    'users.view',
    'users.manage',
    'clinics.manage',
    'inventory.view',
    'inventory.manage',
    'billing.view',
    'billing.manage',
    'dashboard.view',
})

_STAFF_COMMON = {
    'appointments.view',
    'availability.view',
    'patients.view',
    'users.view',
    'dashboard.view',
}

ROLE_CAPABILITIES: dict[str, frozenset[str]] = {
    'super_admin': CAPABILITIES,
    'admin': frozenset(CAPABILITIES - {'clinics.manage', 'records.write', 'records.sign'}),
    'doctor': frozenset(_STAFF_COMMON | {
        'appointments.book',
        'appointments.edit',
        'appointments.status',
        'triage.write',
        'availability.manage',
        'records.view',
        'records.write',
        'records.sign',
    }),
    'operator': frozenset(_STAFF_COMMON | {
        'appointments.book',
        'appointments.edit',
        'appointments.delete',
        'appointments.status',
        'appointments.checkin',
        'availability.manage',
        'patients.manage',
        'billing.view',
        'billing.manage',
    }),
    'nurse': frozenset(_STAFF_COMMON | {
        'appointments.status',
        'triage.write',
        'records.view',
        'inventory.view',
        'inventory.manage',
    }),
}


def capabilities_for(user) -> frozenset[str]:
    if not user or not getattr(user, 'is_authenticated', False):
        return frozenset()
    return ROLE_CAPABILITIES.get(getattr(user, 'role', None), frozenset())


def has_capability(user, capability: str) -> bool:
    return capability in capabilities_for(user)


def require_capability(user, capability: str) -> None:
    """Raise 403 unless ``user`` holds ``capability``.

    For checks that depend on the request body rather than the route.
    """
    if not has_capability(user, capability):
        raise PermissionDenied('Você não tem permissão para esta ação.')


class HasCapability(BasePermission):
    """Allow access when the user's role grants ``capability``.

    ``safe_capability`` (if set) is required instead for GET/HEAD/OPTIONS,
    letting one view serve a read capability and a write capability.
    """
    capability: str = ''
    safe_capability: str | None = None
    message = 'Você não tem permissão para esta ação.'

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        needed = self.capability
        if self.safe_capability and request.method in ('GET', 'HEAD', 'OPTIONS'):
            needed = self.safe_capability
        return has_capability(getattr(request, 'user', None), needed)


def Capability(capability: str, *, read: str | None = None) -> type[HasCapability]:
    """Return a permission class requiring ``capability`` (``read`` for safe methods)."""
    for c in (capability, read):
        if c is not None and c not in CAPABILITIES:
            raise ValueError(f'unknown capability: {c}')
    name = 'Has_' + capability.replace('.', '_')
    return type(name, (HasCapability,), {'capability': capability, 'safe_capability': read})


class ClinicBound(BasePermission):
    """Tenant-scoped routes need a user bound to a clinic."""
    message = 'Usuário não vinculado a uma clínica.'

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, 'user', None)
        return bool(user and user.is_authenticated and getattr(user, 'clinic_id', None))
