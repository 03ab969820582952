"""Clinic staff management."""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import User
from clinic.permissions import Capability, ClinicBound
from clinic.serializers.user import (
    UserCreateSerializer,
    UserListQuerySerializer,
    UserUpdateSerializer,
    serialize_user,
)
from clinic.services.audit import log_action


def _get_staff(clinic_id: int, pk: int) -> User:
    user = User.objects.filter(clinic_id=clinic_id, id=pk).first()
    if user is None:
        raise NotFound('Usuário não encontrado')
    return user


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, ClinicBound, Capability('users.manage', read='users.view')])
def users(request):
    clinic_id = request.user.clinic_id
    if request.method == 'GET':
        q = UserListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        qs = User.objects.filter(clinic_id=clinic_id, is_active=True)
        if q.validated_data.get('role'):
            qs = qs.filter(role=q.validated_data['role'])
        return Response([serialize_user(u) for u in qs.order_by('name', 'id')])

    s = UserCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    user = User(
        username=vd['username'],
        name=vd['name'],
        email=vd.get('email') or '',
        role=vd['role'],
        specialty=vd.get('specialty'),
        clinic_id=clinic_id,
    )
    user.set_password(vd['password'])
    user.save()
    log_action(user=request.user, action='user_create', object_type='user', object_id=user.id,
               detail={'role': user.role})
    return Response(serialize_user(user), status=201)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, ClinicBound, Capability('users.manage', read='users.view')])
def user_detail(request, pk: int):
    clinic_id = request.user.clinic_id
    user = _get_staff(clinic_id, pk)
    if request.method == 'GET':
        return Response(serialize_user(user))

    if request.method == 'DELETE':
        if user.id == request.user.id:
            raise ValidationError({'id': 'Não é possível remover o próprio usuário.'})
        # Deactivate instead of deleting: appointments and records keep their doctor.
        user.is_active = False
        user.save(update_fields=['is_active'])
        log_action(user=request.user, action='user_deactivate', object_type='user', object_id=pk)
        return Response({'ok': True})

    s = UserUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    for field in ('name', 'email', 'role', 'specialty'):
        if field in vd:
            setattr(user, field, vd[field])
    if vd.get('password'):
        user.set_password(vd['password'])
    user.save()
    log_action(user=request.user, action='user_update', object_type='user', object_id=pk,
               detail={'fields': sorted(k for k in vd if k != 'password')})
    return Response(serialize_user(user))
