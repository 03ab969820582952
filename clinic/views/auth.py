"""
Session login, logout and the current-user endpoint.

Authentication is a Django session cookie; there are no tokens.  Login
attempts are written to the audit log whether or not they succeed.
"""
from __future__ import annotations

from django.contrib.auth import authenticate, login, logout
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle

from clinic.permissions import capabilities_for
from clinic.serializers.auth import LoginSerializer
from clinic.serializers.clinic import serialize_clinic
from clinic.serializers.user import serialize_user
from clinic.services.audit import log_action


class LoginRateThrottle(AnonRateThrottle):
    scope = 'login'


def _me(user) -> dict:
    return {
        'ok': True,
        'user': serialize_user(user),
        'clinic': serialize_clinic(user.clinic) if user.clinic_id else None,
        'capabilities': sorted(capabilities_for(user)),
    }


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([LoginRateThrottle])
def login_view(request):
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    username = s.validated_data['username']
    password = s.validated_data['password']

    user = authenticate(request, username=username, password=password)
    if not user:
        log_action(user=None, action='login', object_type='user',
                   detail={'result': 'fail', 'username': username, 'ip': request.META.get('REMOTE_ADDR')})
        raise AuthenticationFailed('Usuário ou senha inválidos')

    login(request, user)
    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': request.META.get('REMOTE_ADDR')})
    return Response(_me(user))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    log_action(user=request.user, action='logout', object_type='user', object_id=request.user.id)
    logout(request)
    return Response({'ok': True})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    return Response(_me(request.user))
