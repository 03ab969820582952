from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers

from clinic.models import User

# Clinic staff may not mint super admins.
ASSIGNABLE_ROLES = [r for r, _ in User.ROLE_CHOICES if r != User.ROLE_SUPER_ADMIN]


class UserCreateSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150)
    password = serializers.CharField(write_only=True, min_length=8)
    name = serializers.CharField(max_length=255)
    email = serializers.EmailField(required=False, allow_blank=True)
    role = serializers.ChoiceField(choices=ASSIGNABLE_ROLES)
    specialty = serializers.CharField(max_length=128, required=False, allow_blank=True, allow_null=True)

    def validate_username(self, v):
        v = (v or '').strip()
        if User.objects.filter(username=v).exists():
            raise serializers.ValidationError('Nome de usuário já existe')
        return v

    def validate_password(self, v):
        validate_password(v)
        return v


class UserUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False)
    email = serializers.EmailField(required=False, allow_blank=True)
    role = serializers.ChoiceField(choices=ASSIGNABLE_ROLES, required=False)
    specialty = serializers.CharField(max_length=128, required=False, allow_blank=True, allow_null=True)
    password = serializers.CharField(write_only=True, min_length=8, required=False)

    def validate_password(self, v):
        validate_password(v)
        return v


class UserListQuerySerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES, required=False)


def serialize_user(u: User) -> dict:
    return {
        'id': u.id,
        'username': u.username,
        'name': u.display_name,
        'email': u.email,
        'role': u.role,
        'specialty': u.specialty,
        'clinicId': u.clinic_id,
    }
