"""
Accounts app serializers.

Request and response serializers for login, the current-user profile
and the worker roster.  Credential checks are delegated to the
``UsernameOrEmailBackend`` through ``django.contrib.auth.authenticate``.
"""

from __future__ import annotations

from typing import Any

from django.contrib.auth import authenticate, get_user_model
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from core.domain.access import get_user_role_name

from .models import Worker

User = get_user_model()


# ═══════════════════════════════════════════════════════════════════
#  Authentication Serializers
# ═══════════════════════════════════════════════════════════════════


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    SimpleJWT serializer that:

    1. Accepts ``identifier`` + ``password`` instead of
       ``username`` + ``password``.
    2. Resolves the user via ``UsernameOrEmailBackend``.
    3. Injects the ``role`` claim into the token payload.
    """

    username_field = "identifier"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields.pop(self.username_field, None)
        self.fields["identifier"] = serializers.CharField(
            help_text="Username or Email.",
        )

    @classmethod
    def get_token(cls, user) -> Any:
        token = super().get_token(user)
        token["role"] = get_user_role_name(user)
        return token

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        user = authenticate(
            request=self.context.get("request"),
            identifier=attrs.get("identifier"),
            password=attrs.get("password"),
        )

        if user is None:
            raise serializers.ValidationError(
                {"detail": "Invalid credentials."},
                code="authentication",
            )

        refresh = self.get_token(user)
        self.user = user
        return {
            "access": str(refresh.access_token),
            "refresh": str(refresh),
        }


class TokenResponseSerializer(serializers.Serializer):
    """
    Serializes the JWT token pair returned after successful login.
    """

    access = serializers.CharField(read_only=True)
    refresh = serializers.CharField(read_only=True)
    user = serializers.SerializerMethodField()

    def get_user(self, obj: dict) -> dict | None:
        user = obj.get("user")
        if user:
            return UserDetailSerializer(user).data
        return None


# ═══════════════════════════════════════════════════════════════════
#  User / Worker Serializers
# ═══════════════════════════════════════════════════════════════════


class UserDetailSerializer(serializers.ModelSerializer):
    """
    Current-user profile.  ``role`` is the *resolved* role, so
    superusers report ``admin``; ``worker_id`` is set for roster members.
    """

    role = serializers.SerializerMethodField()
    worker_id = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "first_name",
            "last_name",
            "role",
            "worker_id",
        ]
        read_only_fields = fields

    def get_role(self, obj) -> str | None:
        return get_user_role_name(obj)

    def get_worker_id(self, obj) -> int | None:
        worker = Worker.objects.filter(user=obj).only("pk").first()
        return worker.pk if worker else None


class WorkerSerializer(serializers.ModelSerializer):
    """Read-only roster entry used by the assignment UI."""

    email = serializers.CharField(source="contact_email", read_only=True)

    class Meta:
        model = Worker
        fields = ["id", "display_name", "email", "phone", "area", "is_active"]
        read_only_fields = fields
