"""
Accounts app serializers.

Contains all Request and Response serializers for the accounts API.
Serializers handle field definitions, read/write constraints, and
basic validation.  **No business logic** lives here — all domain
rules are delegated to ``services.py``.
"""

from __future__ import annotations

from typing import Any

from django.contrib.auth import authenticate, get_user_model
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from .models import Role

User = get_user_model()


# ═══════════════════════════════════════════════════════════════════
#  Authentication Serializers
# ═══════════════════════════════════════════════════════════════════


class LoginRequestSerializer(serializers.Serializer):
    """
    Accepts login credentials.

    The client sends ``identifier`` (a username or an email address)
    together with ``password``.
    """

    identifier = serializers.CharField(
        help_text="Username or Email.",
    )
    password = serializers.CharField(
        write_only=True,
        style={"input_type": "password"},
        help_text="User account password.",
    )


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Custom SimpleJWT serializer that:

    1. Accepts ``identifier`` + ``password`` instead of
       ``username`` + ``password``.
    2. Resolves the user via the ``UsernameOrEmailBackend``.
    3. Injects the ``role`` claim into the JWT payload so clients can
       decode the principal's role without a separate API call.
    """

    # Override the default username field with our identifier
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
        token["role"] = user.role
        token["username"] = user.username
        return token

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        """
        Authenticate using the custom backend.

        Returns a dict containing ``access`` and ``refresh``; the
        authenticated user is attached as ``self.user``.
        """
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


# ═══════════════════════════════════════════════════════════════════
#  User Serializers
# ═══════════════════════════════════════════════════════════════════


class UserListSerializer(serializers.ModelSerializer):
    """
    Serializer for listing users.
    Used to pick assignees, lead investigators and custody recipients.
    """

    role_display = serializers.CharField(
        source="get_role_display",
        read_only=True,
    )

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "full_name",
            "role",
            "role_display",
            "department",
            "is_active",
        ]
        read_only_fields = fields


class UserDetailSerializer(serializers.ModelSerializer):
    """Full user representation (used in retrieve, me, and creation response)."""

    role_display = serializers.CharField(
        source="get_role_display",
        read_only=True,
    )

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "full_name",
            "role",
            "role_display",
            "badge_number",
            "department",
            "is_active",
            "date_joined",
        ]
        read_only_fields = fields


class UserCreateSerializer(serializers.ModelSerializer):
    """
    Validates admin-driven user creation.

    The ``password`` field is write-only and is hashed by the service
    layer before persisting.
    """

    password = serializers.CharField(
        write_only=True,
        min_length=8,
        style={"input_type": "password"},
        help_text="Minimum 8 characters.",
    )
    # Declared explicitly: uniqueness is reported as 409 by the service
    # layer, not as 400 by a model-derived validator.
    username = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    role = serializers.ChoiceField(
        choices=Role.choices,
        default=Role.ANALYST,
    )

    class Meta:
        model = User
        fields = [
            "username",
            "password",
            "email",
            "full_name",
            "role",
            "badge_number",
            "department",
        ]


class ChangeRoleSerializer(serializers.Serializer):
    """
    Accepts the new ``role`` for a user.

    Used by the ``change-role`` action on ``UserViewSet``.
    """

    role = serializers.ChoiceField(
        choices=Role.choices,
        help_text="One of: admin, investigator, analyst, legal.",
    )
