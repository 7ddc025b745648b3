"""
Accounts Service Layer.

This module is the **single source of truth** for all business logic
within the ``accounts`` app.  Views must remain *thin*: they validate
input through serializers, call a service function / method, and
return the result wrapped in a DRF ``Response``.

Architecture
------------
- ``UserManagementService``  — listing, admin-only creation, role change.
- ``CurrentUserService``     — "Me" endpoint helpers.

Login is handled by ``CustomTokenObtainPairSerializer`` (SimpleJWT).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Q, QuerySet

from audit.models import AuditAction
from audit.services import AuditTrail
from core.domain.access import AccessPolicy
from core.domain.exceptions import Conflict, DomainError, NotFound
from core.models import ResourceType
from core.permissions_constants import Capability

from .models import Role

if TYPE_CHECKING:
    from core.domain.identity import Principal

User = get_user_model()

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  User Management Service
# ═══════════════════════════════════════════════════════════════════


class UserManagementService:
    """
    Operations on users.

    Any principal may list users (to pick assignees and custody
    recipients); creating users and changing roles requires the
    ``manage_users`` capability, which only admins hold.
    """

    @staticmethod
    def list_users(
        *,
        role: str | None = None,
        is_active: bool | None = None,
        search: str | None = None,
    ) -> QuerySet[User]:
        """
        Return a filtered queryset of users.

        ``search`` is a case-insensitive match across ``username``,
        ``email``, ``full_name`` and ``badge_number``.
        """
        qs = User.objects.all()

        if role:
            qs = qs.filter(role=Role(role))
        if is_active is not None:
            qs = qs.filter(is_active=is_active)
        if search:
            qs = qs.filter(
                Q(username__icontains=search)
                | Q(email__icontains=search)
                | Q(full_name__icontains=search)
                | Q(badge_number__icontains=search)
            )

        return qs.order_by("username")

    @staticmethod
    def get_user(user_id: int) -> User:
        try:
            return User.objects.get(pk=user_id)
        except User.DoesNotExist:
            raise NotFound(f"User with id {user_id} not found.")

    @staticmethod
    @transaction.atomic
    def create_user(principal: Principal, validated_data: dict[str, Any]) -> User:
        """
        Create a user on behalf of an admin.

        Raises
        ------
        PermissionDenied
            The principal lacks ``manage_users``.
        Conflict
            The username or email is already taken.
        """
        AccessPolicy.require_capability(principal, Capability.MANAGE_USERS)

        data = dict(validated_data)
        password = data.pop("password")

        conflicts = []
        if User.objects.filter(username=data.get("username")).exists():
            conflicts.append("username")
        if User.objects.filter(email__iexact=data.get("email")).exists():
            conflicts.append("email")
        if conflicts:
            raise Conflict(
                f"The following field(s) already exist: {', '.join(conflicts)}."
            )

        try:
            with transaction.atomic():
                user = User.objects.create_user(password=password, **data)
        except IntegrityError:
            raise Conflict(
                "A user with one of the provided unique fields already exists."
            )

        AuditTrail.record(
            principal,
            AuditAction.CREATE_USER,
            ResourceType.USER,
            user.pk,
            {"username": user.username, "role": user.role},
        )

        logger.info(
            "User %s (%s) created by principal %s",
            user.pk,
            user.role,
            principal.id,
        )
        return user

    @staticmethod
    @transaction.atomic
    def change_role(principal: Principal, user_id: int, role: str) -> User:
        """
        Assign a new role to a user.

        An admin cannot change their own role, so the system can never
        lose its last administrator through this path.
        """
        AccessPolicy.require_capability(principal, Capability.MANAGE_USERS)

        new_role = Role(role)
        try:
            target = User.objects.select_for_update().get(pk=user_id)
        except User.DoesNotExist:
            raise NotFound(f"User with id {user_id} not found.")

        if target.pk == principal.id:
            raise DomainError("You cannot change your own role.")

        old_role = target.role
        if old_role == new_role:
            return target

        target.role = new_role
        target.save(update_fields=["role"])

        AuditTrail.record(
            principal,
            AuditAction.CHANGE_ROLE,
            ResourceType.USER,
            target.pk,
            {"from": old_role, "to": new_role},
        )

        logger.info(
            "User %s role changed %s -> %s by principal %s",
            target.pk,
            old_role,
            new_role,
            principal.id,
        )
        return target


# ═══════════════════════════════════════════════════════════════════
#  Current User (Me) Service
# ═══════════════════════════════════════════════════════════════════


class CurrentUserService:
    """Helpers for the "Me" endpoint."""

    @staticmethod
    def get_profile(principal: Principal) -> User:
        """Re-read the principal's user row so the profile is current."""
        return UserManagementService.get_user(principal.id)
