"""
Audit Service Layer.

``AuditTrail`` is the only writer of ``AuditLogEntry`` rows.  Every
mutating service in the project calls ``AuditTrail.record`` **inside**
its own ``transaction.atomic`` block, so the mutation and its audit
entry commit together: if the mutation fails no entry is written, and if
the entry insert fails the exception propagates and the mutation is
rolled back.  Nothing here swallows a storage error.

Details payloads are normalised to JSON-safe values and bounded before
storage so that a large comment body or a deeply nested structure cannot
grow the log without limit.
"""

from __future__ import annotations

import enum
import logging
import uuid
from collections.abc import Mapping
from datetime import date, datetime, time
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.db import models

from core.domain.access import AccessPolicy, PolicyAction, ResourceRef
from core.domain.exceptions import DomainError, PermissionDenied
from core.domain.transactions import require_atomic_block
from core.models import ResourceType

from .models import AuditAction, AuditLogEntry

if TYPE_CHECKING:
    from core.domain.identity import Principal

logger = logging.getLogger(__name__)

_DEFAULTS: dict[str, int] = {
    "DETAIL_TEXT_LIMIT": 255,
    "DETAIL_MAX_KEYS": 32,
    "DETAIL_MAX_DEPTH": 4,
    "LIST_DEFAULT_LIMIT": 50,
    "LIST_MAX_LIMIT": 500,
}


def audit_setting(name: str) -> int:
    """Read one ``settings.AUDIT_TRAIL`` value, falling back to the default."""
    return int(getattr(settings, "AUDIT_TRAIL", {}).get(name, _DEFAULTS[name]))


def truncate_text(text: str, limit: int | None = None) -> str:
    if limit is None:
        limit = audit_setting("DETAIL_TEXT_LIMIT")
    return text if len(text) <= limit else text[:limit]


def bound_details(value: Any, _depth: int = 0) -> Any:
    """
    Convert ``value`` into a bounded, JSON-safe structure.

    - model instances → primary key
    - enums → their value
    - dates / datetimes / times → ISO-8601 strings
    - strings → truncated to ``DETAIL_TEXT_LIMIT``
    - mappings → at most ``DETAIL_MAX_KEYS`` entries
    - sequences → at most ``DETAIL_MAX_KEYS`` items
    - nesting deeper than ``DETAIL_MAX_DEPTH`` → ``"..."``
    """
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, models.Model):
        return value.pk
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        return truncate_text(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (Decimal, uuid.UUID)):
        return str(value)

    if _depth >= audit_setting("DETAIL_MAX_DEPTH"):
        return "..."
    max_keys = audit_setting("DETAIL_MAX_KEYS")

    if isinstance(value, Mapping):
        bounded: dict[str, Any] = {}
        for key, item in list(value.items())[:max_keys]:
            bounded[truncate_text(str(bound_details(key, _depth + 1)))] = bound_details(item, _depth + 1)
        return bounded
    if isinstance(value, (list, tuple, set, frozenset)):
        items = sorted(value, key=str) if isinstance(value, (set, frozenset)) else value
        return [bound_details(item, _depth + 1) for item in list(items)[:max_keys]]

    return truncate_text(str(value))


class AuditTrail:
    """
    Append-only recorder and reader of audit entries.

    ``record`` must run inside the caller's ``transaction.atomic`` block;
    the read paths are gated by the audit read rule of the access policy
    (own entries, or everything for an admin).
    """

    @staticmethod
    def record(
        principal: Principal,
        action: str,
        resource_type: str,
        resource_id: int,
        details: Mapping[str, Any] | None = None,
    ) -> AuditLogEntry:
        """
        Insert one audit entry as part of the current unit of work.

        Raises
        ------
        RuntimeError
            If called outside ``transaction.atomic``.
        django.db.DatabaseError
            Propagated unchanged when the insert fails, so the enclosing
            mutation is rolled back.
        """
        require_atomic_block("AuditTrail.record")

        entry = AuditLogEntry.objects.create(
            principal_id=principal.id,
            action=AuditAction(action),
            resource_type=ResourceType(resource_type),
            resource_id=resource_id,
            details=bound_details(dict(details or {})),
            ip_address=principal.ip_address,
            user_agent=truncate_text(principal.user_agent or ""),
        )

        logger.info(
            "Audit: %s %s #%s by principal %s",
            entry.action,
            entry.resource_type,
            entry.resource_id,
            principal.id,
        )
        return entry

    @staticmethod
    def list_recent(
        principal: Principal,
        filters: Mapping[str, Any] | None = None,
        limit: int | None = None,
    ) -> list[AuditLogEntry]:
        """
        Return audit entries visible to ``principal``, newest first.

        Parameters
        ----------
        filters : dict, optional
            Any of ``resource_type``, ``action``, ``resource_id``,
            ``principal`` (a principal id).
        limit : int, optional
            Clamped to ``1 … LIST_MAX_LIMIT``.

        Raises
        ------
        PermissionDenied
            A non-admin asked for another principal's entries.
        DomainError
            A filter value is not a member of its closed enumeration.
        """
        filters = filters or {}

        queryset = AccessPolicy.scope_queryset(
            principal,
            ResourceType.AUDIT_ENTRY,
            AuditLogEntry.objects.select_related("principal"),
        )

        requested_principal = filters.get("principal")
        if requested_principal is not None:
            if not principal.is_admin and int(requested_principal) != principal.id:
                raise PermissionDenied(
                    "You may only list your own audit entries."
                )
            queryset = queryset.filter(principal_id=requested_principal)

        resource_type = filters.get("resource_type")
        if resource_type:
            try:
                queryset = queryset.filter(resource_type=ResourceType(resource_type))
            except ValueError:
                raise DomainError(f"Unknown resource type '{resource_type}'.")

        action = filters.get("action")
        if action:
            try:
                queryset = queryset.filter(action=AuditAction(action))
            except ValueError:
                raise DomainError(f"Unknown audit action '{action}'.")

        resource_id = filters.get("resource_id")
        if resource_id is not None:
            queryset = queryset.filter(resource_id=resource_id)

        if limit is None:
            limit = audit_setting("LIST_DEFAULT_LIMIT")
        limit = max(1, min(int(limit), audit_setting("LIST_MAX_LIMIT")))

        return list(queryset.order_by("-timestamp", "-id")[:limit])

    @staticmethod
    def get_entry(principal: Principal, entry_id: int) -> AuditLogEntry:
        """Return one entry, gated by the audit read rule."""
        AccessPolicy.require(
            principal,
            PolicyAction.VIEW,
            ResourceRef(ResourceType.AUDIT_ENTRY, entry_id),
        )
        return AuditLogEntry.objects.select_related("principal").get(pk=entry_id)
