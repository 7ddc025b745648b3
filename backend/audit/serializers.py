"""
Audit app serializers.

Read-only: audit entries are created exclusively by
``audit.services.AuditTrail.record`` and never through the API.
"""

from __future__ import annotations

from rest_framework import serializers

from core.models import ResourceType

from .models import AuditAction, AuditLogEntry


class AuditFilterSerializer(serializers.Serializer):
    """
    Validates query-parameter filters for ``GET /api/audit/``.

    Query Parameters
    ----------------
    ``resource_type`` : str — one of ``ResourceType`` values
    ``action``        : str — one of ``AuditAction`` values
    ``resource_id``   : int — PK of the audited resource
    ``principal``     : int — PK of the acting principal (admins only,
                              or the requester's own id)
    ``limit``         : int — maximum number of entries (clamped)
    """

    resource_type = serializers.ChoiceField(
        choices=ResourceType.choices,
        required=False,
    )
    action = serializers.ChoiceField(
        choices=AuditAction.choices,
        required=False,
    )
    resource_id = serializers.IntegerField(required=False, min_value=1)
    principal = serializers.IntegerField(required=False, min_value=1)
    limit = serializers.IntegerField(required=False, min_value=1)


class AuditLogEntrySerializer(serializers.ModelSerializer):
    principal_username = serializers.CharField(
        source="principal.username",
        read_only=True,
    )

    class Meta:
        model = AuditLogEntry
        fields = [
            "id",
            "principal",
            "principal_username",
            "action",
            "resource_type",
            "resource_id",
            "details",
            "ip_address",
            "user_agent",
            "timestamp",
        ]
        read_only_fields = fields
