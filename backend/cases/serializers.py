"""
Cases app serializers.

Contains all Request and Response serializers for the Cases API.
Serializers handle field definitions, read/write constraints, and field-level
validation only.  **No business logic or permission checks live here** —
those belong in ``services.py``.

Structure
---------
1. Filter / query-param serializers
2. Case read serializers (list, detail)
3. Case write serializers (create, update, archive)
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from rest_framework import serializers

from .models import Case, CasePriority, CaseStatus

User = get_user_model()


# ═══════════════════════════════════════════════════════════════════
#  1. Filter / Query-Parameter Serializers
# ═══════════════════════════════════════════════════════════════════


class CaseFilterSerializer(serializers.Serializer):
    """
    Validates query-parameter filters for ``GET /api/cases/``.

    Query Parameters
    ----------------
    ``status``    : str — one of ``CaseStatus`` values
    ``priority``  : str — one of ``CasePriority`` values
    ``search``    : str — free-text search against number/title/description
    """

    status = serializers.ChoiceField(choices=CaseStatus.choices, required=False)
    priority = serializers.ChoiceField(choices=CasePriority.choices, required=False)
    search = serializers.CharField(required=False, max_length=255)


# ═══════════════════════════════════════════════════════════════════
#  2. Case Read Serializers
# ═══════════════════════════════════════════════════════════════════


class CaseListSerializer(serializers.ModelSerializer):
    status_display = serializers.CharField(source="get_status_display", read_only=True)
    priority_display = serializers.CharField(source="get_priority_display", read_only=True)

    class Meta:
        model = Case
        fields = [
            "id",
            "case_number",
            "title",
            "status",
            "status_display",
            "priority",
            "priority_display",
            "due_date",
            "created_by",
            "lead_investigator",
            "assigned_to",
            "version",
            "created_at",
        ]
        read_only_fields = fields


class CaseDetailSerializer(serializers.ModelSerializer):
    """Full case representation including the accessor relations."""

    status_display = serializers.CharField(source="get_status_display", read_only=True)
    priority_display = serializers.CharField(source="get_priority_display", read_only=True)
    created_by_username = serializers.CharField(source="created_by.username", read_only=True)
    lead_investigator_username = serializers.CharField(
        source="lead_investigator.username", read_only=True, default=None,
    )
    assigned_to_username = serializers.CharField(
        source="assigned_to.username", read_only=True, default=None,
    )

    class Meta:
        model = Case
        fields = [
            "id",
            "case_number",
            "title",
            "description",
            "findings",
            "due_date",
            "status",
            "status_display",
            "priority",
            "priority_display",
            "created_by",
            "created_by_username",
            "lead_investigator",
            "lead_investigator_username",
            "assigned_to",
            "assigned_to_username",
            "version",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


# ═══════════════════════════════════════════════════════════════════
#  3. Case Write Serializers
# ═══════════════════════════════════════════════════════════════════


class CaseCreateSerializer(serializers.ModelSerializer):
    """
    Validates case creation.  ``created_by`` is always the requesting
    principal and is set by the service layer.
    """

    # Declared explicitly: a duplicate number is a 409 from the service
    # layer, not a 400 from a model-derived unique validator.
    case_number = serializers.CharField(max_length=50)
    lead_investigator = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.all(), required=False, allow_null=True,
    )
    assigned_to = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.all(), required=False, allow_null=True,
    )

    class Meta:
        model = Case
        fields = [
            "case_number",
            "title",
            "description",
            "findings",
            "due_date",
            "status",
            "priority",
            "lead_investigator",
            "assigned_to",
        ]

    def validate_case_number(self, value: str) -> str:
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Case number must not be blank.")
        return value

    def validate_status(self, value: str) -> str:
        if value == CaseStatus.ARCHIVED:
            raise serializers.ValidationError("A new case cannot start archived.")
        return value


class CaseUpdateSerializer(CaseCreateSerializer):
    """
    Partial update.  ``version`` is the counter the client last read;
    when supplied, a mismatch is reported as 409.
    """

    case_number = serializers.CharField(max_length=50, required=False)
    version = serializers.IntegerField(required=False, min_value=1, write_only=True)

    class Meta(CaseCreateSerializer.Meta):
        fields = CaseCreateSerializer.Meta.fields + ["version"]

    def validate_status(self, value: str) -> str:
        if value == CaseStatus.ARCHIVED:
            raise serializers.ValidationError("Use the archive action to archive a case.")
        return value


class CaseArchiveSerializer(serializers.Serializer):
    version = serializers.IntegerField(required=False, min_value=1)
