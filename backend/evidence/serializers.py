"""
Evidence app serializers.

Contains all Request and Response serializers for the Evidence API.
Serializers handle field definitions, read/write constraints, and field-level
/ object-level validation only.  **No business logic or permission checks
live here** — those belong in ``services.py``.

Structure
---------
1. Filter / query-param serializers
2. Evidence read serializers (list, detail)
3. Evidence write serializers (upload, update, status, tagging)
4. Tag serializers
5. Chain-of-custody serializers
"""

from __future__ import annotations

from typing import Any

from django.contrib.auth import get_user_model
from rest_framework import serializers

from .models import (
    ChainOfCustodyEntry,
    CustodyAction,
    Evidence,
    EvidenceStatus,
    Tag,
)

User = get_user_model()


# ═══════════════════════════════════════════════════════════════════
#  1. Filter / Query-Parameter Serializers
# ═══════════════════════════════════════════════════════════════════


class EvidenceFilterSerializer(serializers.Serializer):
    """
    Validates query-parameter filters for ``GET /api/evidence/``.

    Query Parameters
    ----------------
    ``case``    : int — PK of the parent case
    ``status``  : str — one of ``EvidenceStatus`` values
    ``tag``     : int — PK of a tag
    ``search``  : str — title, description, file name or exact hash
    """

    case = serializers.IntegerField(required=False, min_value=1)
    status = serializers.ChoiceField(choices=EvidenceStatus.choices, required=False)
    tag = serializers.IntegerField(required=False, min_value=1)
    search = serializers.CharField(required=False, max_length=255)


# ═══════════════════════════════════════════════════════════════════
#  2. Evidence Read Serializers
# ═══════════════════════════════════════════════════════════════════


class TagSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Tag
        fields = ["id", "name", "color"]
        read_only_fields = fields


class EvidenceListSerializer(serializers.ModelSerializer):
    status_display = serializers.CharField(source="get_status_display", read_only=True)
    tags = TagSummarySerializer(many=True, read_only=True)

    class Meta:
        model = Evidence
        fields = [
            "id",
            "case",
            "title",
            "file_name",
            "file_type",
            "status",
            "status_display",
            "uploaded_by",
            "tags",
            "version",
            "created_at",
        ]
        read_only_fields = fields


class EvidenceDetailSerializer(serializers.ModelSerializer):
    status_display = serializers.CharField(source="get_status_display", read_only=True)
    case_number = serializers.CharField(source="case.case_number", read_only=True)
    uploaded_by_username = serializers.CharField(source="uploaded_by.username", read_only=True)
    tags = TagSummarySerializer(many=True, read_only=True)

    class Meta:
        model = Evidence
        fields = [
            "id",
            "case",
            "case_number",
            "title",
            "description",
            "file_name",
            "file_path",
            "file_size",
            "file_type",
            "hash_value",
            "status",
            "status_display",
            "collected_date",
            "collected_by",
            "location_found",
            "uploaded_by",
            "uploaded_by_username",
            "tags",
            "version",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


# ═══════════════════════════════════════════════════════════════════
#  3. Evidence Write Serializers
# ═══════════════════════════════════════════════════════════════════


class EvidenceUploadSerializer(serializers.ModelSerializer):
    """
    Validates evidence upload metadata.

    ``case`` is a bare integer so that an unknown or inaccessible case is
    reported by the access policy (403 / 404), not as a 400 here.
    """

    case = serializers.IntegerField(min_value=1)
    tags = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        required=False,
        allow_empty=True,
    )

    class Meta:
        model = Evidence
        fields = [
            "case",
            "title",
            "description",
            "file_name",
            "file_path",
            "file_size",
            "file_type",
            "hash_value",
            "status",
            "collected_date",
            "collected_by",
            "location_found",
            "tags",
        ]

    def validate_title(self, value: str) -> str:
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Title must not be blank.")
        return value


class EvidenceUpdateSerializer(serializers.ModelSerializer):
    """
    Partial metadata update.  ``case`` and ``status`` are not editable
    here; ``version`` is the optimistic-lock counter the client last read.
    """

    version = serializers.IntegerField(required=False, min_value=1, write_only=True)

    class Meta:
        model = Evidence
        fields = [
            "title",
            "description",
            "file_name",
            "file_path",
            "file_size",
            "file_type",
            "hash_value",
            "collected_date",
            "collected_by",
            "location_found",
            "version",
        ]


class EvidenceStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=EvidenceStatus.choices)
    version = serializers.IntegerField(required=False, min_value=1)


class EvidenceTagSerializer(serializers.Serializer):
    tag = serializers.IntegerField(min_value=1)


# ═══════════════════════════════════════════════════════════════════
#  4. Tag Serializers
# ═══════════════════════════════════════════════════════════════════


class TagSerializer(serializers.ModelSerializer):
    created_by_username = serializers.CharField(source="created_by.username", read_only=True)

    class Meta:
        model = Tag
        fields = ["id", "name", "color", "created_by", "created_by_username", "created_at"]
        read_only_fields = fields


class TagWriteSerializer(serializers.ModelSerializer):
    # Declared explicitly: a duplicate name is a 409 from the service layer.
    name = serializers.CharField(max_length=100)
    color = serializers.RegexField(
        regex=r"^#[0-9a-fA-F]{6}$",
        required=False,
        help_text="Hex colour, e.g. #3b82f6.",
    )

    class Meta:
        model = Tag
        fields = ["name", "color"]

    def validate_name(self, value: str) -> str:
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Name must not be blank.")
        return value


# ═══════════════════════════════════════════════════════════════════
#  5. Chain-of-Custody Serializers
# ═══════════════════════════════════════════════════════════════════


class CustodyAppendSerializer(serializers.Serializer):
    """
    Request body for ``POST /api/evidence/{id}/custody/``.

    Only shape is checked here.  The ledger validates the rest (at least
    one of from/to, principals exist, location not blank) so that the
    rules hold for every caller, not just HTTP.
    """

    action = serializers.ChoiceField(choices=CustodyAction.choices)
    from_principal = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    to_principal = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    location = serializers.CharField(max_length=255, allow_blank=True, required=False, default="")
    notes = serializers.CharField(allow_blank=True, required=False, default="")

    def to_ledger_kwargs(self) -> dict[str, Any]:
        data = self.validated_data
        return {
            "action": data["action"],
            "from_principal_id": data.get("from_principal"),
            "to_principal_id": data.get("to_principal"),
            "location": data.get("location", ""),
            "notes": data.get("notes", ""),
        }


class ChainOfCustodyEntrySerializer(serializers.ModelSerializer):
    """Read-only representation of one ledger entry."""

    action_display = serializers.CharField(source="get_action_display", read_only=True)
    from_principal_username = serializers.CharField(
        source="from_principal.username", read_only=True, default=None,
    )
    to_principal_username = serializers.CharField(
        source="to_principal.username", read_only=True, default=None,
    )

    class Meta:
        model = ChainOfCustodyEntry
        fields = [
            "id",
            "evidence",
            "sequence",
            "action",
            "action_display",
            "from_principal",
            "from_principal_username",
            "to_principal",
            "to_principal_username",
            "location",
            "notes",
            "timestamp",
            "recorded_by",
            "previous_hash",
            "entry_hash",
        ]
        read_only_fields = fields


class ChainVerificationSerializer(serializers.Serializer):
    evidence_id = serializers.IntegerField()
    entries = serializers.IntegerField()
    valid = serializers.BooleanField()
    first_invalid_sequence = serializers.IntegerField(allow_null=True)
    reason = serializers.CharField(allow_blank=True)
