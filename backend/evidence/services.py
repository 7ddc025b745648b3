"""
Evidence app Service Layer.

This module is the **single source of truth** for all business logic
in the ``evidence`` app.  Views must remain thin: validate input via
serializers, call a service method, and return the result wrapped in
a DRF ``Response``.

Architecture
------------
- ``EvidenceQueryService``      — Scoped queryset construction & retrieval.
- ``EvidenceProcessingService`` — Upload, metadata update, status change.
- ``EvidenceTaggingService``    — Attach / detach tags on an evidence item.
- ``TagService``                — Tag CRUD.
- ``ChainOfCustodyLedger``      — Append-only, hash-chained custody ledger.

Every mutating method runs inside ``transaction.atomic`` and writes its
audit entry (and, for custody, the ledger row) inside the same block.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Q, QuerySet
from django.utils import timezone

from audit.models import AuditAction
from audit.services import AuditTrail, truncate_text
from core.domain.access import AccessPolicy, PolicyAction, ResourceRef
from core.domain.exceptions import Conflict, DomainError, NotFound
from core.domain.transactions import (
    lock_for_update,
    require_atomic_block,
    versioned_update,
)
from core.models import ResourceType
from core.permissions_constants import Capability

from .models import (
    GENESIS_HASH,
    ChainOfCustodyEntry,
    CustodyAction,
    Evidence,
    EvidenceStatus,
    Tag,
)

if TYPE_CHECKING:
    from core.domain.identity import Principal

User = get_user_model()

logger = logging.getLogger(__name__)


def _evidence_ref(evidence_id: int) -> ResourceRef:
    return ResourceRef(ResourceType.EVIDENCE, evidence_id)


def _tag_ref(tag_id: int) -> ResourceRef:
    return ResourceRef(ResourceType.TAG, tag_id)


# ═══════════════════════════════════════════════════════════════════
#  Evidence Query Service
# ═══════════════════════════════════════════════════════════════════


class EvidenceQueryService:
    """
    Read paths.  Listing is scoped by the access policy before explicit
    filters are applied.  A principal who holds custody of one item sees
    that item and nothing else of its case.
    """

    @staticmethod
    def get_filtered_queryset(
        principal: Principal,
        filters: dict[str, Any],
    ) -> QuerySet[Evidence]:
        """
        Build a policy-scoped, filtered queryset of ``Evidence``.

        Supported filter keys:
        - ``case``   : int  (case PK)
        - ``status`` : str  (``EvidenceStatus`` value)
        - ``tag``    : int  (tag PK)
        - ``search`` : str  (title, description, file name, hash)
        """
        qs = AccessPolicy.scope_queryset(principal, ResourceType.EVIDENCE)

        if filters.get("case"):
            qs = qs.filter(case_id=filters["case"])
        if filters.get("status"):
            qs = qs.filter(status=filters["status"])
        if filters.get("tag"):
            qs = qs.filter(tags__id=filters["tag"])
        if filters.get("search"):
            term = filters["search"]
            qs = qs.filter(
                Q(title__icontains=term)
                | Q(description__icontains=term)
                | Q(file_name__icontains=term)
                | Q(hash_value__iexact=term)
            )

        return (
            qs.select_related("case", "uploaded_by")
            .prefetch_related("tags")
            .order_by("-created_at")
        )

    @staticmethod
    def get_evidence_detail(principal: Principal, evidence_id: int) -> Evidence:
        AccessPolicy.require(principal, PolicyAction.VIEW, _evidence_ref(evidence_id))
        return (
            Evidence.objects.select_related("case", "uploaded_by")
            .prefetch_related("tags")
            .get(pk=evidence_id)
        )


# ═══════════════════════════════════════════════════════════════════
#  Evidence Processing Service
# ═══════════════════════════════════════════════════════════════════


class EvidenceProcessingService:
    """Upload and modification of evidence items.  Nothing is ever deleted."""

    @staticmethod
    def _resolve_tags(tag_ids: list[int]) -> list[Tag]:
        tags = list(Tag.objects.filter(pk__in=tag_ids))
        missing = set(tag_ids) - {t.pk for t in tags}
        if missing:
            raise DomainError(f"Unknown tag id(s): {sorted(missing)}.")
        return tags

    @staticmethod
    @transaction.atomic
    def upload_evidence(
        principal: Principal,
        validated_data: dict[str, Any],
    ) -> Evidence:
        """
        Register a new evidence item on a case.

        Requires the ``upload_evidence`` capability *and* change access
        to the target case.  Exactly one ``AddEvidence`` audit entry is
        recorded; no custody entry is created implicitly.
        """
        AccessPolicy.require_capability(principal, Capability.UPLOAD_EVIDENCE)

        data = dict(validated_data)
        case_id = data.pop("case")
        tag_ids = data.pop("tags", None) or []

        AccessPolicy.require(
            principal, PolicyAction.CHANGE, ResourceRef(ResourceType.CASE, case_id)
        )
        tags = EvidenceProcessingService._resolve_tags(tag_ids)

        evidence = Evidence.objects.create(
            case_id=case_id,
            uploaded_by_id=principal.id,
            **data,
        )
        if tags:
            evidence.tags.set(tags)

        AuditTrail.record(
            principal,
            AuditAction.ADD_EVIDENCE,
            ResourceType.EVIDENCE,
            evidence.pk,
            {
                "case": case_id,
                "title": evidence.title,
                "file_name": evidence.file_name,
                "file_size": evidence.file_size,
                "hash_value": evidence.hash_value,
                "status": evidence.status,
                "tags": [t.pk for t in tags],
            },
        )

        logger.info(
            "Evidence %s uploaded to case %s by principal %s",
            evidence.pk,
            case_id,
            principal.id,
        )
        return evidence

    @staticmethod
    @transaction.atomic
    def update_evidence(
        principal: Principal,
        evidence_id: int,
        validated_data: dict[str, Any],
        expected_version: int | None = None,
    ) -> Evidence:
        """
        Update metadata fields.  ``status`` has its own operation and the
        parent case cannot change.  A no-op request records nothing.
        """
        AccessPolicy.require(principal, PolicyAction.CHANGE, _evidence_ref(evidence_id))

        evidence, changed = versioned_update(
            Evidence(pk=evidence_id),
            validated_data,
            expected_version=expected_version,
        )
        if changed:
            AuditTrail.record(
                principal,
                AuditAction.UPDATE_EVIDENCE,
                ResourceType.EVIDENCE,
                evidence.pk,
                {"changes": changed, "version": evidence.version},
            )
            logger.info(
                "Evidence %s updated by principal %s (fields: %s)",
                evidence.pk,
                principal.id,
                ", ".join(sorted(changed)),
            )
        return evidence

    @staticmethod
    @transaction.atomic
    def change_status(
        principal: Principal,
        evidence_id: int,
        new_status: str,
        expected_version: int | None = None,
    ) -> Evidence:
        """
        Set ``status`` to any ``EvidenceStatus`` value.  No transition
        grammar is enforced: every status may follow every other.
        """
        AccessPolicy.require(principal, PolicyAction.CHANGE, _evidence_ref(evidence_id))

        evidence, changed = versioned_update(
            Evidence(pk=evidence_id),
            {"status": EvidenceStatus(new_status)},
            expected_version=expected_version,
        )
        if changed:
            AuditTrail.record(
                principal,
                AuditAction.CHANGE_EVIDENCE_STATUS,
                ResourceType.EVIDENCE,
                evidence.pk,
                {
                    "from": changed["status"]["from"],
                    "to": changed["status"]["to"],
                    "version": evidence.version,
                },
            )
            logger.info(
                "Evidence %s status %s -> %s by principal %s",
                evidence.pk,
                changed["status"]["from"],
                changed["status"]["to"],
                principal.id,
            )
        return evidence


# ═══════════════════════════════════════════════════════════════════
#  Evidence Tagging Service
# ═══════════════════════════════════════════════════════════════════


class EvidenceTaggingService:
    """
    Evidence↔tag association.  Gated by change access to the evidence;
    tags themselves carry no access semantics.
    """

    @staticmethod
    @transaction.atomic
    def add_tag(principal: Principal, evidence_id: int, tag_id: int) -> Evidence:
        AccessPolicy.require(principal, PolicyAction.CHANGE, _evidence_ref(evidence_id))
        AccessPolicy.require(principal, PolicyAction.VIEW, _tag_ref(tag_id))

        evidence = lock_for_update(Evidence, evidence_id)
        if evidence.tags.filter(pk=tag_id).exists():
            return evidence

        tag = Tag.objects.get(pk=tag_id)
        evidence.tags.add(tag)

        AuditTrail.record(
            principal,
            AuditAction.TAG_EVIDENCE,
            ResourceType.EVIDENCE,
            evidence.pk,
            {"tag": tag.pk, "tag_name": tag.name},
        )
        logger.info("Evidence %s tagged %r by principal %s", evidence.pk, tag.name, principal.id)
        return evidence

    @staticmethod
    @transaction.atomic
    def remove_tag(principal: Principal, evidence_id: int, tag_id: int) -> Evidence:
        AccessPolicy.require(principal, PolicyAction.CHANGE, _evidence_ref(evidence_id))

        evidence = lock_for_update(Evidence, evidence_id)
        tag = evidence.tags.filter(pk=tag_id).first()
        if tag is None:
            raise NotFound(f"Evidence {evidence_id} does not carry tag {tag_id}.")

        evidence.tags.remove(tag)

        AuditTrail.record(
            principal,
            AuditAction.UNTAG_EVIDENCE,
            ResourceType.EVIDENCE,
            evidence.pk,
            {"tag": tag.pk, "tag_name": tag.name},
        )
        logger.info("Evidence %s untagged %r by principal %s", evidence.pk, tag.name, principal.id)
        return evidence


# ═══════════════════════════════════════════════════════════════════
#  Tag Service
# ═══════════════════════════════════════════════════════════════════


class TagService:
    """
    Tag CRUD.  Everyone may read tags; creation needs ``manage_tags``;
    update and delete are for the tag's creator or an admin.
    """

    @staticmethod
    def list_tags(principal: Principal, search: str | None = None) -> QuerySet[Tag]:
        qs = AccessPolicy.scope_queryset(principal, ResourceType.TAG)
        if search:
            qs = qs.filter(name__icontains=search)
        return qs.select_related("created_by").order_by("name")

    @staticmethod
    def get_tag(principal: Principal, tag_id: int) -> Tag:
        AccessPolicy.require(principal, PolicyAction.VIEW, _tag_ref(tag_id))
        return Tag.objects.select_related("created_by").get(pk=tag_id)

    @staticmethod
    def _ensure_name_free(name: str, exclude_pk: int | None = None) -> None:
        qs = Tag.objects.filter(name__iexact=name)
        if exclude_pk is not None:
            qs = qs.exclude(pk=exclude_pk)
        if qs.exists():
            raise Conflict(f"A tag named '{name}' already exists.")

    @staticmethod
    @transaction.atomic
    def create_tag(principal: Principal, validated_data: dict[str, Any]) -> Tag:
        AccessPolicy.require_capability(principal, Capability.MANAGE_TAGS)
        TagService._ensure_name_free(validated_data["name"])

        try:
            with transaction.atomic():
                tag = Tag.objects.create(created_by_id=principal.id, **validated_data)
        except IntegrityError:
            raise Conflict(f"A tag named '{validated_data['name']}' already exists.")

        AuditTrail.record(
            principal,
            AuditAction.CREATE_TAG,
            ResourceType.TAG,
            tag.pk,
            {"name": tag.name, "color": tag.color},
        )
        logger.info("Tag %s (%r) created by principal %s", tag.pk, tag.name, principal.id)
        return tag

    @staticmethod
    @transaction.atomic
    def update_tag(principal: Principal, tag_id: int, validated_data: dict[str, Any]) -> Tag:
        AccessPolicy.require(principal, PolicyAction.CHANGE, _tag_ref(tag_id))
        if "name" in validated_data:
            TagService._ensure_name_free(validated_data["name"], exclude_pk=tag_id)

        tag = lock_for_update(Tag, tag_id)
        changed: dict[str, dict[str, Any]] = {}
        for field_name, value in validated_data.items():
            old = getattr(tag, field_name)
            if old != value:
                changed[field_name] = {"from": old, "to": value}
                setattr(tag, field_name, value)
        if not changed:
            return tag

        try:
            with transaction.atomic():
                tag.save(update_fields=[*changed, "updated_at"])
        except IntegrityError:
            raise Conflict(f"A tag named '{validated_data.get('name')}' already exists.")

        AuditTrail.record(
            principal,
            AuditAction.UPDATE_TAG,
            ResourceType.TAG,
            tag.pk,
            {"changes": changed},
        )
        logger.info("Tag %s updated by principal %s", tag.pk, principal.id)
        return tag

    @staticmethod
    @transaction.atomic
    def delete_tag(principal: Principal, tag_id: int) -> None:
        """Delete a tag; its evidence associations go with it."""
        AccessPolicy.require(principal, PolicyAction.DELETE, _tag_ref(tag_id))

        tag = lock_for_update(Tag, tag_id)
        details = {
            "name": tag.name,
            "evidence": list(tag.evidence_items.values_list("pk", flat=True)),
        }
        tag.delete()

        AuditTrail.record(
            principal,
            AuditAction.DELETE_TAG,
            ResourceType.TAG,
            tag_id,
            details,
        )
        logger.info("Tag %s deleted by principal %s", tag_id, principal.id)


# ═══════════════════════════════════════════════════════════════════
#  Chain-of-Custody Ledger
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ChainVerification:
    """Outcome of re-computing an evidence item's custody hash chain."""

    evidence_id: int
    entries: int
    valid: bool
    first_invalid_sequence: int | None = None
    reason: str = ""


class ChainOfCustodyLedger:
    """
    Append-only custody ledger.

    ``append`` serialises writers for the same evidence item with a row
    lock on the evidence, so concurrent appends both succeed and receive
    distinct ``sequence`` numbers and strictly increasing timestamps.
    A successful append with a ``to_principal`` immediately widens that
    principal's view of the item: the access policy reads the ledger on
    every evaluation.
    """

    @staticmethod
    def _validate_principals(*principal_ids: int | None) -> None:
        supplied = {pid for pid in principal_ids if pid is not None}
        if not supplied:
            raise DomainError(
                "A custody entry requires at least one of from_principal / to_principal."
            )
        existing = set(User.objects.filter(pk__in=supplied).values_list("pk", flat=True))
        unknown = supplied - existing
        if unknown:
            raise DomainError(f"Unknown principal id(s): {sorted(unknown)}.")

    @staticmethod
    def _next_timestamp(last: ChainOfCustodyEntry | None) -> datetime.datetime:
        now = timezone.now()
        if last is not None and now <= last.timestamp:
            now = last.timestamp + datetime.timedelta(microseconds=1)
        return now

    @staticmethod
    def _write_entry(
        principal: Principal,
        evidence: Evidence,
        **fields: Any,
    ) -> ChainOfCustodyEntry:
        require_atomic_block("ChainOfCustodyLedger._write_entry")

        last = (
            ChainOfCustodyEntry.objects.filter(evidence=evidence)
            .order_by("-sequence")
            .first()
        )
        entry = ChainOfCustodyEntry(
            evidence=evidence,
            sequence=last.sequence + 1 if last else 1,
            timestamp=ChainOfCustodyLedger._next_timestamp(last),
            recorded_by_id=principal.id,
            previous_hash=last.entry_hash if last else GENESIS_HASH,
            **fields,
        )
        entry.entry_hash = entry.compute_hash()
        entry.save()
        return entry

    @staticmethod
    @transaction.atomic
    def append(
        principal: Principal,
        evidence_id: int,
        action: str,
        from_principal_id: int | None = None,
        to_principal_id: int | None = None,
        location: str = "",
        notes: str = "",
    ) -> ChainOfCustodyEntry:
        """
        Record one custody event.

        Raises
        ------
        PermissionDenied
            Missing ``append_custody`` capability or change access to
            the evidence.
        NotFound
            The evidence does not exist.
        DomainError
            Unknown action, blank location, neither from nor to given,
            or an unknown principal id.
        """
        AccessPolicy.require_capability(principal, Capability.APPEND_CUSTODY)
        AccessPolicy.require(principal, PolicyAction.CHANGE, _evidence_ref(evidence_id))

        try:
            custody_action = CustodyAction(action)
        except ValueError:
            raise DomainError(f"Unknown custody action '{action}'.")

        location = (location or "").strip()
        if not location:
            raise DomainError("A custody entry requires a location.")

        ChainOfCustodyLedger._validate_principals(from_principal_id, to_principal_id)

        evidence = lock_for_update(Evidence, evidence_id)
        entry = ChainOfCustodyLedger._write_entry(
            principal,
            evidence,
            action=custody_action,
            from_principal_id=from_principal_id,
            to_principal_id=to_principal_id,
            location=location,
            notes=notes or "",
        )

        AuditTrail.record(
            principal,
            AuditAction.APPEND_CUSTODY,
            ResourceType.CUSTODY_ENTRY,
            entry.pk,
            {
                "evidence": evidence.pk,
                "sequence": entry.sequence,
                "action": entry.action,
                "from_principal": from_principal_id,
                "to_principal": to_principal_id,
                "location": location,
                "notes": truncate_text(entry.notes),
            },
        )

        logger.info(
            "Custody #%s (%s) appended to evidence %s by principal %s",
            entry.sequence,
            entry.action,
            evidence.pk,
            principal.id,
        )
        return entry

    @staticmethod
    def list_for(principal: Principal, evidence_id: int) -> list[ChainOfCustodyEntry]:
        """Custody entries for one item, newest first."""
        AccessPolicy.require(principal, PolicyAction.VIEW, _evidence_ref(evidence_id))
        return list(
            ChainOfCustodyEntry.objects.filter(evidence_id=evidence_id)
            .select_related("from_principal", "to_principal", "recorded_by")
            .order_by("-timestamp", "-sequence")
        )

    @staticmethod
    def verify_chain(principal: Principal, evidence_id: int) -> ChainVerification:
        """
        Walk the chain oldest-first and report the first broken link:
        a gap in ``sequence``, a ``previous_hash`` that does not match the
        prior entry, an ``entry_hash`` that does not match the content,
        or a timestamp that does not increase.
        """
        AccessPolicy.require(principal, PolicyAction.VIEW, _evidence_ref(evidence_id))

        entries = ChainOfCustodyEntry.objects.filter(evidence_id=evidence_id).order_by("sequence")
        previous: ChainOfCustodyEntry | None = None
        count = 0
        for entry in entries:
            count += 1
            expected_sequence = previous.sequence + 1 if previous else 1
            expected_previous = previous.entry_hash if previous else GENESIS_HASH

            reason = ""
            if entry.sequence != expected_sequence:
                reason = f"sequence gap: expected {expected_sequence}"
            elif entry.previous_hash != expected_previous:
                reason = "previous_hash does not match the prior entry"
            elif entry.compute_hash() != entry.entry_hash:
                reason = "entry_hash does not match the entry content"
            elif previous is not None and entry.timestamp <= previous.timestamp:
                reason = "timestamp does not increase"

            if reason:
                logger.warning(
                    "Custody chain for evidence %s broken at #%s: %s",
                    evidence_id,
                    entry.sequence,
                    reason,
                )
                return ChainVerification(
                    evidence_id=evidence_id,
                    entries=entries.count(),
                    valid=False,
                    first_invalid_sequence=entry.sequence,
                    reason=reason,
                )
            previous = entry

        return ChainVerification(evidence_id=evidence_id, entries=count, valid=True)
