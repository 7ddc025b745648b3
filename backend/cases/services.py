"""
Cases app Service Layer.

This module is the **single source of truth** for all business logic
in the ``cases`` app.  Views must remain thin: validate input via
serializers, call a service method, and return the result wrapped in
a DRF ``Response``.

Architecture
------------
- ``CaseQueryService``  — Scoped, filtered queryset construction and
                          single-case retrieval.
- ``CaseService``       — Create, update and archive.

Every mutating method runs inside ``transaction.atomic`` and records
exactly one audit entry inside the same block.  Updates go through
``versioned_update`` so concurrent writers are serialised and a stale
``version`` yields ``Conflict`` instead of a silently lost update.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from django.db import IntegrityError, transaction
from django.db.models import Q, QuerySet

from audit.models import AuditAction
from audit.services import AuditTrail
from core.domain.access import AccessPolicy, PolicyAction, ResourceRef
from core.domain.exceptions import Conflict
from core.domain.transactions import versioned_update
from core.models import ResourceType
from core.permissions_constants import Capability

from .models import Case, CaseStatus

if TYPE_CHECKING:
    from core.domain.identity import Principal

logger = logging.getLogger(__name__)


def _case_ref(case_id: int) -> ResourceRef:
    return ResourceRef(ResourceType.CASE, case_id)


# ═══════════════════════════════════════════════════════════════════
#  Case Query Service
# ═══════════════════════════════════════════════════════════════════


class CaseQueryService:
    """
    Read paths.  Listing is scoped by the access policy *before* any
    explicit filter is applied, so a filter can never widen visibility.
    """

    @staticmethod
    def get_filtered_queryset(
        principal: Principal,
        filters: dict[str, Any],
    ) -> QuerySet[Case]:
        """
        Build a policy-scoped, filtered queryset of ``Case`` objects.

        Supported filter keys:
        - ``status``   : str  (``CaseStatus`` value)
        - ``priority`` : str  (``CasePriority`` value)
        - ``search``   : str  (case number, title or description)
        """
        qs = AccessPolicy.scope_queryset(principal, ResourceType.CASE)

        if filters.get("status"):
            qs = qs.filter(status=filters["status"])
        if filters.get("priority"):
            qs = qs.filter(priority=filters["priority"])
        if filters.get("search"):
            term = filters["search"]
            qs = qs.filter(
                Q(case_number__icontains=term)
                | Q(title__icontains=term)
                | Q(description__icontains=term)
            )

        return qs.select_related(
            "created_by", "lead_investigator", "assigned_to"
        ).order_by("-created_at")

    @staticmethod
    def get_case_detail(principal: Principal, case_id: int) -> Case:
        """
        Return a single case after the policy allows ``view``.

        Raises ``PermissionDenied`` or ``NotFound`` (see
        ``AccessPolicy.require``).
        """
        AccessPolicy.require(principal, PolicyAction.VIEW, _case_ref(case_id))
        return Case.objects.select_related(
            "created_by", "lead_investigator", "assigned_to"
        ).get(pk=case_id)


# ═══════════════════════════════════════════════════════════════════
#  Case Service
# ═══════════════════════════════════════════════════════════════════


class CaseService:
    """Mutations on cases.  Cases are archived, never deleted."""

    @staticmethod
    def _ensure_case_number_free(case_number: str, exclude_pk: int | None = None) -> None:
        qs = Case.objects.filter(case_number=case_number)
        if exclude_pk is not None:
            qs = qs.exclude(pk=exclude_pk)
        if qs.exists():
            raise Conflict(f"Case number '{case_number}' is already in use.")

    @staticmethod
    @transaction.atomic
    def create_case(principal: Principal, validated_data: dict[str, Any]) -> Case:
        """
        Open a new case owned by ``principal``.

        Raises
        ------
        PermissionDenied
            The principal's role lacks ``create_case``.
        Conflict
            ``case_number`` is already in use.
        """
        AccessPolicy.require_capability(principal, Capability.CREATE_CASE)
        CaseService._ensure_case_number_free(validated_data["case_number"])

        try:
            with transaction.atomic():
                case = Case.objects.create(created_by_id=principal.id, **validated_data)
        except IntegrityError:
            raise Conflict(
                f"Case number '{validated_data['case_number']}' is already in use."
            )

        AuditTrail.record(
            principal,
            AuditAction.CREATE_CASE,
            ResourceType.CASE,
            case.pk,
            {
                "case_number": case.case_number,
                "title": case.title,
                "status": case.status,
                "priority": case.priority,
                "lead_investigator": case.lead_investigator_id,
                "assigned_to": case.assigned_to_id,
            },
        )

        logger.info("Case %s (%s) created by principal %s", case.pk, case.case_number, principal.id)
        return case

    @staticmethod
    @transaction.atomic
    def update_case(
        principal: Principal,
        case_id: int,
        validated_data: dict[str, Any],
        expected_version: int | None = None,
    ) -> Case:
        """
        Apply a partial update.

        A request that changes nothing is not a mutation: no row is
        written and no audit entry is recorded.

        Raises
        ------
        Conflict
            ``expected_version`` is stale, or the new ``case_number`` is
            taken.
        """
        AccessPolicy.require(principal, PolicyAction.CHANGE, _case_ref(case_id))

        if "case_number" in validated_data:
            CaseService._ensure_case_number_free(validated_data["case_number"], exclude_pk=case_id)

        case = Case(pk=case_id)
        try:
            with transaction.atomic():
                case, changed = versioned_update(
                    case, validated_data, expected_version=expected_version
                )
        except IntegrityError:
            raise Conflict(
                f"Case number '{validated_data.get('case_number')}' is already in use."
            )

        if changed:
            AuditTrail.record(
                principal,
                AuditAction.UPDATE_CASE,
                ResourceType.CASE,
                case.pk,
                {"changes": changed, "version": case.version},
            )
            logger.info(
                "Case %s updated by principal %s (fields: %s)",
                case.pk,
                principal.id,
                ", ".join(sorted(changed)),
            )
        return case

    @staticmethod
    @transaction.atomic
    def archive_case(
        principal: Principal,
        case_id: int,
        expected_version: int | None = None,
    ) -> Case:
        """
        Move a case to ``archived``.

        Raises
        ------
        Conflict
            The case is already archived, or ``expected_version`` is stale.
        """
        AccessPolicy.require(principal, PolicyAction.CHANGE, _case_ref(case_id))

        case, changed = versioned_update(
            Case(pk=case_id),
            {"status": CaseStatus.ARCHIVED},
            expected_version=expected_version,
        )
        if not changed:
            raise Conflict(f"Case {case.case_number} is already archived.")

        AuditTrail.record(
            principal,
            AuditAction.ARCHIVE_CASE,
            ResourceType.CASE,
            case.pk,
            {"from_status": changed["status"]["from"], "version": case.version},
        )

        logger.info("Case %s archived by principal %s", case.pk, principal.id)
        return case
