"""
core.domain.access — The access policy (single source of truth).

Every read and every write in the service layer is preceded by exactly
one call into this module.  There is no other copy of the rules: list
endpoints, detail endpoints and mutation guards all derive their filters
from the relation paths declared below.

╔══════════════════════════════════════════════════════════════════╗
║  Rules (admin always short-circuits to Allow, except on         ║
║  append-only rows, which nobody may change or delete):          ║
║    Case      creator / assignee / lead investigator             ║
║    Evidence  case rule  OR uploader  OR any custody recipient   ║
║    Comment   parent's rule (author-only for change / delete)    ║
║    Custody   evidence rule (read only)                          ║
║    Audit     own entries (read only)                            ║
║    Tag       everyone reads; creator changes / deletes          ║
╚══════════════════════════════════════════════════════════════════╝

Architecture overview
---------------------

    ┌─────────┐      ┌────────────────┐      ┌──────────────────┐
    │  View   │─────▶│  App service   │─────▶│ core.domain      │
    │ (thin)  │      │ (owns writes)  │      │   .access        │
    └─────────┘      └────────────────┘      │ (owns the rules) │
                                             └──────────────────┘

Single-resource evaluation issues **one** SQL statement that computes the
row's existence and the grant together (an ``EXISTS`` sub-select), so the
relations are read from a single consistent snapshot and a custody grant
committed mid-request is never half-applied.  Nothing is cached: custody,
assignment and role may change between requests.

Usage in an app's service layer::

    from core.domain.access import AccessPolicy, PolicyAction, ResourceRef

    AccessPolicy.require(
        principal, PolicyAction.CHANGE, ResourceRef(ResourceType.CASE, case_id)
    )
    qs = AccessPolicy.scope_queryset(principal, ResourceType.EVIDENCE)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from django.apps import apps
from django.conf import settings
from django.db import models
from django.db.models import Exists, OuterRef, Q, QuerySet

from core.domain.exceptions import NotFound, PermissionDenied
from core.models import ResourceType
from core.permissions_constants import ROLE_CAPABILITIES, Capability

if TYPE_CHECKING:
    from core.domain.identity import Principal

logger = logging.getLogger(__name__)


class PolicyAction(models.TextChoices):
    """What a principal wants to do with an existing resource."""

    VIEW = "view", "View"
    CHANGE = "change", "Change"
    DELETE = "delete", "Delete"


# ── Relation paths ──────────────────────────────────────────────────
# Principals related to a case through any of these foreign keys may
# see and change it.
CASE_ACCESSOR_PATHS: tuple[str, ...] = (
    "created_by",
    "assigned_to",
    "lead_investigator",
)

# On top of the parent case's accessors, evidence is visible to its
# uploader and to every principal who ever received custody of it.
EVIDENCE_ACCESSOR_PATHS: tuple[str, ...] = (
    "uploaded_by",
    "custody_entries__to_principal",
)

# Type alias: builds the grant filter for a principal.
GrantFilter = Callable[["Principal"], Q]


def _any_of(principal: Principal, paths: tuple[str, ...], prefix: str = "") -> Q:
    q = Q()
    for path in paths:
        q |= Q(**{f"{prefix}{path}": principal.id})
    return q


def case_grant(principal: Principal, prefix: str = "") -> Q:
    """Filter matching cases (reached through ``prefix``) the principal may access."""
    return _any_of(principal, CASE_ACCESSOR_PATHS, prefix)


def evidence_grant(principal: Principal, prefix: str = "") -> Q:
    """
    Filter matching evidence (reached through ``prefix``) the principal may
    access.  One hop only: evidence → case, never case → other evidence.
    """
    return (
        case_grant(principal, f"{prefix}case__")
        | _any_of(principal, EVIDENCE_ACCESSOR_PATHS, prefix)
    )


def comment_parent_grant(principal: Principal) -> Q:
    """A comment inherits exactly its parent's rule (case or evidence)."""
    return case_grant(principal, "case__") | evidence_grant(principal, "evidence__")


def _comment_author_grant(principal: Principal) -> Q:
    return Q(author=principal.id) & comment_parent_grant(principal)


def _everyone(principal: Principal) -> Q:
    return Q()


# ════════════════════════════════════════════════════════════════════
#  Rule table
# ════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class _ResourceRule:
    model_label: str
    grants: dict[str, GrantFilter]
    # Reasons for actions that are structurally impossible on this type.
    refusals: dict[str, str] = field(default_factory=dict)

    @property
    def model(self) -> type[models.Model]:
        return apps.get_model(self.model_label)

    def refusal(self, action: str) -> str:
        return self.refusals.get(
            action, f"Action '{action}' is not permitted on this resource."
        )


_RULES: dict[str, _ResourceRule] = {
    ResourceType.CASE: _ResourceRule(
        model_label="cases.Case",
        grants={
            PolicyAction.VIEW: case_grant,
            PolicyAction.CHANGE: case_grant,
        },
        refusals={PolicyAction.DELETE: "Cases are never deleted; archive the case instead."},
    ),
    ResourceType.EVIDENCE: _ResourceRule(
        model_label="evidence.Evidence",
        grants={
            PolicyAction.VIEW: evidence_grant,
            PolicyAction.CHANGE: evidence_grant,
        },
        refusals={PolicyAction.DELETE: "Evidence is never deleted; change its status instead."},
    ),
    ResourceType.COMMENT: _ResourceRule(
        model_label="comments.Comment",
        grants={
            PolicyAction.VIEW: comment_parent_grant,
            PolicyAction.CHANGE: _comment_author_grant,
            PolicyAction.DELETE: _comment_author_grant,
        },
    ),
    ResourceType.CUSTODY_ENTRY: _ResourceRule(
        model_label="evidence.ChainOfCustodyEntry",
        grants={
            PolicyAction.VIEW: lambda p: evidence_grant(p, "evidence__"),
        },
        refusals={
            PolicyAction.CHANGE: "Chain-of-custody entries are immutable.",
            PolicyAction.DELETE: "Chain-of-custody entries are immutable.",
        },
    ),
    ResourceType.AUDIT_ENTRY: _ResourceRule(
        model_label="audit.AuditLogEntry",
        grants={
            PolicyAction.VIEW: lambda p: Q(principal=p.id),
        },
        refusals={
            PolicyAction.CHANGE: "Audit log entries are immutable.",
            PolicyAction.DELETE: "Audit log entries are immutable.",
        },
    ),
    ResourceType.TAG: _ResourceRule(
        model_label="evidence.Tag",
        grants={
            PolicyAction.VIEW: _everyone,
            PolicyAction.CHANGE: lambda p: Q(created_by=p.id),
            PolicyAction.DELETE: lambda p: Q(created_by=p.id),
        },
    ),
}


# ════════════════════════════════════════════════════════════════════
#  Value objects
# ════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ResourceRef:
    """Points at one resource: its closed type plus primary key."""

    resource_type: ResourceType
    resource_id: Any

    def __post_init__(self) -> None:
        object.__setattr__(self, "resource_type", ResourceType(self.resource_type))

    @classmethod
    def of(cls, instance: models.Model) -> ResourceRef:
        for resource_type, rule in _RULES.items():
            if isinstance(instance, rule.model):
                return cls(resource_type, instance.pk)
        raise ValueError(f"No access rule covers {type(instance).__name__}.")

    def __str__(self) -> str:
        return f"{self.resource_type.label} #{self.resource_id}"


@dataclass(frozen=True)
class Decision:
    """Outcome of an evaluation: Allow, or Deny with a reason."""

    allowed: bool
    reason: str = ""
    exists: bool = True

    def __bool__(self) -> bool:
        return self.allowed

    @classmethod
    def allow(cls, reason: str = "") -> Decision:
        return cls(True, reason)

    @classmethod
    def deny(cls, reason: str, *, exists: bool = True) -> Decision:
        return cls(False, reason, exists)


def hide_existence() -> bool:
    """Whether a denied resource is reported as NotFound instead of Forbidden."""
    return bool(getattr(settings, "ACCESS_POLICY", {}).get("HIDE_EXISTENCE", False))


# ════════════════════════════════════════════════════════════════════
#  Policy
# ════════════════════════════════════════════════════════════════════


class AccessPolicy:
    """
    Pure evaluator: principal × action × resource → ``Decision``.

    The policy holds no state between calls and caches nothing.
    """

    @staticmethod
    def _rule_for(resource_type: str) -> _ResourceRule:
        try:
            return _RULES[ResourceType(resource_type)]
        except KeyError:
            raise ValueError(f"No access rule covers resource type '{resource_type}'.")

    @classmethod
    def evaluate(
        cls,
        principal: Principal,
        action: str,
        resource: ResourceRef,
    ) -> Decision:
        """
        Decide whether ``principal`` may perform ``action`` on ``resource``.

        Returns:
            ``Decision.allow()``, or ``Decision.deny(reason)`` where
            ``exists`` tells whether the resource is present at all.
        """
        action = PolicyAction(action)
        rule = cls._rule_for(resource.resource_type)
        manager = rule.model._default_manager
        base = manager.filter(pk=resource.resource_id)

        grant = rule.grants.get(action)
        if grant is None:
            return Decision.deny(rule.refusal(action), exists=base.exists())

        if principal.is_admin:
            if base.exists():
                return Decision.allow("admin")
            return Decision.deny(f"{resource} does not exist.", exists=False)

        # Existence and grant in one statement → one consistent snapshot.
        granted = Exists(manager.filter(pk=OuterRef("pk")).filter(grant(principal)))
        row = base.annotate(_granted=granted).values_list("_granted", flat=True).first()

        if row is None:
            return Decision.deny(f"{resource} does not exist.", exists=False)
        if row:
            return Decision.allow("relation")
        return Decision.deny(
            f"You are not permitted to {action.label.lower()} this "
            f"{resource.resource_type.label.lower()}."
        )

    @classmethod
    def can(cls, principal: Principal, action: str, resource: ResourceRef) -> bool:
        return cls.evaluate(principal, action, resource).allowed

    @classmethod
    def require(
        cls,
        principal: Principal,
        action: str,
        resource: ResourceRef,
    ) -> None:
        """
        Guard that raises unless the policy allows the action.

        Raises:
            NotFound:         The resource is absent, or it is denied and
                              existence-hiding is enabled for a principal
                              who cannot even view it.
            PermissionDenied: The resource exists and the policy denies.
        """
        decision = cls.evaluate(principal, action, resource)
        if decision.allowed:
            return

        not_found = NotFound(f"{resource.resource_type.label} with id {resource.resource_id} not found.")
        if not decision.exists:
            raise not_found
        if hide_existence():
            viewable = (
                action != PolicyAction.VIEW
                and cls.can(principal, PolicyAction.VIEW, resource)
            )
            if not viewable:
                raise not_found

        logger.info(
            "Access denied: principal=%s role=%s action=%s resource=%s",
            principal.id,
            principal.role,
            action,
            resource,
        )
        raise PermissionDenied(decision.reason)

    @classmethod
    def scope_queryset(
        cls,
        principal: Principal,
        resource_type: str,
        queryset: QuerySet | None = None,
        *,
        action: str = PolicyAction.VIEW,
    ) -> QuerySet:
        """
        Restrict ``queryset`` to the rows the principal may act on.

        Uses the same grant filters as ``evaluate``.  The grant is applied
        as a primary-key sub-select so that the custody join never
        duplicates rows.
        """
        rule = cls._rule_for(resource_type)
        manager = rule.model._default_manager
        if queryset is None:
            queryset = manager.all()

        grant = rule.grants.get(PolicyAction(action))
        if grant is None:
            return queryset.none()
        if principal.is_admin:
            return queryset
        return queryset.filter(pk__in=manager.filter(grant(principal)).values("pk"))

    # ── Role capabilities ───────────────────────────────────────────

    @staticmethod
    def has_capability(principal: Principal, capability: str) -> bool:
        return Capability(capability) in ROLE_CAPABILITIES[principal.role]

    @classmethod
    def require_capability(
        cls,
        principal: Principal,
        capability: str,
        message: str = "",
    ) -> None:
        """
        Raise ``PermissionDenied`` unless the principal's role carries
        ``capability``.
        """
        if cls.has_capability(principal, capability):
            return
        capability = Capability(capability)
        raise PermissionDenied(
            message
            or f"Role '{principal.role.label}' may not {capability.label.lower()}."
        )
