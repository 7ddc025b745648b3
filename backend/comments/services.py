"""
Comments app Service Layer.

- ``CommentService`` — list per parent, add, edit and delete.

A comment has no access rule of its own: reading it requires view access
to its parent, and editing or deleting it additionally requires being its
author (admins excepted).  Both checks go through ``AccessPolicy``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.db import transaction
from django.db.models import QuerySet

from audit.models import AuditAction
from audit.services import AuditTrail
from core.domain.access import AccessPolicy, PolicyAction, ResourceRef
from core.domain.exceptions import DomainError
from core.domain.transactions import lock_for_update
from core.models import ResourceType
from core.permissions_constants import Capability

from .models import Comment

if TYPE_CHECKING:
    from core.domain.identity import Principal

logger = logging.getLogger(__name__)

#: Resource types a comment may be attached to, with the FK holding it.
PARENT_FIELDS: dict[str, str] = {
    ResourceType.CASE: "case_id",
    ResourceType.EVIDENCE: "evidence_id",
}


def _parent_field(parent_type: str) -> str:
    try:
        return PARENT_FIELDS[ResourceType(parent_type)]
    except (KeyError, ValueError):
        raise DomainError(f"Comments cannot be attached to '{parent_type}'.")


def _clean_content(content: str) -> str:
    content = (content or "").strip()
    if not content:
        raise DomainError("Comment content must not be blank.")
    return content


class CommentService:

    @staticmethod
    def list_for_parent(
        principal: Principal,
        parent_type: str,
        parent_id: int,
    ) -> QuerySet[Comment]:
        """Comments on one case or evidence item, oldest first."""
        field = _parent_field(parent_type)
        AccessPolicy.require(principal, PolicyAction.VIEW, ResourceRef(parent_type, parent_id))
        return (
            Comment.objects.filter(**{field: parent_id})
            .select_related("author")
            .order_by("created_at", "id")
        )

    @staticmethod
    def get_comment(principal: Principal, comment_id: int) -> Comment:
        AccessPolicy.require(
            principal, PolicyAction.VIEW, ResourceRef(ResourceType.COMMENT, comment_id)
        )
        return Comment.objects.select_related("author").get(pk=comment_id)

    @staticmethod
    @transaction.atomic
    def add_comment(
        principal: Principal,
        parent_type: str,
        parent_id: int,
        content: str,
    ) -> Comment:
        """
        Attach a comment to a case or evidence item the principal can view.

        Raises
        ------
        DomainError
            Blank content or an unsupported parent type.
        PermissionDenied / NotFound
            Missing ``add_comment`` capability, or no view access to the
            parent (see ``AccessPolicy.require``).
        """
        field = _parent_field(parent_type)
        AccessPolicy.require_capability(principal, Capability.ADD_COMMENT)
        AccessPolicy.require(principal, PolicyAction.VIEW, ResourceRef(parent_type, parent_id))
        content = _clean_content(content)

        comment = Comment.objects.create(
            content=content,
            author_id=principal.id,
            **{field: parent_id},
        )

        # ``record`` truncates the body to the configured detail limit.
        AuditTrail.record(
            principal,
            AuditAction.ADD_COMMENT,
            ResourceType.COMMENT,
            comment.pk,
            {"parent_type": parent_type, "parent_id": parent_id, "content": content},
        )

        logger.info(
            "Comment %s added to %s %s by principal %s",
            comment.pk, parent_type, parent_id, principal.id,
        )
        return comment

    @staticmethod
    @transaction.atomic
    def edit_comment(principal: Principal, comment_id: int, content: str) -> Comment:
        """Replace the comment body.  Unchanged content writes nothing."""
        AccessPolicy.require(
            principal, PolicyAction.CHANGE, ResourceRef(ResourceType.COMMENT, comment_id)
        )
        content = _clean_content(content)

        comment = lock_for_update(Comment, comment_id)
        if comment.content == content:
            return comment

        previous = comment.content
        comment.content = content
        comment.save(update_fields=["content", "updated_at"])

        AuditTrail.record(
            principal,
            AuditAction.EDIT_COMMENT,
            ResourceType.COMMENT,
            comment.pk,
            {"from": previous, "to": content},
        )

        logger.info("Comment %s edited by principal %s", comment.pk, principal.id)
        return comment

    @staticmethod
    @transaction.atomic
    def delete_comment(principal: Principal, comment_id: int) -> None:
        AccessPolicy.require(
            principal, PolicyAction.DELETE, ResourceRef(ResourceType.COMMENT, comment_id)
        )

        comment = lock_for_update(Comment, comment_id)
        parent_type, parent_id = comment.parent
        content = comment.content
        comment.delete()

        AuditTrail.record(
            principal,
            AuditAction.DELETE_COMMENT,
            ResourceType.COMMENT,
            comment_id,
            {"parent_type": parent_type, "parent_id": parent_id, "content": content},
        )

        logger.info("Comment %s deleted by principal %s", comment_id, principal.id)
