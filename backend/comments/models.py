"""
Comments app models.

A ``Comment`` hangs off exactly one parent, either a case or an evidence
item, and is visible to exactly the principals who may view that parent.
"""

from django.conf import settings
from django.db import models

from core.models import ResourceType, TimeStampedModel


class Comment(TimeStampedModel):
    content = models.TextField(
        verbose_name="Content",
    )
    case = models.ForeignKey(
        "cases.Case",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="comments",
        verbose_name="Case",
    )
    evidence = models.ForeignKey(
        "evidence.Evidence",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="comments",
        verbose_name="Evidence",
    )
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="comments",
        verbose_name="Author",
    )

    class Meta:
        verbose_name = "Comment"
        verbose_name_plural = "Comments"
        ordering = ["created_at", "id"]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(case__isnull=False, evidence__isnull=True)
                    | models.Q(case__isnull=True, evidence__isnull=False)
                ),
                name="comment_exactly_one_parent",
            ),
        ]

    def __str__(self):
        parent_type, parent_id = self.parent
        return f"Comment #{self.pk} on {parent_type} #{parent_id}"

    @property
    def parent(self) -> tuple[str, int]:
        """``(resource_type, id)`` of the case or evidence item commented on."""
        if self.case_id is not None:
            return ResourceType.CASE, self.case_id
        return ResourceType.EVIDENCE, self.evidence_id
