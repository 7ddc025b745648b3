"""
Core app models.

Provides abstract base models and closed enumerations shared across the
project.
"""

from django.db import models

from core.domain.exceptions import ImmutableRecord


class ResourceType(models.TextChoices):
    """Every resource kind the access policy and the audit trail know about."""

    CASE = "case", "Case"
    EVIDENCE = "evidence", "Evidence"
    COMMENT = "comment", "Comment"
    CUSTODY_ENTRY = "chain_of_custody", "Chain-of-Custody Entry"
    AUDIT_ENTRY = "audit_log", "Audit Log Entry"
    TAG = "tag", "Tag"
    USER = "user", "User"


class TimeStampedModel(models.Model):
    """
    Abstract base model that provides self-updating ``created_at`` and
    ``updated_at`` timestamp fields for every concrete child model.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name="Created At",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name="Updated At",
    )

    class Meta:
        abstract = True


# ────────────────────────────────────────────────────────────────────
# Append-only rows
# ────────────────────────────────────────────────────────────────────

class AppendOnlyQuerySet(models.QuerySet):
    """QuerySet whose bulk mutation paths are disabled."""

    def update(self, **kwargs):
        raise ImmutableRecord(
            f"{self.model._meta.verbose_name} rows are append-only and cannot be updated."
        )

    def delete(self):
        raise ImmutableRecord(
            f"{self.model._meta.verbose_name} rows are append-only and cannot be deleted."
        )


class AppendOnlyModel(models.Model):
    """
    Abstract base for ledger-style tables.

    A row may be inserted once.  Re-saving an existing row, deleting it,
    or running ``update()`` / ``delete()`` on a queryset raises
    ``ImmutableRecord``.
    """

    objects = AppendOnlyQuerySet.as_manager()

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ImmutableRecord(
                f"{self._meta.verbose_name} #{self.pk} is immutable."
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableRecord(
            f"{self._meta.verbose_name} #{self.pk} is immutable."
        )
