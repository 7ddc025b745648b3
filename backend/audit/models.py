"""
Audit app models.

One ``AuditLogEntry`` per committed mutation.  Rows are append-only:
``AppendOnlyModel`` blocks every update and delete path, and the foreign
key to the acting principal is ``PROTECT`` so history cannot vanish
through a cascade.
"""

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.models import AppendOnlyModel, ResourceType


class AuditAction(models.TextChoices):
    """Every state-changing operation the system can perform."""

    CREATE_CASE = "CreateCase", "Create Case"
    UPDATE_CASE = "UpdateCase", "Update Case"
    ARCHIVE_CASE = "ArchiveCase", "Archive Case"
    ADD_EVIDENCE = "AddEvidence", "Add Evidence"
    UPDATE_EVIDENCE = "UpdateEvidence", "Update Evidence"
    CHANGE_EVIDENCE_STATUS = "ChangeEvidenceStatus", "Change Evidence Status"
    TAG_EVIDENCE = "TagEvidence", "Tag Evidence"
    UNTAG_EVIDENCE = "UntagEvidence", "Untag Evidence"
    APPEND_CUSTODY = "AppendCustody", "Append Custody Entry"
    ADD_COMMENT = "AddComment", "Add Comment"
    EDIT_COMMENT = "EditComment", "Edit Comment"
    DELETE_COMMENT = "DeleteComment", "Delete Comment"
    CREATE_TAG = "CreateTag", "Create Tag"
    UPDATE_TAG = "UpdateTag", "Update Tag"
    DELETE_TAG = "DeleteTag", "Delete Tag"
    CREATE_USER = "CreateUser", "Create User"
    CHANGE_ROLE = "ChangeRole", "Change Role"


class AuditLogEntry(AppendOnlyModel):
    """
    Immutable record of one state-changing action.

    ``details`` holds a bounded, JSON-safe payload produced by
    ``audit.services.AuditTrail``; never write rows directly.
    """

    principal = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="audit_entries",
        verbose_name="Principal",
    )
    action = models.CharField(
        max_length=32,
        choices=AuditAction.choices,
        db_index=True,
        verbose_name="Action",
    )
    resource_type = models.CharField(
        max_length=32,
        choices=ResourceType.choices,
        verbose_name="Resource Type",
    )
    resource_id = models.PositiveBigIntegerField(
        verbose_name="Resource ID",
    )
    details = models.JSONField(
        default=dict,
        blank=True,
        verbose_name="Details",
    )
    ip_address = models.GenericIPAddressField(
        null=True,
        blank=True,
        verbose_name="IP Address",
    )
    user_agent = models.CharField(
        max_length=255,
        blank=True,
        default="",
        verbose_name="User Agent",
    )
    timestamp = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        verbose_name="Timestamp",
    )

    class Meta:
        verbose_name = "Audit Log Entry"
        verbose_name_plural = "Audit Log Entries"
        ordering = ["-timestamp", "-id"]
        indexes = [
            models.Index(
                fields=["resource_type", "resource_id"],
                name="audit_resource_idx",
            ),
            models.Index(
                fields=["principal", "-timestamp"],
                name="audit_principal_ts_idx",
            ),
        ]

    def __str__(self):
        return (
            f"{self.action} {self.resource_type} #{self.resource_id} "
            f"by {self.principal_id} at {self.timestamp:%Y-%m-%d %H:%M:%S}"
        )
