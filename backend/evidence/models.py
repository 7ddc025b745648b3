"""
Evidence app models.

- ``Evidence``            — a digital evidence item; belongs to exactly one case.
- ``Tag``                 — independent label; evidence↔tag is a plain
                            many-to-many with no access semantics of its own.
- ``ChainOfCustodyEntry`` — append-only, hash-chained ledger of custody
                            events per evidence item.  Every ``to_principal``
                            in an item's ledger may view that item.
"""

import hashlib
import json

from django.conf import settings
from django.db import models

from core.models import AppendOnlyModel, TimeStampedModel

#: ``previous_hash`` of the first entry in every evidence item's chain.
GENESIS_HASH = "0" * 64


# ────────────────────────────────────────────────────────────────────
# Choice enumerations
# ────────────────────────────────────────────────────────────────────

class EvidenceStatus(models.TextChoices):
    """Free-form status; any value may follow any other."""

    PENDING = "pending", "Pending"
    VERIFIED = "verified", "Verified"
    ARCHIVED = "archived", "Archived"
    DISPOSED = "disposed", "Disposed"


class CustodyAction(models.TextChoices):
    CREATED = "created", "Created"
    TRANSFERRED = "transferred", "Transferred"
    ACCESSED = "accessed", "Accessed"
    DOWNLOADED = "downloaded", "Downloaded"
    MODIFIED = "modified", "Modified"
    ARCHIVED = "archived", "Archived"


# ────────────────────────────────────────────────────────────────────
# Tags
# ────────────────────────────────────────────────────────────────────

class Tag(TimeStampedModel):
    name = models.CharField(
        max_length=100,
        unique=True,
        verbose_name="Name",
    )
    color = models.CharField(
        max_length=20,
        default="#3b82f6",
        verbose_name="Color",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="created_tags",
        verbose_name="Created By",
    )

    class Meta:
        verbose_name = "Tag"
        verbose_name_plural = "Tags"
        ordering = ["name"]

    def __str__(self):
        return self.name


# ────────────────────────────────────────────────────────────────────
# Evidence
# ────────────────────────────────────────────────────────────────────

class Evidence(TimeStampedModel):
    """
    A digital evidence item attached to a ``Case``.

    File storage is out of scope: the row carries the file's metadata
    (name, path, size, type, hash) as supplied by the uploader.
    """

    case = models.ForeignKey(
        "cases.Case",
        on_delete=models.PROTECT,
        related_name="evidence_items",
        verbose_name="Case",
    )
    title = models.CharField(
        max_length=255,
        verbose_name="Title",
    )
    description = models.TextField(
        blank=True,
        default="",
        verbose_name="Description",
    )

    # ── File metadata ────────────────────────────────────────────────
    file_name = models.CharField(
        max_length=255,
        blank=True,
        default="",
        verbose_name="File Name",
    )
    file_path = models.TextField(
        blank=True,
        default="",
        verbose_name="File Path",
    )
    file_size = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        verbose_name="File Size (bytes)",
    )
    file_type = models.CharField(
        max_length=100,
        blank=True,
        default="",
        verbose_name="File Type",
    )
    hash_value = models.CharField(
        max_length=255,
        blank=True,
        default="",
        verbose_name="Hash Value",
    )

    status = models.CharField(
        max_length=20,
        choices=EvidenceStatus.choices,
        default=EvidenceStatus.PENDING,
        db_index=True,
        verbose_name="Status",
    )

    # ── Collection details ───────────────────────────────────────────
    collected_date = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Collected Date",
    )
    collected_by = models.CharField(
        max_length=255,
        blank=True,
        default="",
        verbose_name="Collected By",
    )
    location_found = models.CharField(
        max_length=255,
        blank=True,
        default="",
        verbose_name="Location Found",
    )

    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="uploaded_evidence",
        verbose_name="Uploaded By",
    )
    tags = models.ManyToManyField(
        Tag,
        blank=True,
        related_name="evidence_items",
        verbose_name="Tags",
    )

    version = models.PositiveIntegerField(
        default=1,
        verbose_name="Version",
    )

    class Meta:
        verbose_name = "Evidence"
        verbose_name_plural = "Evidence"
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.title} [{self.get_status_display()}]"


# ────────────────────────────────────────────────────────────────────
# Chain of custody
# ────────────────────────────────────────────────────────────────────

class ChainOfCustodyEntry(AppendOnlyModel):
    """
    One custody event for an evidence item.

    Entries are written only by ``evidence.services.ChainOfCustodyLedger``
    under a row lock on the evidence, which assigns ``sequence`` and a
    strictly increasing ``timestamp``.  ``entry_hash`` covers the entry's
    content plus ``previous_hash``, so editing or removing any row breaks
    every later link.
    """

    evidence = models.ForeignKey(
        Evidence,
        on_delete=models.PROTECT,
        related_name="custody_entries",
        verbose_name="Evidence",
    )
    sequence = models.PositiveIntegerField(
        verbose_name="Sequence",
    )
    action = models.CharField(
        max_length=20,
        choices=CustodyAction.choices,
        verbose_name="Action",
    )
    from_principal = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="custody_released",
        verbose_name="From",
    )
    to_principal = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="custody_received",
        verbose_name="To",
    )
    location = models.CharField(
        max_length=255,
        verbose_name="Location",
    )
    notes = models.TextField(
        blank=True,
        default="",
        verbose_name="Notes",
    )
    timestamp = models.DateTimeField(
        verbose_name="Timestamp",
    )
    recorded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="custody_recorded",
        verbose_name="Recorded By",
    )
    previous_hash = models.CharField(
        max_length=64,
        verbose_name="Previous Hash",
    )
    entry_hash = models.CharField(
        max_length=64,
        unique=True,
        verbose_name="Entry Hash",
    )

    class Meta:
        verbose_name = "Chain-of-Custody Entry"
        verbose_name_plural = "Chain-of-Custody Entries"
        ordering = ["-timestamp", "-sequence"]
        constraints = [
            models.UniqueConstraint(
                fields=["evidence", "sequence"],
                name="custody_unique_sequence_per_evidence",
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(from_principal__isnull=False)
                    | models.Q(to_principal__isnull=False)
                ),
                name="custody_from_or_to_present",
            ),
        ]

    def __str__(self):
        return f"#{self.sequence} {self.get_action_display()} of Evidence #{self.evidence_id}"

    def hash_material(self) -> dict:
        """The fields covered by ``entry_hash``, in JSON-safe form."""
        return {
            "evidence": self.evidence_id,
            "sequence": self.sequence,
            "action": str(self.action),
            "from_principal": self.from_principal_id,
            "to_principal": self.to_principal_id,
            "location": self.location,
            "notes": self.notes,
            "timestamp": self.timestamp.isoformat(),
            "recorded_by": self.recorded_by_id,
            "previous_hash": self.previous_hash,
        }

    def compute_hash(self) -> str:
        canonical = json.dumps(
            self.hash_material(), sort_keys=True, separators=(",", ":"), ensure_ascii=False
        )
        return hashlib.sha256(
            (self.previous_hash + canonical).encode("utf-8")
        ).hexdigest()
