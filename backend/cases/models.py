"""
Cases app models.

A ``Case`` is the top of the access hierarchy: evidence belongs to
exactly one case, and comments hang off either a case or an evidence
item.  Cases are never deleted; they are archived through ``status``.
"""

from django.conf import settings
from django.db import models

from core.models import TimeStampedModel


# ────────────────────────────────────────────────────────────────────
# Choice enumerations
# ────────────────────────────────────────────────────────────────────

class CaseStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    COMPLETED = "completed", "Completed"
    CLOSED = "closed", "Closed"
    ARCHIVED = "archived", "Archived"


class CasePriority(models.TextChoices):
    LOW = "low", "Low"
    MEDIUM = "medium", "Medium"
    HIGH = "high", "High"
    URGENT = "urgent", "Urgent"


# ────────────────────────────────────────────────────────────────────
# Models
# ────────────────────────────────────────────────────────────────────

class Case(TimeStampedModel):
    """
    An investigative case.

    The three principal foreign keys (``created_by``, ``assigned_to``,
    ``lead_investigator``) are the case's accessor set; see
    ``core.domain.access``.  ``version`` is bumped on every update and
    lets a client detect that it edited a stale copy.
    """

    case_number = models.CharField(
        max_length=50,
        unique=True,
        verbose_name="Case Number",
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
    findings = models.TextField(
        blank=True,
        default="",
        verbose_name="Findings",
    )
    due_date = models.DateField(
        null=True,
        blank=True,
        verbose_name="Due Date",
    )
    status = models.CharField(
        max_length=20,
        choices=CaseStatus.choices,
        default=CaseStatus.ACTIVE,
        db_index=True,
        verbose_name="Status",
    )
    priority = models.CharField(
        max_length=20,
        choices=CasePriority.choices,
        default=CasePriority.MEDIUM,
        verbose_name="Priority",
    )

    # ── Relations that grant access ──────────────────────────────────
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="created_cases",
        verbose_name="Created By",
    )
    lead_investigator = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="led_cases",
        verbose_name="Lead Investigator",
    )
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assigned_cases",
        verbose_name="Assigned To",
    )

    version = models.PositiveIntegerField(
        default=1,
        verbose_name="Version",
    )

    class Meta:
        verbose_name = "Case"
        verbose_name_plural = "Cases"
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.case_number} — {self.title} [{self.get_status_display()}]"
