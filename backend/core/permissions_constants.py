"""
Permissions Constants — **Single Source of Truth** for role capabilities.

Relation-based access (who may see or change a *specific* case, evidence
item, comment, custody entry or audit entry) lives in
``core.domain.access``.  This module only answers the coarser question
"may a principal with this role create things of this kind at all?".

The table mirrors the storage grants of the legacy system:

- Investigators create and update cases, upload evidence, record custody.
- Analysts upload evidence and record custody but do not open cases.
- Legal reviewers read and comment only.
- Admins may do everything.

Roles are the closed ``accounts.models.Role`` enumeration, so a typo in a
role name is an ``AttributeError`` at import time rather than a silent
denial at runtime.
"""

from __future__ import annotations

from django.db import models

from accounts.models import Role


class Capability(models.TextChoices):
    """Role-level rights that are not tied to an existing resource."""

    CREATE_CASE = "create_case", "Create cases"
    UPLOAD_EVIDENCE = "upload_evidence", "Upload evidence"
    APPEND_CUSTODY = "append_custody", "Record chain-of-custody entries"
    ADD_COMMENT = "add_comment", "Comment on cases and evidence"
    MANAGE_TAGS = "manage_tags", "Create and edit tags"
    MANAGE_USERS = "manage_users", "Create users and change roles"


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.ADMIN: frozenset(Capability),
    Role.INVESTIGATOR: frozenset({
        Capability.CREATE_CASE,
        Capability.UPLOAD_EVIDENCE,
        Capability.APPEND_CUSTODY,
        Capability.ADD_COMMENT,
        Capability.MANAGE_TAGS,
    }),
    Role.ANALYST: frozenset({
        Capability.UPLOAD_EVIDENCE,
        Capability.APPEND_CUSTODY,
        Capability.ADD_COMMENT,
        Capability.MANAGE_TAGS,
    }),
    Role.LEGAL: frozenset({
        Capability.ADD_COMMENT,
    }),
}
