"""
core.domain.transactions — Helpers for the request unit of work.

Provides utilities that wrap ``transaction.atomic`` and
``select_for_update`` into reusable patterns so that every app's
service layer follows the same concurrency-safe approach.

Design goals
------------
* A mutation and its audit entry (and, for custody, the ledger append)
  commit or roll back together.  Helpers that must run *inside* that
  unit of work assert it with ``require_atomic_block``.
* Updates to mutable rows always lock the row first
  (``select_for_update``) and bump its ``version`` counter, so two
  concurrent writers are serialised and a stale client gets ``Conflict``.
* Keep the helpers **generic** — they accept any Django ``Model``
  instance.

Usage::

    from core.domain.transactions import versioned_update

    case, changed = versioned_update(
        case,
        {"title": "Renamed"},
        expected_version=3,
    )
"""

from __future__ import annotations

from typing import Any, Mapping, TypeVar

from django.db import models, transaction

from core.domain.exceptions import Conflict, NotFound

M = TypeVar("M", bound=models.Model)


def require_atomic_block(operation: str) -> None:
    """
    Raise ``RuntimeError`` unless the caller runs inside ``atomic()``.

    Used by writers whose rows must share the caller's unit of work
    (audit entries, custody entries).  Calling them outside a transaction
    is a programming error, not a client error.
    """
    if not transaction.get_connection().in_atomic_block:
        raise RuntimeError(
            f"{operation} must be called inside transaction.atomic() "
            "so that it commits together with the mutation it describes."
        )


def versioned_update(
    instance: M,
    changes: Mapping[str, Any],
    *,
    expected_version: int | None = None,
    version_field: str = "version",
) -> tuple[M, dict[str, dict[str, Any]]]:
    """
    Atomically apply ``changes`` to a model instance.

    Steps performed inside ``transaction.atomic()``:
        1. Re-fetch the instance with ``select_for_update()`` to acquire
           a row-level lock.
        2. If ``expected_version`` is given, compare it with the stored
           counter; raise ``Conflict`` when they differ.
        3. Apply only the fields whose value actually changes.
        4. Bump the version counter and save with ``update_fields``.

    Args:
        instance:         The model instance to update.
        changes:          Mapping of field name → new value.
        expected_version: The version the client last read, or ``None``
                          to skip the optimistic check.
        version_field:    Name of the integer counter on the model.

    Returns:
        ``(locked_instance, changed)`` where ``changed`` maps each modified
        field to ``{"from": old, "to": new}``.  When nothing changed the
        row is left untouched and ``changed`` is empty.

    Raises:
        NotFound: If the instance no longer exists in the DB.
        Conflict: If ``expected_version`` does not match.
    """
    with transaction.atomic():
        locked = lock_for_update(type(instance), instance.pk)

        current_version = getattr(locked, version_field)
        if expected_version is not None and expected_version != current_version:
            raise Conflict(
                f"{type(locked).__name__} #{locked.pk} was modified concurrently "
                f"(expected version {expected_version}, found {current_version})."
            )

        changed: dict[str, dict[str, Any]] = {}
        for field_name, new_value in changes.items():
            old_value = getattr(locked, field_name)
            if old_value == new_value:
                continue
            changed[field_name] = {"from": old_value, "to": new_value}
            setattr(locked, field_name, new_value)

        if changed:
            setattr(locked, version_field, current_version + 1)
            update_fields = set(changed) | {version_field}
            if any(f.name == "updated_at" for f in locked._meta.concrete_fields):
                update_fields.add("updated_at")
            locked.save(update_fields=sorted(update_fields))

    return locked, changed


def lock_for_update(model_class: type[M], pk: Any) -> M:
    """
    Acquire a row-level lock on the given model instance.

    Convenience wrapper around ``select_for_update().get(pk=pk)``
    that must be called inside an ``atomic()`` block.

    Raises:
        NotFound: If no row with that PK exists.
    """
    try:
        return model_class._default_manager.select_for_update().get(pk=pk)
    except model_class.DoesNotExist:
        raise NotFound(f"{model_class.__name__} with pk={pk} does not exist.")
