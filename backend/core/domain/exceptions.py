"""
core.domain.exceptions — Domain-specific exception hierarchy.

These exceptions represent business-rule violations inside service layers.
They are deliberately **not** DRF exceptions so that the domain layer stays
framework-agnostic.  The global DRF exception handler in
``core.domain.exception_handler`` maps them to HTTP responses.

Mapping cheatsheet
------------------
┌─────────────────────┬──────────────────────────────┬──────┐
│ Domain Exception    │ Meaning                      │ Code │
├─────────────────────┼──────────────────────────────┼──────┤
│ DomainError         │ ValidationError              │ 400  │
│ Unauthenticated     │ no valid principal           │ 401  │
│ PermissionDenied    │ Forbidden (policy denies)    │ 403  │
│ NotFound            │ resource absent / hidden     │ 404  │
│ Conflict            │ uniqueness / version clash   │ 409  │
│ ImmutableRecord     │ write to an append-only row  │ 409  │
│ InternalError       │ storage failure              │ 500  │
└─────────────────────┴──────────────────────────────┴──────┘

Recommended usage inside a service::

    from core.domain.exceptions import DomainError

    if not location.strip():
        raise DomainError("A custody entry requires a location.")
"""

from __future__ import annotations


class DomainError(Exception):
    """
    Base class for all domain / business-rule errors.

    Raised directly for missing or malformed required fields; maps to
    400 Bad Request.
    """

    def __init__(self, message: str = "A business rule was violated.") -> None:
        self.message = message
        super().__init__(self.message)


class Unauthenticated(DomainError):
    """
    No valid principal could be derived from the request.

    Maps to HTTP 401.
    """

    def __init__(self, message: str = "Authentication credentials were not provided or are invalid.") -> None:
        super().__init__(message)


class PermissionDenied(DomainError):
    """
    The access policy denied the requested action.

    Maps to HTTP 403.
    """

    def __init__(self, message: str = "You do not have permission to perform this action.") -> None:
        super().__init__(message)


class NotFound(DomainError):
    """
    The requested resource does not exist (or its existence is hidden
    from the requesting principal when existence-hiding is enabled).

    Maps to HTTP 404.
    """

    def __init__(self, message: str = "The requested resource was not found.") -> None:
        super().__init__(message)


class Conflict(DomainError):
    """
    The operation conflicts with the current state of the resource.

    Typical usage: duplicate case number or tag name, optimistic-lock failure.
    Maps to HTTP 409.
    """

    def __init__(self, message: str = "The operation conflicts with the current state.") -> None:
        super().__init__(message)


class ImmutableRecord(Conflict):
    """
    An update or delete was attempted on an append-only row
    (audit entries, chain-of-custody entries).
    """

    def __init__(self, message: str = "This record is append-only and cannot be modified.") -> None:
        super().__init__(message)


class InternalError(DomainError):
    """
    The storage layer failed.  The enclosing unit of work has been rolled
    back; nothing was committed.

    Maps to HTTP 500.
    """

    def __init__(self, message: str = "An internal error occurred; no changes were saved.") -> None:
        super().__init__(message)
