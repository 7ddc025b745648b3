"""
core.domain — Shared domain utilities for cross-app service layers.

Modules
-------
exceptions         Domain-specific exceptions that map cleanly to HTTP responses.
exception_handler  DRF exception handler for the above.
identity           The ``Principal`` passed explicitly to every service call.
access             The access policy: evaluation guards and list scoping.
transactions       Helpers for ``transaction.atomic`` + ``select_for_update``.

Usage from any app::

    from core.domain.exceptions import DomainError, NotFound
    from core.domain.identity import principal_from_request
    from core.domain.access import AccessPolicy, PolicyAction, ResourceRef
    from core.domain.transactions import versioned_update
"""
