"""
core.domain.exception_handler — DRF-compatible global exception handler.

Maps domain exceptions from ``core.domain.exceptions`` to proper
DRF ``Response`` objects so that views don't need per-endpoint
try/except boilerplate.

Registered in ``settings.py``::

    REST_FRAMEWORK = {
        ...
        'EXCEPTION_HANDLER': 'core.domain.exception_handler.domain_exception_handler',
    }
"""

from __future__ import annotations

import logging

from django.db import DatabaseError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_default_handler

from core.domain.exceptions import (
    Conflict,
    DomainError,
    ImmutableRecord,
    InternalError,
    NotFound,
    PermissionDenied,
    Unauthenticated,
)

logger = logging.getLogger(__name__)

# Domain exception → HTTP status code
_STATUS_MAP: dict[type, int] = {
    Unauthenticated:   401,
    PermissionDenied:  403,
    NotFound:          404,
    ImmutableRecord:   409,
    Conflict:          409,
    InternalError:     500,
    DomainError:       400,  # catch-all base class last
}


def domain_exception_handler(exc: Exception, context: dict) -> Response | None:
    """
    DRF exception handler that also handles ``core.domain.exceptions``.

    The default DRF handler is called first.  If it returns ``None``
    (meaning DRF doesn't recognise the exception), we check whether
    it's one of our domain exceptions and return an appropriate response.
    Storage failures surface as a generic 500 so that a failed audit
    write is reported as a failed mutation rather than silently dropped.
    """
    # Let DRF handle its own exceptions (ValidationError, AuthN, etc.)
    response = drf_default_handler(exc, context)
    if response is not None:
        return response

    # Most specific first; DomainError is the catch-all
    for exc_class, status_code in _STATUS_MAP.items():
        if isinstance(exc, exc_class):
            logger.warning(
                "Domain exception [%s] in %s: %s",
                exc_class.__name__,
                context.get("view", "unknown"),
                exc,
            )
            return Response(
                {"detail": str(exc)},
                status=status_code,
            )

    if isinstance(exc, DatabaseError):
        logger.error(
            "Storage failure in %s; transaction rolled back",
            context.get("view", "unknown"),
            exc_info=exc,
        )
        return Response(
            {"detail": InternalError().message},
            status=500,
        )

    # Not ours; let it propagate
    return None
