"""
core.domain.identity — Principal value object and request glue.

Credential verification belongs to the authentication layer (SimpleJWT's
``JWTAuthentication``).  This module only turns the already-verified
user attached to a DRF request into an explicit ``Principal`` that is
then passed to every access-policy, audit and custody call.  No service
reads "the current user" from anywhere else.

Usage in a view::

    from core.domain.identity import principal_from_request

    principal = principal_from_request(request)
    case = CaseService.create_case(principal, serializer.validated_data)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import validate_ipv46_address

from accounts.models import Role
from core.domain.exceptions import Unauthenticated

if TYPE_CHECKING:
    from accounts.models import User


@dataclass(frozen=True)
class Principal:
    """
    An authenticated actor: an id and one of the four closed roles.

    ``ip_address`` and ``user_agent`` are request metadata recorded with
    audit entries; they take no part in identity or equality.
    """

    id: int
    role: Role
    ip_address: str | None = field(default=None, compare=False)
    user_agent: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        # Normalise raw strings (e.g. a JWT claim) into the closed enum.
        object.__setattr__(self, "role", Role(self.role))

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @classmethod
    def from_user(cls, user: User, request: Any | None = None) -> Principal:
        """Build a principal from a persisted user plus optional request metadata."""
        ip_address = None
        user_agent = ""
        if request is not None:
            meta = getattr(request, "META", {})
            ip_address = client_ip_address(meta)
            user_agent = meta.get("HTTP_USER_AGENT", "")
        return cls(
            id=user.pk,
            role=user.role,
            ip_address=ip_address,
            user_agent=user_agent,
        )


def trusted_proxy_count() -> int:
    return int(getattr(settings, "ACCESS_POLICY", {}).get("TRUSTED_PROXY_COUNT", 0))


def client_ip_address(meta: dict[str, Any]) -> str | None:
    """
    The client address to record for a request, or ``None``.

    ``REMOTE_ADDR`` is used unless ``ACCESS_POLICY["TRUSTED_PROXY_COUNT"]``
    is positive.  With N trusted proxies the client is the N-th entry from
    the right of ``X-Forwarded-For``; entries further left were supplied by
    the client and are ignored.  A value that is not an IPv4/IPv6 address
    yields ``None``.
    """
    candidate = meta.get("REMOTE_ADDR", "")
    proxies = trusted_proxy_count()
    if proxies > 0:
        forwarded = [
            part.strip()
            for part in meta.get("HTTP_X_FORWARDED_FOR", "").split(",")
            if part.strip()
        ]
        if len(forwarded) >= proxies:
            candidate = forwarded[-proxies]

    try:
        validate_ipv46_address(candidate)
    except ValidationError:
        return None
    return candidate


def principal_from_request(request: Any) -> Principal:
    """
    Return the ``Principal`` for an authenticated DRF request.

    Raises:
        Unauthenticated: If the request carries no valid, active user.
    """
    user = getattr(request, "user", None)
    if user is None or not user.is_authenticated or not user.is_active:
        raise Unauthenticated()
    return Principal.from_user(user, request)
