"""
Smoke tests — verify that Django boots, URL routing resolves, and the
core domain plumbing (exceptions, handler, principal, transactions)
behaves.

These tests use the pytest fixtures from the root ``conftest.py``.
"""

from __future__ import annotations

import pytest
from django.db import DatabaseError, transaction
from django.urls import resolve, reverse
from rest_framework import status


# ════════════════════════════════════════════════════════════════════
#  URL Routing Smoke Tests
# ════════════════════════════════════════════════════════════════════

class TestURLRouting:
    """Ensure every API surface is routed."""

    EXPECTED_URLS = [
        # (url_name, expected_path_prefix)
        ("accounts:login",  "/api/accounts/auth/login/"),
        ("accounts:me",     "/api/accounts/me/"),
        ("case-list",       "/api/cases/"),
        ("evidence-list",   "/api/evidence/"),
        ("tag-list",        "/api/tags/"),
        ("audit:audit-list", "/api/audit/"),
        ("schema",          "/api/schema/"),
    ]

    @pytest.mark.parametrize("url_name,expected_prefix", EXPECTED_URLS)
    def test_url_resolves(self, url_name: str, expected_prefix: str):
        url = reverse(url_name)
        assert url.startswith(expected_prefix), (
            f"{url_name} resolved to {url}, expected prefix {expected_prefix}"
        )
        assert resolve(expected_prefix).func is not None

    def test_nested_comment_routes(self):
        assert reverse("case-comment-list", kwargs={"case_pk": 3}) == "/api/cases/3/comments/"
        assert reverse("evidence-comment-list", kwargs={"evidence_pk": 4}) == "/api/evidence/4/comments/"


# ════════════════════════════════════════════════════════════════════
#  Exception Behaviour Tests
# ════════════════════════════════════════════════════════════════════

class TestDomainExceptions:

    def test_hierarchy(self):
        from core.domain.exceptions import (
            Conflict,
            DomainError,
            ImmutableRecord,
            NotFound,
            PermissionDenied,
        )
        assert issubclass(ImmutableRecord, Conflict)
        assert issubclass(Conflict, DomainError)
        assert issubclass(PermissionDenied, DomainError)
        assert issubclass(NotFound, DomainError)

    def test_domain_error_message(self):
        from core.domain.exceptions import DomainError
        assert str(DomainError("test message")) == "test message"

    @pytest.mark.parametrize("exc_name,expected", [
        ("Unauthenticated", 401),
        ("PermissionDenied", 403),
        ("NotFound", 404),
        ("Conflict", 409),
        ("ImmutableRecord", 409),
        ("InternalError", 500),
        ("DomainError", 400),
    ])
    def test_handler_maps_domain_exceptions(self, exc_name: str, expected: int):
        from core.domain import exceptions
        from core.domain.exception_handler import domain_exception_handler

        response = domain_exception_handler(getattr(exceptions, exc_name)("boom"), {})
        assert response.status_code == expected
        assert response.data == {"detail": "boom"}

    def test_handler_hides_storage_failures(self):
        from core.domain.exception_handler import domain_exception_handler

        response = domain_exception_handler(DatabaseError("disk full on /var/lib"), {})
        assert response.status_code == 500
        assert "disk" not in response.data["detail"]

    def test_handler_ignores_unrelated_exceptions(self):
        from core.domain.exception_handler import domain_exception_handler
        assert domain_exception_handler(KeyError("x"), {}) is None


# ════════════════════════════════════════════════════════════════════
#  Principal / Transactions
# ════════════════════════════════════════════════════════════════════

@pytest.mark.django_db
class TestPrincipalAndTransactions:

    def test_principal_from_user(self, create_user, principal_for):
        from accounts.models import Role

        user = create_user(username="smoke_inv", role=Role.INVESTIGATOR)
        principal = principal_for(user)
        assert principal.id == user.pk
        assert principal.role is Role.INVESTIGATOR
        assert not principal.is_admin

    def test_principal_rejects_unknown_role(self):
        from core.domain.identity import Principal
        with pytest.raises(ValueError):
            Principal(id=1, role="superhero")

    def test_lock_for_update_missing_row(self):
        from cases.models import Case
        from core.domain.exceptions import NotFound
        from core.domain.transactions import lock_for_update

        with pytest.raises(NotFound), transaction.atomic():
            lock_for_update(Case, 999_999)

    def test_versioned_update_reports_changes(self, create_user):
        from cases.models import Case
        from core.domain.exceptions import Conflict
        from core.domain.transactions import versioned_update

        owner = create_user(username="smoke_owner")
        case = Case.objects.create(case_number="SMOKE-1", title="Before", created_by=owner)

        locked, changed = versioned_update(case, {"title": "After", "description": ""})
        assert changed == {"title": {"from": "Before", "to": "After"}}
        assert locked.version == 2

        with pytest.raises(Conflict):
            versioned_update(case, {"title": "Stale"}, expected_version=1)

        _, changed = versioned_update(case, {"title": "After"})
        assert changed == {}
        case.refresh_from_db()
        assert case.version == 2


# ════════════════════════════════════════════════════════════════════
#  Authenticated request plumbing
# ════════════════════════════════════════════════════════════════════

@pytest.mark.django_db
class TestAuthPlumbing:

    def test_anonymous_request_is_rejected(self, api_client):
        resp = api_client.get(reverse("case-list"))
        assert resp.status_code == status.HTTP_401_UNAUTHORIZED

    def test_bearer_token_is_accepted(self, api_client, auth_header):
        header = auth_header(username="smoke_reader")
        api_client.credentials(HTTP_AUTHORIZATION=header["Authorization"])
        resp = api_client.get(reverse("case-list"))
        assert resp.status_code == status.HTTP_200_OK
        assert resp.data == []

    def test_inactive_user_token_is_rejected(self, api_client, auth_header):
        header = auth_header(username="smoke_inactive", is_active=False)
        api_client.credentials(HTTP_AUTHORIZATION=header["Authorization"])
        resp = api_client.get(reverse("case-list"))
        assert resp.status_code == status.HTTP_401_UNAUTHORIZED
