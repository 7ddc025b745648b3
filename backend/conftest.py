"""
Root conftest.py — shared fixtures for the entire test suite.

Provides:
  - ``api_client`` fixture returning a DRF ``APIClient``.
  - ``create_user`` factory fixture for creating test users.
  - ``auth_header`` fixture for authenticated requests (JWT).
  - ``principal_for`` helper turning a user into a service-layer ``Principal``.
"""

from __future__ import annotations

import pytest
from rest_framework.test import APIClient


@pytest.fixture()
def api_client() -> APIClient:
    """Unauthenticated DRF test client."""
    return APIClient()


@pytest.fixture()
def create_user(db):
    """
    Factory fixture that creates a user with sensible defaults.

    Usage::

        def test_something(create_user):
            user = create_user(username="alice")
            # or with a role:
            user = create_user(username="bob", role=Role.INVESTIGATOR)
    """
    from accounts.models import Role, User

    _counter = 0

    def _factory(
        *,
        username: str | None = None,
        password: str = "TestPass123!",
        email: str | None = None,
        role=Role.ANALYST,
        is_active: bool = True,
        **kwargs,
    ) -> User:
        nonlocal _counter
        _counter += 1
        if username is None:
            username = f"testuser{_counter}"
        if email is None:
            email = f"{username}@test.local"

        return User.objects.create_user(
            username=username,
            password=password,
            email=email,
            role=role,
            is_active=is_active,
            **kwargs,
        )

    return _factory


@pytest.fixture()
def auth_header(create_user):
    """
    Returns a helper function that creates a user and returns an
    ``Authorization`` header dict with a valid JWT access token.

    Usage::

        def test_protected(auth_header, api_client):
            header = auth_header(username="alice")
            api_client.credentials(HTTP_AUTHORIZATION=header["Authorization"])
            resp = api_client.get("/api/cases/")
            assert resp.status_code != 401

    The returned dict looks like::

        {"Authorization": "Bearer eyJ..."}
    """
    from rest_framework_simplejwt.tokens import AccessToken

    def _make(*, username: str | None = None, **user_kwargs) -> dict[str, str]:
        user = create_user(username=username, **user_kwargs)
        token = AccessToken.for_user(user)
        return {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture()
def principal_for():
    """Returns ``Principal.from_user`` for calling services directly."""
    from core.domain.identity import Principal

    return Principal.from_user
