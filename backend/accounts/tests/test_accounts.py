"""
Integration tests — accounts: login, profile and user management.

Endpoints under test
--------------------
  POST  /api/accounts/auth/login/             (accounts:login)
  GET   /api/accounts/me/                     (accounts:me)
  GET   /api/accounts/users/                  (accounts:user-list)
  POST  /api/accounts/users/
  PATCH /api/accounts/users/{id}/change-role/ (accounts:user-change-role)

Login accepts ``identifier`` (username or email) + ``password`` and
returns an access token carrying the ``role`` claim.
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from accounts.models import Role
from audit.models import AuditAction, AuditLogEntry
from core.models import ResourceType

User = get_user_model()

# ── Constants ────────────────────────────────────────────────────────────────
_PASSWORD = "Str0ng!Pass99"


class TestLogin(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(
            username="login_user",
            email="login_user@example.com",
            password=_PASSWORD,
            role=Role.INVESTIGATOR,
        )

    def setUp(self):
        self.client = APIClient()
        self.login_url = reverse("accounts:login")

    def _post_login(self, identifier: str, password: str = _PASSWORD):
        return self.client.post(
            self.login_url, {"identifier": identifier, "password": password}, format="json",
        )

    def test_login_with_username(self):
        resp = self._post_login("login_user")

        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=f"Body: {resp.data}")
        self.assertIn("access", resp.data)
        self.assertIn("refresh", resp.data)
        self.assertEqual(resp.data["user"]["id"], self.user.pk)

        token = AccessToken(resp.data["access"])
        self.assertEqual(token["role"], Role.INVESTIGATOR, msg="Access token must carry the role claim.")

    def test_login_with_email_is_case_insensitive(self):
        resp = self._post_login("LOGIN_USER@example.com")
        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=f"Body: {resp.data}")

    def test_wrong_password_is_rejected(self):
        resp = self._post_login("login_user", "wrong-password")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertNotIn("access", resp.data)

    def test_unknown_identifier_is_rejected(self):
        resp = self._post_login("nobody")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_inactive_user_cannot_log_in(self):
        User.objects.filter(pk=self.user.pk).update(is_active=False)
        resp = self._post_login("login_user")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)


class UserManagementTestBase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.admin = User.objects.create_user(
            username="acc_admin", email="acc_admin@example.com", password=_PASSWORD, role=Role.ADMIN,
        )
        cls.analyst = User.objects.create_user(
            username="acc_analyst", email="acc_analyst@example.com", password=_PASSWORD,
            role=Role.ANALYST, badge_number="B-77",
        )

    def setUp(self):
        self.client = APIClient()

    def _auth(self, user) -> None:
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {AccessToken.for_user(user)}")


class TestMe(UserManagementTestBase):

    def test_me_returns_own_profile(self):
        self._auth(self.analyst)
        resp = self.client.get(reverse("accounts:me"))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["username"], "acc_analyst")
        self.assertEqual(resp.data["role"], Role.ANALYST)
        self.assertNotIn("password", resp.data)

    def test_me_requires_authentication(self):
        resp = self.client.get(reverse("accounts:me"))
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)


class TestUserManagement(UserManagementTestBase):

    def _create_payload(self, **overrides):
        payload = {
            "username": "new_officer",
            "email": "new_officer@example.com",
            "password": _PASSWORD,
            "role": Role.LEGAL,
        }
        payload.update(overrides)
        return payload

    def test_any_principal_can_list_users(self):
        self._auth(self.analyst)
        resp = self.client.get(reverse("accounts:user-list"), {"search": "B-77"})
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual([row["id"] for row in resp.data], [self.analyst.pk])

    def test_admin_creates_user(self):
        self._auth(self.admin)
        resp = self.client.post(reverse("accounts:user-list"), self._create_payload(), format="json")

        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=f"Body: {resp.data}")
        created = User.objects.get(username="new_officer")
        self.assertTrue(created.check_password(_PASSWORD))
        self.assertEqual(created.role, Role.LEGAL)

        entry = AuditLogEntry.objects.get(action=AuditAction.CREATE_USER, resource_id=created.pk)
        self.assertEqual(entry.resource_type, ResourceType.USER)
        self.assertEqual(entry.principal_id, self.admin.pk)
        self.assertNotIn("password", entry.details)

    def test_non_admin_cannot_create_user(self):
        self._auth(self.analyst)
        resp = self.client.post(reverse("accounts:user-list"), self._create_payload(), format="json")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(User.objects.filter(username="new_officer").exists())

    def test_duplicate_username_conflicts(self):
        self._auth(self.admin)
        resp = self.client.post(
            reverse("accounts:user-list"),
            self._create_payload(username="acc_analyst"),
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertFalse(AuditLogEntry.objects.filter(action=AuditAction.CREATE_USER).exists())

    def test_admin_changes_role(self):
        self._auth(self.admin)
        resp = self.client.patch(
            reverse("accounts:user-change-role", args=[self.analyst.pk]),
            {"role": Role.INVESTIGATOR},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=f"Body: {resp.data}")
        self.analyst.refresh_from_db()
        self.assertEqual(self.analyst.role, Role.INVESTIGATOR)

        entry = AuditLogEntry.objects.get(action=AuditAction.CHANGE_ROLE, resource_id=self.analyst.pk)
        self.assertEqual(entry.details, {"from": Role.ANALYST, "to": Role.INVESTIGATOR})

    def test_same_role_is_not_audited(self):
        self._auth(self.admin)
        resp = self.client.patch(
            reverse("accounts:user-change-role", args=[self.analyst.pk]),
            {"role": Role.ANALYST},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertFalse(AuditLogEntry.objects.filter(action=AuditAction.CHANGE_ROLE).exists())

    def test_admin_cannot_change_own_role(self):
        self._auth(self.admin)
        resp = self.client.patch(
            reverse("accounts:user-change-role", args=[self.admin.pk]),
            {"role": Role.ANALYST},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.admin.refresh_from_db()
        self.assertEqual(self.admin.role, Role.ADMIN)

    def test_non_admin_cannot_change_role(self):
        self._auth(self.analyst)
        resp = self.client.patch(
            reverse("accounts:user-change-role", args=[self.analyst.pk]),
            {"role": Role.ADMIN},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_change_role_of_missing_user(self):
        self._auth(self.admin)
        resp = self.client.patch(
            reverse("accounts:user-change-role", args=[999_999]),
            {"role": Role.ANALYST},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
