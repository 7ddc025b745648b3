"""
Tests — core.domain.identity: the client address recorded with audit entries.

``X-Forwarded-For`` is client-controlled.  It is honoured only for the
configured number of trusted proxies, and whatever is recorded must be a
valid IPv4/IPv6 address.
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from accounts.models import Role
from audit.models import AuditAction, AuditLogEntry
from core.domain.identity import client_ip_address

User = get_user_model()


class TestClientIpAddress(SimpleTestCase):

    def test_forwarded_header_ignored_without_trusted_proxies(self):
        meta = {"REMOTE_ADDR": "192.0.2.7", "HTTP_X_FORWARDED_FOR": "203.0.113.9"}
        self.assertEqual(client_ip_address(meta), "192.0.2.7")

    @override_settings(ACCESS_POLICY={"TRUSTED_PROXY_COUNT": 1})
    def test_one_trusted_proxy_uses_rightmost_entry(self):
        meta = {
            "REMOTE_ADDR": "10.0.0.2",
            "HTTP_X_FORWARDED_FOR": "198.51.100.1, 203.0.113.9",
        }
        self.assertEqual(client_ip_address(meta), "203.0.113.9")

    @override_settings(ACCESS_POLICY={"TRUSTED_PROXY_COUNT": 2})
    def test_two_trusted_proxies(self):
        meta = {
            "REMOTE_ADDR": "10.0.0.3",
            "HTTP_X_FORWARDED_FOR": "198.51.100.1, 203.0.113.9, 10.0.0.2",
        }
        self.assertEqual(client_ip_address(meta), "203.0.113.9")

    @override_settings(ACCESS_POLICY={"TRUSTED_PROXY_COUNT": 2})
    def test_short_header_falls_back_to_remote_addr(self):
        meta = {"REMOTE_ADDR": "10.0.0.3", "HTTP_X_FORWARDED_FOR": "203.0.113.9"}
        self.assertEqual(client_ip_address(meta), "10.0.0.3")

    @override_settings(ACCESS_POLICY={"TRUSTED_PROXY_COUNT": 1})
    def test_invalid_address_is_dropped(self):
        meta = {"REMOTE_ADDR": "10.0.0.2", "HTTP_X_FORWARDED_FOR": "not-an-ip"}
        self.assertIsNone(client_ip_address(meta))

    def test_ipv6_and_missing_remote_addr(self):
        self.assertEqual(client_ip_address({"REMOTE_ADDR": "2001:db8::1"}), "2001:db8::1")
        self.assertIsNone(client_ip_address({}))


class TestAuditedAddressCannotBeForged(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.investigator = User.objects.create_user(
            username="ip_inv", email="ip_inv@example.com", password="Str0ng!Pass99",
            role=Role.INVESTIGATOR,
        )

    def setUp(self):
        self.client = APIClient()
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {AccessToken.for_user(self.investigator)}")

    def test_forged_forwarded_header_is_not_recorded(self):
        resp = self.client.post(
            reverse("case-list"),
            {"case_number": "IP-1", "title": "Forged header"},
            format="json",
            HTTP_X_FORWARDED_FOR="not-an-ip, 10.0.0.1",
            REMOTE_ADDR="192.0.2.7",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=f"Body: {resp.data}")

        entry = AuditLogEntry.objects.get(action=AuditAction.CREATE_CASE, resource_id=resp.data["id"])
        self.assertEqual(
            entry.ip_address, "192.0.2.7",
            msg="The audited address must come from the connection, not a client header.",
        )

    @override_settings(ACCESS_POLICY={"TRUSTED_PROXY_COUNT": 1})
    def test_invalid_forwarded_value_does_not_break_the_mutation(self):
        resp = self.client.post(
            reverse("case-list"),
            {"case_number": "IP-2", "title": "Garbage header"},
            format="json",
            HTTP_X_FORWARDED_FOR="garbage",
            REMOTE_ADDR="10.0.0.2",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=f"Body: {resp.data}")

        entry = AuditLogEntry.objects.get(action=AuditAction.CREATE_CASE, resource_id=resp.data["id"])
        self.assertIsNone(entry.ip_address)
