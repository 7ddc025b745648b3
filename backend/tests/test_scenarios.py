"""
End-to-end flows through the HTTP API.

Each test walks one access/audit/custody story from the outside, using
only JWT-authenticated requests, and checks the resulting rows:

  A  an admin sees every case regardless of relations
  B  an unrelated analyst is refused a case and sees no rows
  C  a lead investigator's upload leaves exactly one ``AddEvidence`` entry
  D  custody opens one evidence item to its recipient, nothing more
  E  two appends with an identical clock reading are both kept, in order
"""

from __future__ import annotations

from unittest import mock

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from accounts.models import Role
from audit.models import AuditAction, AuditLogEntry
from cases.models import Case
from evidence.models import ChainOfCustodyEntry, Evidence

User = get_user_model()

_PASSWORD = "Str0ng!Pass99"


def _user(username: str, role: str) -> User:
    return User.objects.create_user(
        username=username, email=f"{username}@example.com", password=_PASSWORD, role=role,
    )


class ScenarioTestBase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.admin = _user("flow_admin", Role.ADMIN)
        cls.lead = _user("flow_lead", Role.INVESTIGATOR)
        cls.other_lead = _user("flow_other_lead", Role.INVESTIGATOR)
        cls.analyst = _user("flow_analyst", Role.ANALYST)
        cls.recipient = _user("flow_recipient", Role.ANALYST)

        cls.case = Case.objects.create(
            case_number="FLOW-1",
            title="Port container theft",
            created_by=cls.lead,
            lead_investigator=cls.lead,
        )
        cls.unrelated_case = Case.objects.create(
            case_number="FLOW-2",
            title="Counterfeit currency",
            created_by=cls.other_lead,
            lead_investigator=cls.other_lead,
        )

    def setUp(self):
        self.client = APIClient()

    def _auth(self, user) -> None:
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {AccessToken.for_user(user)}")

    def _upload(self, title: str) -> int:
        self._auth(self.lead)
        resp = self.client.post(
            reverse("evidence-list"), {"case": self.case.pk, "title": title}, format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=f"Body: {resp.data}")
        return resp.data["id"]


class TestAdminSeesEverything(ScenarioTestBase):

    def test_admin_lists_all_cases(self):
        self._auth(self.admin)
        resp = self.client.get(reverse("case-list"))

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(
            {row["id"] for row in resp.data},
            set(Case.objects.values_list("pk", flat=True)),
            msg="An admin must see every case, related or not.",
        )


class TestUnrelatedAnalystIsRefused(ScenarioTestBase):

    def test_detail_is_forbidden_and_list_is_empty(self):
        self._auth(self.analyst)

        resp = self.client.get(reverse("case-detail", args=[self.case.pk]))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(set(resp.data), {"detail"}, msg="A refusal must not leak case fields.")

        resp = self.client.get(reverse("case-list"))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data, [])


class TestUploadIsAudited(ScenarioTestBase):

    def test_lead_upload_records_one_entry(self):
        evidence_id = self._upload("Bolt cutters")

        entries = AuditLogEntry.objects.filter(action=AuditAction.ADD_EVIDENCE)
        self.assertEqual(entries.count(), 1)
        entry = entries.get()
        self.assertEqual(entry.resource_id, evidence_id)
        self.assertEqual(entry.principal_id, self.lead.pk)
        self.assertEqual(entry.details["case"], self.case.pk)


class TestCustodyGrantsItemAccess(ScenarioTestBase):

    def test_recipient_sees_only_the_transferred_item(self):
        transferred = self._upload("Seal fragment")
        untouched = self._upload("CCTV export")

        resp = self.client.post(
            reverse("evidence-custody", args=[transferred]),
            {
                "action": "transferred",
                "from_principal": self.lead.pk,
                "to_principal": self.recipient.pk,
                "location": "Forensics lab",
            },
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=f"Body: {resp.data}")

        self._auth(self.recipient)
        resp = self.client.get(reverse("evidence-detail", args=[transferred]))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)

        resp = self.client.get(reverse("evidence-detail", args=[untouched]))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

        resp = self.client.get(reverse("case-detail", args=[self.case.pk]))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

        resp = self.client.get(reverse("evidence-list"))
        self.assertEqual([row["id"] for row in resp.data], [transferred])


class TestSimultaneousAppendsAreKept(ScenarioTestBase):

    def test_same_instant_appends_are_distinct_and_ordered(self):
        evidence_id = self._upload("Container manifest")
        url = reverse("evidence-custody", args=[evidence_id])
        body = {"action": "accessed", "to_principal": self.lead.pk, "location": "Records room"}

        frozen = timezone.now()
        with mock.patch("evidence.services.timezone.now", return_value=frozen):
            first = self.client.post(url, body, format="json")
            second = self.client.post(url, body, format="json")

        self.assertEqual(first.status_code, status.HTTP_201_CREATED, msg=f"Body: {first.data}")
        self.assertEqual(second.status_code, status.HTTP_201_CREATED, msg=f"Body: {second.data}")
        self.assertNotEqual(first.data["id"], second.data["id"])

        resp = self.client.get(url)
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(
            [row["id"] for row in resp.data],
            [second.data["id"], first.data["id"]],
            msg="Listing is newest first and must contain both entries.",
        )
        self.assertEqual([row["sequence"] for row in resp.data], [2, 1])

        stored = ChainOfCustodyEntry.objects.filter(evidence_id=evidence_id).order_by("sequence")
        self.assertLess(stored[0].timestamp, stored[1].timestamp)
        self.assertEqual(stored[1].previous_hash, stored[0].entry_hash)

        resp = self.client.get(reverse("evidence-verify-custody", args=[evidence_id]))
        self.assertTrue(resp.data["valid"])
        self.assertTrue(Evidence.objects.filter(pk=evidence_id).exists())
