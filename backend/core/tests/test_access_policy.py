"""
Unit tests — core.domain.access.AccessPolicy.

Every rule is exercised twice: through ``evaluate`` (single resource) and
through ``scope_queryset`` (list), because both must be derived from the
same relation paths and therefore agree for every principal.

Fixture layout (seeded once in ``setUpTestData``)
-------------------------------------------------
  case_a   created_by=creator, lead_investigator=lead, assigned_to=assignee
  case_b   created_by=other_investigator
  ev_a1    on case_a, uploaded by lead
  ev_a2    on case_a, uploaded by lead; custody transferred lead → custodian
  ev_b1    on case_b, uploaded by uploader (who has no relation to case_b)
  comments one on case_a, one on ev_a2, one on case_b
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings

from accounts.models import Role
from audit.models import AuditLogEntry
from cases.models import Case
from comments.models import Comment
from core.domain.access import AccessPolicy, Decision, PolicyAction, ResourceRef
from core.domain.exceptions import NotFound, PermissionDenied
from core.domain.identity import Principal
from core.models import ResourceType
from core.permissions_constants import Capability
from evidence.models import ChainOfCustodyEntry, CustodyAction, Evidence, Tag
from evidence.services import ChainOfCustodyLedger

User = get_user_model()

_MISSING_ID = 999_999


def _user(username: str, role: str) -> User:
    return User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="Str0ng!Pass99",
        role=role,
    )


class AccessPolicyFixtureMixin:

    @classmethod
    def setUpTestData(cls):
        cls.admin = _user("admin", Role.ADMIN)
        cls.creator = _user("creator", Role.INVESTIGATOR)
        cls.lead = _user("lead", Role.INVESTIGATOR)
        cls.assignee = _user("assignee", Role.ANALYST)
        cls.other_investigator = _user("other_inv", Role.INVESTIGATOR)
        cls.uploader = _user("uploader", Role.ANALYST)
        cls.custodian = _user("custodian", Role.ANALYST)
        cls.outsider = _user("outsider", Role.LEGAL)

        cls.case_a = Case.objects.create(
            case_number="CASE-A",
            title="Warehouse burglary",
            created_by=cls.creator,
            lead_investigator=cls.lead,
            assigned_to=cls.assignee,
        )
        cls.case_b = Case.objects.create(
            case_number="CASE-B",
            title="Payroll fraud",
            created_by=cls.other_investigator,
        )

        cls.ev_a1 = Evidence.objects.create(case=cls.case_a, title="CCTV export", uploaded_by=cls.lead)
        cls.ev_a2 = Evidence.objects.create(case=cls.case_a, title="Crowbar", uploaded_by=cls.lead)
        cls.ev_b1 = Evidence.objects.create(case=cls.case_b, title="Ledger scan", uploaded_by=cls.uploader)

        cls.transfer = ChainOfCustodyLedger.append(
            Principal.from_user(cls.lead),
            cls.ev_a2.pk,
            CustodyAction.TRANSFERRED,
            from_principal_id=cls.lead.pk,
            to_principal_id=cls.custodian.pk,
            location="Evidence locker 3",
        )

        cls.comment_case_a = Comment.objects.create(content="Scene photos requested.", case=cls.case_a, author=cls.assignee)
        cls.comment_ev_a2 = Comment.objects.create(content="Prints lifted.", evidence=cls.ev_a2, author=cls.custodian)
        cls.comment_case_b = Comment.objects.create(content="Audit pending.", case=cls.case_b, author=cls.other_investigator)

        cls.tag = Tag.objects.create(name="weapon", created_by=cls.uploader)

    @staticmethod
    def p(user) -> Principal:
        return Principal.from_user(user)

    def all_users(self):
        return [
            self.admin, self.creator, self.lead, self.assignee,
            self.other_investigator, self.uploader, self.custodian, self.outsider,
        ]


class TestCaseRule(AccessPolicyFixtureMixin, TestCase):

    def test_case_view_matches_relation_fields_for_every_principal(self):
        for case in (self.case_a, self.case_b):
            related = {case.created_by_id, case.assigned_to_id, case.lead_investigator_id}
            for user in self.all_users():
                expected = user.role == Role.ADMIN or user.pk in related
                with self.subTest(case=case.case_number, user=user.username):
                    self.assertEqual(
                        AccessPolicy.can(self.p(user), PolicyAction.VIEW, ResourceRef.of(case)),
                        expected,
                        msg=f"Case view for {user.username} on {case.case_number} should be {expected}.",
                    )

    def test_scope_queryset_agrees_with_evaluate(self):
        for user in self.all_users():
            scoped = set(
                AccessPolicy.scope_queryset(self.p(user), ResourceType.CASE).values_list("pk", flat=True)
            )
            evaluated = {
                c.pk for c in Case.objects.all()
                if AccessPolicy.can(self.p(user), PolicyAction.VIEW, ResourceRef.of(c))
            }
            with self.subTest(user=user.username):
                self.assertEqual(scoped, evaluated)

    def test_admin_scope_returns_every_case(self):
        scoped = AccessPolicy.scope_queryset(self.p(self.admin), ResourceType.CASE)
        self.assertEqual(scoped.count(), Case.objects.count())

    def test_delete_is_refused_even_for_admin(self):
        decision = AccessPolicy.evaluate(self.p(self.admin), PolicyAction.DELETE, ResourceRef.of(self.case_a))
        self.assertFalse(decision.allowed)
        self.assertTrue(decision.exists)
        self.assertIn("archive", decision.reason)

    def test_custodian_cannot_view_the_case(self):
        self.assertFalse(
            AccessPolicy.can(self.p(self.custodian), PolicyAction.VIEW, ResourceRef.of(self.case_a)),
            msg="Custody of one item must not grant access to its case.",
        )


class TestEvidenceRule(AccessPolicyFixtureMixin, TestCase):

    def _expected_view(self, user, evidence: Evidence) -> bool:
        case = evidence.case
        custodians = set(
            ChainOfCustodyEntry.objects.filter(evidence=evidence)
            .exclude(to_principal=None)
            .values_list("to_principal_id", flat=True)
        )
        return (
            user.role == Role.ADMIN
            or user.pk in {case.created_by_id, case.assigned_to_id, case.lead_investigator_id}
            or user.pk == evidence.uploaded_by_id
            or user.pk in custodians
        )

    def test_evidence_view_matches_case_uploader_and_custody(self):
        for evidence in Evidence.objects.select_related("case"):
            for user in self.all_users():
                with self.subTest(evidence=evidence.title, user=user.username):
                    self.assertEqual(
                        AccessPolicy.can(self.p(user), PolicyAction.VIEW, ResourceRef.of(evidence)),
                        self._expected_view(user, evidence),
                    )

    def test_uploader_without_case_relation_sees_only_their_upload(self):
        scoped = AccessPolicy.scope_queryset(self.p(self.uploader), ResourceType.EVIDENCE)
        self.assertEqual(list(scoped.values_list("pk", flat=True)), [self.ev_b1.pk])
        self.assertFalse(
            AccessPolicy.can(self.p(self.uploader), PolicyAction.VIEW, ResourceRef.of(self.case_b))
        )

    def test_custodian_sees_exactly_the_transferred_item(self):
        scoped = AccessPolicy.scope_queryset(self.p(self.custodian), ResourceType.EVIDENCE)
        self.assertEqual(list(scoped.values_list("pk", flat=True)), [self.ev_a2.pk])

    def test_scope_does_not_duplicate_rows_with_several_custody_entries(self):
        ChainOfCustodyLedger.append(
            self.p(self.custodian),
            self.ev_a2.pk,
            CustodyAction.ACCESSED,
            to_principal_id=self.custodian.pk,
            location="Lab 2",
        )
        scoped = AccessPolicy.scope_queryset(self.p(self.custodian), ResourceType.EVIDENCE)
        self.assertEqual(scoped.count(), 1)

    def test_new_custody_grant_is_visible_immediately(self):
        ref = ResourceRef.of(self.ev_a1)
        self.assertFalse(AccessPolicy.can(self.p(self.outsider), PolicyAction.VIEW, ref))

        ChainOfCustodyLedger.append(
            self.p(self.lead),
            self.ev_a1.pk,
            CustodyAction.TRANSFERRED,
            from_principal_id=self.lead.pk,
            to_principal_id=self.outsider.pk,
            location="Court clerk",
        )

        self.assertTrue(AccessPolicy.can(self.p(self.outsider), PolicyAction.VIEW, ref))

    def test_delete_is_refused(self):
        decision = AccessPolicy.evaluate(self.p(self.admin), PolicyAction.DELETE, ResourceRef.of(self.ev_a1))
        self.assertFalse(decision)


class TestCommentRule(AccessPolicyFixtureMixin, TestCase):

    def test_comment_visibility_equals_parent_visibility(self):
        for comment in Comment.objects.all():
            parent_type, parent_id = comment.parent
            for user in self.all_users():
                with self.subTest(comment=comment.pk, user=user.username):
                    self.assertEqual(
                        AccessPolicy.can(self.p(user), PolicyAction.VIEW, ResourceRef.of(comment)),
                        AccessPolicy.can(self.p(user), PolicyAction.VIEW, ResourceRef(parent_type, parent_id)),
                    )

    def test_only_author_may_change_or_delete(self):
        ref = ResourceRef.of(self.comment_case_a)
        for action in (PolicyAction.CHANGE, PolicyAction.DELETE):
            self.assertTrue(AccessPolicy.can(self.p(self.assignee), action, ref))
            self.assertFalse(AccessPolicy.can(self.p(self.creator), action, ref))
            self.assertTrue(AccessPolicy.can(self.p(self.admin), action, ref))

    def test_author_who_lost_parent_access_cannot_edit(self):
        self.case_a.assigned_to = None
        self.case_a.save(update_fields=["assigned_to"])
        self.assertFalse(
            AccessPolicy.can(self.p(self.assignee), PolicyAction.CHANGE, ResourceRef.of(self.comment_case_a))
        )

    def test_scope_queryset_for_custodian(self):
        scoped = AccessPolicy.scope_queryset(self.p(self.custodian), ResourceType.COMMENT)
        self.assertEqual(list(scoped.values_list("pk", flat=True)), [self.comment_ev_a2.pk])


class TestLedgerAndAuditRules(AccessPolicyFixtureMixin, TestCase):

    def test_custody_entries_follow_evidence_view_rule(self):
        ref = ResourceRef.of(self.transfer)
        self.assertTrue(AccessPolicy.can(self.p(self.custodian), PolicyAction.VIEW, ref))
        self.assertTrue(AccessPolicy.can(self.p(self.creator), PolicyAction.VIEW, ref))
        self.assertFalse(AccessPolicy.can(self.p(self.outsider), PolicyAction.VIEW, ref))

    def test_custody_entries_are_immutable_even_for_admin(self):
        ref = ResourceRef.of(self.transfer)
        for action in (PolicyAction.CHANGE, PolicyAction.DELETE):
            decision = AccessPolicy.evaluate(self.p(self.admin), action, ref)
            self.assertFalse(decision.allowed, msg=f"Admin must not {action} a custody entry.")

    def test_audit_entries_visible_to_own_principal_or_admin(self):
        entry = AuditLogEntry.objects.filter(principal=self.lead).first()
        self.assertIsNotNone(entry, msg="Custody append should have produced an audit entry.")
        ref = ResourceRef.of(entry)
        self.assertTrue(AccessPolicy.can(self.p(self.lead), PolicyAction.VIEW, ref))
        self.assertTrue(AccessPolicy.can(self.p(self.admin), PolicyAction.VIEW, ref))
        self.assertFalse(AccessPolicy.can(self.p(self.creator), PolicyAction.VIEW, ref))
        self.assertFalse(AccessPolicy.can(self.p(self.admin), PolicyAction.DELETE, ref))

    def test_tags_readable_by_all_changeable_by_creator(self):
        ref = ResourceRef.of(self.tag)
        self.assertTrue(AccessPolicy.can(self.p(self.outsider), PolicyAction.VIEW, ref))
        self.assertTrue(AccessPolicy.can(self.p(self.uploader), PolicyAction.CHANGE, ref))
        self.assertFalse(AccessPolicy.can(self.p(self.lead), PolicyAction.CHANGE, ref))
        self.assertTrue(AccessPolicy.can(self.p(self.admin), PolicyAction.DELETE, ref))


class TestRequire(AccessPolicyFixtureMixin, TestCase):

    def test_missing_resource_is_not_found(self):
        decision = AccessPolicy.evaluate(
            self.p(self.admin), PolicyAction.VIEW, ResourceRef(ResourceType.CASE, _MISSING_ID)
        )
        self.assertEqual(decision, Decision(False, decision.reason, exists=False))
        with self.assertRaises(NotFound):
            AccessPolicy.require(self.p(self.lead), PolicyAction.VIEW, ResourceRef(ResourceType.CASE, _MISSING_ID))

    def test_denied_resource_is_forbidden_by_default(self):
        with self.assertRaises(PermissionDenied):
            AccessPolicy.require(self.p(self.outsider), PolicyAction.VIEW, ResourceRef.of(self.case_a))

    @override_settings(ACCESS_POLICY={"HIDE_EXISTENCE": True})
    def test_hidden_mode_reports_not_found_when_not_viewable(self):
        with self.assertRaises(NotFound):
            AccessPolicy.require(self.p(self.outsider), PolicyAction.VIEW, ResourceRef.of(self.case_a))
        with self.assertRaises(NotFound):
            AccessPolicy.require(self.p(self.outsider), PolicyAction.CHANGE, ResourceRef.of(self.case_a))

    @override_settings(ACCESS_POLICY={"HIDE_EXISTENCE": True})
    def test_hidden_mode_still_forbids_when_resource_is_viewable(self):
        # The creator can see the comment, so hiding it would be pointless.
        with self.assertRaises(PermissionDenied):
            AccessPolicy.require(self.p(self.creator), PolicyAction.CHANGE, ResourceRef.of(self.comment_case_a))

    def test_denial_message_does_not_leak_content(self):
        with self.assertRaises(PermissionDenied) as ctx:
            AccessPolicy.require(self.p(self.outsider), PolicyAction.VIEW, ResourceRef.of(self.case_a))
        self.assertNotIn(self.case_a.title, ctx.exception.message)
        self.assertNotIn(self.case_a.case_number, ctx.exception.message)

    def test_user_resource_type_has_no_rule(self):
        with self.assertRaises(ValueError):
            AccessPolicy.evaluate(self.p(self.admin), PolicyAction.VIEW, ResourceRef(ResourceType.USER, self.lead.pk))


class TestCapabilities(TestCase):

    def test_role_capability_table(self):
        expectations = {
            Role.ADMIN: set(Capability),
            Role.INVESTIGATOR: {
                Capability.CREATE_CASE, Capability.UPLOAD_EVIDENCE, Capability.APPEND_CUSTODY,
                Capability.ADD_COMMENT, Capability.MANAGE_TAGS,
            },
            Role.ANALYST: {
                Capability.UPLOAD_EVIDENCE, Capability.APPEND_CUSTODY,
                Capability.ADD_COMMENT, Capability.MANAGE_TAGS,
            },
            Role.LEGAL: {Capability.ADD_COMMENT},
        }
        for role, granted in expectations.items():
            principal = Principal(id=1, role=role)
            for capability in Capability:
                with self.subTest(role=role, capability=capability):
                    self.assertEqual(
                        AccessPolicy.has_capability(principal, capability),
                        capability in granted,
                    )

    def test_require_capability_raises_permission_denied(self):
        with self.assertRaises(PermissionDenied):
            AccessPolicy.require_capability(Principal(id=1, role=Role.LEGAL), Capability.CREATE_CASE)

    def test_principal_rejects_unknown_role(self):
        with self.assertRaises(ValueError):
            Principal(id=1, role="superhero")
