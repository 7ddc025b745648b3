"""
Comments app URL configuration.

    /api/cases/{case_pk}/comments/           → list / create
    /api/evidence/{evidence_pk}/comments/    → list / create
    /api/comments/{id}/                      → retrieve / partial_update / destroy

The nested routers borrow the parent routers from ``cases.urls`` and
``evidence.urls`` only to resolve the ``{case_pk}`` / ``{evidence_pk}``
lookup; the parent routes themselves are served by their own apps.
"""

from rest_framework.routers import DefaultRouter
from rest_framework_nested.routers import NestedDefaultRouter

from cases.urls import router as cases_router
from evidence.urls import router as evidence_router

from .views import CaseCommentViewSet, CommentViewSet, EvidenceCommentViewSet

router = DefaultRouter()
router.register(
    prefix=r"comments",
    viewset=CommentViewSet,
    basename="comment",
)

case_comments_router = NestedDefaultRouter(
    parent_router=cases_router,
    parent_prefix=r"cases",
    lookup="case",  # produces kwarg ``case_pk``
)
case_comments_router.register(
    prefix=r"comments",
    viewset=CaseCommentViewSet,
    basename="case-comment",
)

evidence_comments_router = NestedDefaultRouter(
    parent_router=evidence_router,
    parent_prefix=r"evidence",
    lookup="evidence",
)
evidence_comments_router.register(
    prefix=r"comments",
    viewset=EvidenceCommentViewSet,
    basename="evidence-comment",
)

urlpatterns = [
    *router.urls,
    *case_comments_router.urls,
    *evidence_comments_router.urls,
]
