"""
Evidence app URL configuration.

All routes are registered under the ``/api/`` prefix
(included from ``backend.urls``).

Route Hierarchy
---------------
  /api/evidence/                                → list / create (upload)
  /api/evidence/{id}/                           → retrieve / partial_update

  ── Workflow @actions ───────────────────────────────────────────
  POST   /api/evidence/{id}/status/             → change status
  POST   /api/evidence/{id}/tags/               → attach a tag
  DELETE /api/evidence/{id}/tags/{tag_id}/      → detach a tag

  ── Chain of custody ────────────────────────────────────────────
  GET  /api/evidence/{id}/custody/              → ledger, newest first
  POST /api/evidence/{id}/custody/              → append an entry
  GET  /api/evidence/{id}/custody/verify/       → recompute the hash chain

  ── Tags ────────────────────────────────────────────────────────
  /api/tags/                                    → list / create
  /api/tags/{id}/                               → retrieve / partial_update / destroy
"""

from rest_framework.routers import DefaultRouter

from .views import EvidenceViewSet, TagViewSet

router = DefaultRouter()
router.register(
    prefix=r"evidence",
    viewset=EvidenceViewSet,
    basename="evidence",
)
router.register(
    prefix=r"tags",
    viewset=TagViewSet,
    basename="tag",
)

urlpatterns = router.urls
