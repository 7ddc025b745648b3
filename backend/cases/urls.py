"""
Cases app URL configuration.

All routes are registered under the ``/api/cases/`` prefix.

Route Hierarchy
---------------
  /api/cases/                     → list / create
  /api/cases/{id}/                → retrieve / partial_update
  POST /api/cases/{id}/archive/   → archive (cases are never deleted)

Case comments live in the ``comments`` app:
  /api/cases/{case_pk}/comments/
"""

from rest_framework.routers import DefaultRouter

from .views import CaseViewSet

router = DefaultRouter()
router.register(
    prefix=r"cases",
    viewset=CaseViewSet,
    basename="case",
)

urlpatterns = router.urls
