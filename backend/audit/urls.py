"""
Audit app URL configuration.

Included in the project-level ``urls.py`` as::

    path('api/', include('audit.urls')),

Endpoint Map
------------
    GET /audit/        → AuditLogViewSet.list
    GET /audit/{id}/   → AuditLogViewSet.retrieve
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import AuditLogViewSet

app_name = "audit"

router = DefaultRouter()
router.register(r"audit", AuditLogViewSet, basename="audit")

urlpatterns = [
    path("", include(router.urls)),
]
