"""
Accounts app URL configuration.

All routes are namespaced under ``accounts`` and designed to be included
in the project-level ``urls.py`` as::

    path('api/accounts/', include('accounts.urls')),

Endpoint Map
------------
Authentication
    POST   /auth/login/                 → LoginView
    POST   /auth/token/refresh/         → TokenRefreshView (SimpleJWT)

Current User Profile ("Me")
    GET    /me/                         → MeView

User Management
    GET    /users/                      → UserViewSet.list
    POST   /users/                      → UserViewSet.create       (admin)
    GET    /users/{id}/                 → UserViewSet.retrieve
    PATCH  /users/{id}/change-role/     → UserViewSet.change_role  (admin)
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from .views import LoginView, MeView, UserViewSet

app_name = "accounts"

router = DefaultRouter()
router.register(r"users", UserViewSet, basename="user")

urlpatterns = [
    # ── Authentication ───────────────────────────────────────────────
    path("auth/login/", LoginView.as_view(), name="login"),
    path(
        "auth/token/refresh/",
        TokenRefreshView.as_view(),
        name="token-refresh",
    ),

    # ── Current User (Me) ───────────────────────────────────────────
    path("me/", MeView.as_view(), name="me"),

    # ── Router-registered viewsets (users/) ──────────────────────────
    path("", include(router.urls)),
]
