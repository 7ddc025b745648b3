"""
Accounts app views.

All views follow the **Thin View** pattern: validate input via
serializers, delegate to the service layer, and return the result
wrapped in a DRF ``Response``.  **No business logic** resides here.

View Map
--------
- ``LoginView``    — POST /auth/login/
- ``MeView``       — GET /me/
- ``UserViewSet``  — /users/  (list, retrieve, create, change-role)
"""

from __future__ import annotations

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
)

from core.domain.identity import principal_from_request

from .models import User
from .serializers import (
    ChangeRoleSerializer,
    CustomTokenObtainPairSerializer,
    LoginRequestSerializer,
    UserCreateSerializer,
    UserDetailSerializer,
    UserListSerializer,
)
from .services import CurrentUserService, UserManagementService


# ═══════════════════════════════════════════════════════════════════
#  Authentication Views
# ═══════════════════════════════════════════════════════════════════


class LoginView(APIView):
    """
    POST /api/accounts/auth/login/

    Public endpoint.  Authenticates a user via username or email plus
    password and returns a JWT pair whose access token carries the
    ``role`` claim.
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        summary="Log in",
        request=LoginRequestSerializer,
        responses={
            200: OpenApiResponse(description="Token pair plus user profile."),
            400: OpenApiResponse(description="Invalid credentials."),
        },
        tags=["Accounts"],
    )
    def post(self, request: Request) -> Response:
        serializer = CustomTokenObtainPairSerializer(
            data=request.data,
            context={"request": request},
        )
        serializer.is_valid(raise_exception=True)

        payload = dict(serializer.validated_data)
        payload["user"] = UserDetailSerializer(serializer.user).data
        return Response(payload, status=status.HTTP_200_OK)


# ═══════════════════════════════════════════════════════════════════
#  Current User ("Me") View
# ═══════════════════════════════════════════════════════════════════


class MeView(APIView):
    """GET /api/accounts/me/ → the authenticated principal's profile."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Current user",
        responses={200: UserDetailSerializer},
        tags=["Accounts"],
    )
    def get(self, request: Request) -> Response:
        user = CurrentUserService.get_profile(principal_from_request(request))
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)


# ═══════════════════════════════════════════════════════════════════
#  User Management ViewSet
# ═══════════════════════════════════════════════════════════════════


class UserViewSet(viewsets.ViewSet):
    """
    /api/accounts/users/

    Listing and retrieval are open to every principal.  Creation and
    role changes are admin-only; the check lives in
    ``UserManagementService``.
    """

    permission_classes = [IsAuthenticated]
    queryset = User.objects.none()
    lookup_value_regex = r"[0-9]+"

    @extend_schema(
        summary="List users",
        parameters=[
            OpenApiParameter(name="role", type=str, required=False, description="Filter by role."),
            OpenApiParameter(name="is_active", type=bool, required=False, description="Filter by active flag."),
            OpenApiParameter(name="search", type=str, required=False, description="Match username, email, name or badge."),
        ],
        responses={200: UserListSerializer(many=True)},
        tags=["Accounts"],
    )
    def list(self, request: Request) -> Response:
        """GET /api/accounts/users/"""
        params = request.query_params
        is_active = params.get("is_active")
        queryset = UserManagementService.list_users(
            role=params.get("role") or None,
            is_active=None if is_active is None else is_active.lower() in ("1", "true", "yes"),
            search=params.get("search") or None,
        )
        return Response(UserListSerializer(queryset, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Retrieve a user",
        responses={200: UserDetailSerializer, 404: OpenApiResponse(description="Not found.")},
        tags=["Accounts"],
    )
    def retrieve(self, request: Request, pk: str = None) -> Response:
        """GET /api/accounts/users/{id}/"""
        user = UserManagementService.get_user(int(pk))
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Create a user (admin only)",
        request=UserCreateSerializer,
        responses={
            201: UserDetailSerializer,
            403: OpenApiResponse(description="Not an admin."),
            409: OpenApiResponse(description="Username or email taken."),
        },
        tags=["Accounts"],
    )
    def create(self, request: Request) -> Response:
        """POST /api/accounts/users/"""
        serializer = UserCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = UserManagementService.create_user(
            principal_from_request(request),
            serializer.validated_data,
        )
        return Response(UserDetailSerializer(user).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Change a user's role (admin only)",
        request=ChangeRoleSerializer,
        responses={
            200: UserDetailSerializer,
            403: OpenApiResponse(description="Not an admin."),
            404: OpenApiResponse(description="User not found."),
        },
        tags=["Accounts"],
    )
    @action(detail=True, methods=["patch"], url_path="change-role")
    def change_role(self, request: Request, pk: str = None) -> Response:
        """PATCH /api/accounts/users/{id}/change-role/"""
        serializer = ChangeRoleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = UserManagementService.change_role(
            principal_from_request(request),
            int(pk),
            serializer.validated_data["role"],
        )
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)
