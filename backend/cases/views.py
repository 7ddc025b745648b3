"""
Cases app ViewSets.

Architecture: Views are intentionally thin.
Every view follows the strict three-step pattern:

    1. Parse / validate input via a serializer.
    2. Delegate all business logic to the appropriate service class.
    3. Serialize the result and return a DRF ``Response``.

No database queries or permission logic lives here.

ViewSets
--------
- ``CaseViewSet`` — list, create, retrieve, partial update, archive.
  There is deliberately no destroy route.
"""

from __future__ import annotations

from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
)
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from core.domain.identity import principal_from_request

from .models import Case
from .serializers import (
    CaseArchiveSerializer,
    CaseCreateSerializer,
    CaseDetailSerializer,
    CaseFilterSerializer,
    CaseListSerializer,
    CaseUpdateSerializer,
)
from .services import CaseQueryService, CaseService


class CaseViewSet(viewsets.ViewSet):
    """
    Central ViewSet for the cases app.

    Uses ``viewsets.ViewSet`` (not ``ModelViewSet``) so every action is
    explicitly defined, preventing accidental exposure of unintended
    CRUD operations.  Access checks happen in the service layer.
    """

    permission_classes = [IsAuthenticated]
    queryset = Case.objects.none()
    lookup_value_regex = r"[0-9]+"

    @extend_schema(
        summary="List cases",
        description="Cases the requester may view, newest first.",
        parameters=[
            OpenApiParameter(name="status", type=str, required=False, description="Filter by status."),
            OpenApiParameter(name="priority", type=str, required=False, description="Filter by priority."),
            OpenApiParameter(name="search", type=str, required=False, description="Search number, title, description."),
        ],
        responses={200: OpenApiResponse(response=CaseListSerializer(many=True), description="Case list.")},
        tags=["Cases"],
    )
    def list(self, request: Request) -> Response:
        """GET /api/cases/"""
        filter_serializer = CaseFilterSerializer(data=request.query_params)
        if not filter_serializer.is_valid():
            return Response(filter_serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        queryset = CaseQueryService.get_filtered_queryset(
            principal_from_request(request), filter_serializer.validated_data
        )
        serializer = CaseListSerializer(queryset, many=True)
        return Response(serializer.data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Create a case",
        request=CaseCreateSerializer,
        responses={
            201: OpenApiResponse(response=CaseDetailSerializer, description="Case created."),
            403: OpenApiResponse(description="Role may not create cases."),
            409: OpenApiResponse(description="Duplicate case number."),
        },
        tags=["Cases"],
    )
    def create(self, request: Request) -> Response:
        """POST /api/cases/"""
        serializer = CaseCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        case = CaseService.create_case(
            principal_from_request(request), serializer.validated_data
        )
        return Response(CaseDetailSerializer(case).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Retrieve a case",
        responses={
            200: OpenApiResponse(response=CaseDetailSerializer, description="Case detail."),
            403: OpenApiResponse(description="Access denied."),
            404: OpenApiResponse(description="Not found."),
        },
        tags=["Cases"],
    )
    def retrieve(self, request: Request, pk: str = None) -> Response:
        """GET /api/cases/{id}/"""
        case = CaseQueryService.get_case_detail(principal_from_request(request), int(pk))
        return Response(CaseDetailSerializer(case).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Update a case",
        request=CaseUpdateSerializer,
        responses={
            200: OpenApiResponse(response=CaseDetailSerializer, description="Case updated."),
            403: OpenApiResponse(description="Access denied."),
            409: OpenApiResponse(description="Stale version or duplicate case number."),
        },
        tags=["Cases"],
    )
    def partial_update(self, request: Request, pk: str = None) -> Response:
        """PATCH /api/cases/{id}/"""
        serializer = CaseUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        expected_version = data.pop("version", None)

        case = CaseService.update_case(
            principal_from_request(request), int(pk), data, expected_version
        )
        return Response(CaseDetailSerializer(case).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Archive a case",
        request=CaseArchiveSerializer,
        responses={
            200: OpenApiResponse(response=CaseDetailSerializer, description="Case archived."),
            409: OpenApiResponse(description="Already archived or stale version."),
        },
        tags=["Cases"],
    )
    @action(detail=True, methods=["post"], url_path="archive")
    def archive(self, request: Request, pk: str = None) -> Response:
        """POST /api/cases/{id}/archive/"""
        serializer = CaseArchiveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        case = CaseService.archive_case(
            principal_from_request(request),
            int(pk),
            serializer.validated_data.get("version"),
        )
        return Response(CaseDetailSerializer(case).data, status=status.HTTP_200_OK)
