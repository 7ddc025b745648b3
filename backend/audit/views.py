"""
Audit app ViewSets.

Read-only endpoints over the append-only audit log.  There is no
create, update or delete route: entries are written by the service
layer of whichever app performs a mutation.
"""

from __future__ import annotations

from rest_framework import status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
)

from core.domain.identity import principal_from_request

from .models import AuditLogEntry
from .serializers import AuditFilterSerializer, AuditLogEntrySerializer
from .services import AuditTrail


class AuditLogViewSet(viewsets.ViewSet):
    """
    /api/audit/

    Non-admin principals only ever see their own entries; admins see
    everything.
    """

    permission_classes = [IsAuthenticated]
    queryset = AuditLogEntry.objects.none()
    lookup_value_regex = r"[0-9]+"

    @extend_schema(
        summary="List recent audit entries",
        description="Newest first. Non-admins see only their own entries.",
        parameters=[
            OpenApiParameter(name="resource_type", type=str, required=False, description="Filter by resource type."),
            OpenApiParameter(name="action", type=str, required=False, description="Filter by audit action."),
            OpenApiParameter(name="resource_id", type=int, required=False, description="Filter by resource ID."),
            OpenApiParameter(name="principal", type=int, required=False, description="Filter by acting principal ID."),
            OpenApiParameter(name="limit", type=int, required=False, description="Maximum number of entries."),
        ],
        responses={
            200: OpenApiResponse(response=AuditLogEntrySerializer(many=True), description="Audit entries."),
            403: OpenApiResponse(description="Asked for another principal's entries."),
        },
        tags=["Audit"],
    )
    def list(self, request: Request) -> Response:
        """GET /api/audit/ — List audit entries visible to the requester."""
        filter_serializer = AuditFilterSerializer(data=request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        filters = dict(filter_serializer.validated_data)
        limit = filters.pop("limit", None)

        entries = AuditTrail.list_recent(
            principal_from_request(request),
            filters,
            limit,
        )
        serializer = AuditLogEntrySerializer(entries, many=True)
        return Response(serializer.data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Retrieve an audit entry",
        responses={
            200: OpenApiResponse(response=AuditLogEntrySerializer, description="Audit entry."),
            403: OpenApiResponse(description="Not your entry."),
            404: OpenApiResponse(description="Not found."),
        },
        tags=["Audit"],
    )
    def retrieve(self, request: Request, pk: str = None) -> Response:
        """GET /api/audit/{id}/ — Retrieve one audit entry."""
        entry = AuditTrail.get_entry(principal_from_request(request), int(pk))
        return Response(AuditLogEntrySerializer(entry).data, status=status.HTTP_200_OK)
