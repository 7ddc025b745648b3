"""
Evidence app ViewSets.

Architecture: Views are intentionally thin.
Every view follows the strict three-step pattern:

    1. Parse / validate input via a serializer.
    2. Delegate all business logic to the appropriate service class.
    3. Serialize the result and return a DRF ``Response``.

No database queries or permission checks live here.

ViewSets
--------
- ``EvidenceViewSet`` — evidence items plus their status, tag and
  chain-of-custody sub-resources.  There is deliberately no destroy route.
- ``TagViewSet``      — tag CRUD.
"""

from __future__ import annotations

from dataclasses import asdict

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
)

from core.domain.identity import principal_from_request

from .models import Evidence, Tag
from .serializers import (
    ChainOfCustodyEntrySerializer,
    ChainVerificationSerializer,
    CustodyAppendSerializer,
    EvidenceDetailSerializer,
    EvidenceFilterSerializer,
    EvidenceListSerializer,
    EvidenceStatusSerializer,
    EvidenceTagSerializer,
    EvidenceUpdateSerializer,
    EvidenceUploadSerializer,
    TagSerializer,
    TagWriteSerializer,
)
from .services import (
    ChainOfCustodyLedger,
    EvidenceProcessingService,
    EvidenceQueryService,
    EvidenceTaggingService,
    TagService,
)


class EvidenceViewSet(viewsets.ViewSet):
    """
    Central ViewSet for the evidence app.

    Uses ``viewsets.ViewSet`` (not ``ModelViewSet``) so every action is
    explicitly defined, preventing accidental exposure of unintended
    CRUD operations.

    Permission Strategy
    -------------------
    The base permission is ``IsAuthenticated``.  Access-policy checks
    (case membership, uploader, custody) are enforced exclusively inside
    the service layer — never in the view.
    """

    permission_classes = [IsAuthenticated]
    # Allows drf-spectacular to infer path-parameter types automatically.
    queryset = Evidence.objects.none()
    lookup_value_regex = r"[0-9]+"

    def _detail(self, request: Request, pk: int) -> Response:
        evidence = EvidenceQueryService.get_evidence_detail(principal_from_request(request), pk)
        return Response(EvidenceDetailSerializer(evidence).data, status=status.HTTP_200_OK)

    # ── Standard CRUD ────────────────────────────────────────────────

    @extend_schema(
        summary="List evidence items",
        description="Evidence the requester may view (case membership, upload, or custody).",
        parameters=[
            OpenApiParameter(name="case", type=int, required=False, description="Filter by case ID."),
            OpenApiParameter(name="status", type=str, required=False, description="Filter by status."),
            OpenApiParameter(name="tag", type=int, required=False, description="Filter by tag ID."),
            OpenApiParameter(name="search", type=str, required=False, description="Free-text search."),
        ],
        responses={200: OpenApiResponse(response=EvidenceListSerializer(many=True), description="Evidence list.")},
        tags=["Evidence"],
    )
    def list(self, request: Request) -> Response:
        """GET /api/evidence/"""
        filter_serializer = EvidenceFilterSerializer(data=request.query_params)
        if not filter_serializer.is_valid():
            return Response(filter_serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        queryset = EvidenceQueryService.get_filtered_queryset(
            principal_from_request(request), filter_serializer.validated_data
        )
        serializer = EvidenceListSerializer(queryset, many=True)
        return Response(serializer.data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Upload evidence",
        description="Register an evidence item on a case the requester may change.",
        request=EvidenceUploadSerializer,
        responses={
            201: OpenApiResponse(response=EvidenceDetailSerializer, description="Evidence created."),
            400: OpenApiResponse(description="Validation error."),
            403: OpenApiResponse(description="Access denied."),
            404: OpenApiResponse(description="Case not found."),
        },
        tags=["Evidence"],
    )
    def create(self, request: Request) -> Response:
        """POST /api/evidence/"""
        serializer = EvidenceUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        evidence = EvidenceProcessingService.upload_evidence(
            principal_from_request(request), serializer.validated_data
        )
        response = self._detail(request, evidence.pk)
        response.status_code = status.HTTP_201_CREATED
        return response

    @extend_schema(
        summary="Retrieve evidence",
        responses={
            200: OpenApiResponse(response=EvidenceDetailSerializer, description="Evidence detail."),
            403: OpenApiResponse(description="Access denied."),
            404: OpenApiResponse(description="Not found."),
        },
        tags=["Evidence"],
    )
    def retrieve(self, request: Request, pk: str = None) -> Response:
        """GET /api/evidence/{id}/"""
        return self._detail(request, int(pk))

    @extend_schema(
        summary="Update evidence metadata",
        request=EvidenceUpdateSerializer,
        responses={
            200: OpenApiResponse(response=EvidenceDetailSerializer, description="Evidence updated."),
            409: OpenApiResponse(description="Stale version."),
        },
        tags=["Evidence"],
    )
    def partial_update(self, request: Request, pk: str = None) -> Response:
        """PATCH /api/evidence/{id}/"""
        serializer = EvidenceUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        expected_version = data.pop("version", None)

        principal = principal_from_request(request)
        EvidenceProcessingService.update_evidence(principal, int(pk), data, expected_version)
        return self._detail(request, int(pk))

    # ── Workflow @actions ────────────────────────────────────────────

    @extend_schema(
        summary="Change evidence status",
        description="Any status may follow any other.",
        request=EvidenceStatusSerializer,
        responses={200: EvidenceDetailSerializer},
        tags=["Evidence"],
    )
    @action(detail=True, methods=["post"], url_path="status")
    def change_status(self, request: Request, pk: str = None) -> Response:
        """POST /api/evidence/{id}/status/"""
        serializer = EvidenceStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        EvidenceProcessingService.change_status(
            principal_from_request(request),
            int(pk),
            serializer.validated_data["status"],
            serializer.validated_data.get("version"),
        )
        return self._detail(request, int(pk))

    @extend_schema(
        summary="Tag evidence",
        request=EvidenceTagSerializer,
        responses={200: EvidenceDetailSerializer},
        tags=["Evidence"],
    )
    @action(detail=True, methods=["post"], url_path="tags")
    def add_tag(self, request: Request, pk: str = None) -> Response:
        """POST /api/evidence/{id}/tags/"""
        serializer = EvidenceTagSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        EvidenceTaggingService.add_tag(
            principal_from_request(request), int(pk), serializer.validated_data["tag"]
        )
        return self._detail(request, int(pk))

    @extend_schema(
        summary="Untag evidence",
        responses={200: EvidenceDetailSerializer, 404: OpenApiResponse(description="Tag not attached.")},
        tags=["Evidence"],
    )
    @action(detail=True, methods=["delete"], url_path=r"tags/(?P<tag_pk>[0-9]+)")
    def remove_tag(self, request: Request, pk: str = None, tag_pk: str = None) -> Response:
        """DELETE /api/evidence/{id}/tags/{tag_id}/"""
        EvidenceTaggingService.remove_tag(principal_from_request(request), int(pk), int(tag_pk))
        return self._detail(request, int(pk))

    # ── Chain of custody ─────────────────────────────────────────────

    @extend_schema(
        methods=["GET"],
        summary="List chain of custody",
        description="Newest first.",
        responses={200: ChainOfCustodyEntrySerializer(many=True)},
        tags=["Chain of Custody"],
    )
    @extend_schema(
        methods=["POST"],
        summary="Append a chain-of-custody entry",
        request=CustodyAppendSerializer,
        responses={
            201: ChainOfCustodyEntrySerializer,
            400: OpenApiResponse(description="Missing location or from/to."),
            403: OpenApiResponse(description="Access denied."),
        },
        tags=["Chain of Custody"],
    )
    @action(detail=True, methods=["get", "post"], url_path="custody")
    def custody(self, request: Request, pk: str = None) -> Response:
        """GET / POST /api/evidence/{id}/custody/"""
        principal = principal_from_request(request)

        if request.method == "GET":
            entries = ChainOfCustodyLedger.list_for(principal, int(pk))
            return Response(
                ChainOfCustodyEntrySerializer(entries, many=True).data,
                status=status.HTTP_200_OK,
            )

        serializer = CustodyAppendSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        entry = ChainOfCustodyLedger.append(principal, int(pk), **serializer.to_ledger_kwargs())
        return Response(
            ChainOfCustodyEntrySerializer(entry).data,
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(
        summary="Verify the custody hash chain",
        responses={200: ChainVerificationSerializer},
        tags=["Chain of Custody"],
    )
    @action(detail=True, methods=["get"], url_path="custody/verify")
    def verify_custody(self, request: Request, pk: str = None) -> Response:
        """GET /api/evidence/{id}/custody/verify/"""
        result = ChainOfCustodyLedger.verify_chain(principal_from_request(request), int(pk))
        return Response(ChainVerificationSerializer(asdict(result)).data, status=status.HTTP_200_OK)


class TagViewSet(viewsets.ViewSet):
    """
    /api/tags/

    Every principal may list tags.  Creating needs the ``manage_tags``
    capability; update and delete are for the creator or an admin.
    """

    permission_classes = [IsAuthenticated]
    queryset = Tag.objects.none()
    lookup_value_regex = r"[0-9]+"

    @extend_schema(
        summary="List tags",
        parameters=[OpenApiParameter(name="search", type=str, required=False, description="Name contains.")],
        responses={200: TagSerializer(many=True)},
        tags=["Tags"],
    )
    def list(self, request: Request) -> Response:
        tags = TagService.list_tags(
            principal_from_request(request), request.query_params.get("search")
        )
        return Response(TagSerializer(tags, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Create a tag",
        request=TagWriteSerializer,
        responses={201: TagSerializer, 409: OpenApiResponse(description="Duplicate name.")},
        tags=["Tags"],
    )
    def create(self, request: Request) -> Response:
        serializer = TagWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        tag = TagService.create_tag(principal_from_request(request), serializer.validated_data)
        return Response(TagSerializer(tag).data, status=status.HTTP_201_CREATED)

    @extend_schema(summary="Retrieve a tag", responses={200: TagSerializer}, tags=["Tags"])
    def retrieve(self, request: Request, pk: str = None) -> Response:
        tag = TagService.get_tag(principal_from_request(request), int(pk))
        return Response(TagSerializer(tag).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Update a tag",
        request=TagWriteSerializer,
        responses={200: TagSerializer, 403: OpenApiResponse(description="Not the creator.")},
        tags=["Tags"],
    )
    def partial_update(self, request: Request, pk: str = None) -> Response:
        serializer = TagWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        tag = TagService.update_tag(
            principal_from_request(request), int(pk), serializer.validated_data
        )
        return Response(TagSerializer(tag).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Delete a tag",
        responses={204: None, 403: OpenApiResponse(description="Not the creator.")},
        tags=["Tags"],
    )
    def destroy(self, request: Request, pk: str = None) -> Response:
        TagService.delete_tag(principal_from_request(request), int(pk))
        return Response(status=status.HTTP_204_NO_CONTENT)
