"""
Comments app ViewSets.

Nested under their parent for listing and creation, flat for the
comment itself:

    /api/cases/{case_pk}/comments/
    /api/evidence/{evidence_pk}/comments/
    /api/comments/{id}/
"""

from rest_framework import status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from drf_spectacular.utils import OpenApiResponse, extend_schema

from core.domain.identity import principal_from_request
from core.models import ResourceType

from .models import Comment
from .serializers import CommentSerializer, CommentWriteSerializer
from .services import CommentService


class _ParentCommentViewSet(viewsets.ViewSet):
    """List and add comments on one parent resource."""

    permission_classes = [IsAuthenticated]
    queryset = Comment.objects.none()
    parent_type: str = ""
    parent_kwarg: str = ""

    def _parent_id(self) -> int:
        return int(self.kwargs[self.parent_kwarg])

    def list(self, request: Request, **kwargs) -> Response:
        comments = CommentService.list_for_parent(
            principal_from_request(request), self.parent_type, self._parent_id()
        )
        return Response(CommentSerializer(comments, many=True).data, status=status.HTTP_200_OK)

    def create(self, request: Request, **kwargs) -> Response:
        serializer = CommentWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        comment = CommentService.add_comment(
            principal_from_request(request),
            self.parent_type,
            self._parent_id(),
            serializer.validated_data["content"],
        )
        return Response(CommentSerializer(comment).data, status=status.HTTP_201_CREATED)


@extend_schema(tags=["Comments"])
class CaseCommentViewSet(_ParentCommentViewSet):
    parent_type = ResourceType.CASE
    parent_kwarg = "case_pk"


@extend_schema(tags=["Comments"])
class EvidenceCommentViewSet(_ParentCommentViewSet):
    parent_type = ResourceType.EVIDENCE
    parent_kwarg = "evidence_pk"


class CommentViewSet(viewsets.ViewSet):
    """Retrieve, edit (author only) and delete (author only) one comment."""

    permission_classes = [IsAuthenticated]
    queryset = Comment.objects.none()
    lookup_value_regex = r"[0-9]+"

    @extend_schema(summary="Retrieve a comment", responses={200: CommentSerializer}, tags=["Comments"])
    def retrieve(self, request: Request, pk: str = None) -> Response:
        comment = CommentService.get_comment(principal_from_request(request), int(pk))
        return Response(CommentSerializer(comment).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Edit a comment",
        request=CommentWriteSerializer,
        responses={200: CommentSerializer, 403: OpenApiResponse(description="Not the author.")},
        tags=["Comments"],
    )
    def partial_update(self, request: Request, pk: str = None) -> Response:
        serializer = CommentWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        comment = CommentService.edit_comment(
            principal_from_request(request), int(pk), serializer.validated_data["content"]
        )
        return Response(CommentSerializer(comment).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Delete a comment",
        responses={204: None, 403: OpenApiResponse(description="Not the author.")},
        tags=["Comments"],
    )
    def destroy(self, request: Request, pk: str = None) -> Response:
        CommentService.delete_comment(principal_from_request(request), int(pk))
        return Response(status=status.HTTP_204_NO_CONTENT)
