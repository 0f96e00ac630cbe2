"""Comment endpoints: posting, editing, reactions, threads and moderation."""

from dataclasses import asdict

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated

from access_control.permissions import RBACPermission
from access_control.policy import Operation
from core.pagination import CommentPagination
from core.response import EnvelopeMixin, api_response
from . import lifecycle
from .models import Comment, CommentStatus
from .serializers import (
    CommentCreateSerializer,
    CommentEditPayloadSerializer,
    CommentSerializer,
    DeletionSerializer,
    ModerationSerializer,
    ReactionSerializer,
    ReactionSummarySerializer,
    ThreadCommentSerializer,
)


class CommentViewSet(EnvelopeMixin, viewsets.GenericViewSet):
    """Every write goes through ``comments.lifecycle``.

    There is no global comment listing: threads are read per article via
    ``comments/news/{news_id}/``, which is public.
    """

    queryset = Comment.objects.none()
    serializer_class = CommentSerializer
    permission_classes = [RBACPermission]
    pagination_class = CommentPagination
    lookup_value_regex = r"\d+"
    action_operations = {
        "create": Operation.CREATE_COMMENT,
        "update": Operation.EDIT_COMMENT,
        "partial_update": Operation.EDIT_COMMENT,
        # Authors hard delete, staff soft delete; the engine decides which.
        "destroy": Operation.DELETE_COMMENT_HARD,
        "react": Operation.REACT_COMMENT,
        "moderate": Operation.MODERATE_COMMENT,
        "moderation_queue": Operation.VIEW_MODERATION_QUEUE,
    }

    def get_serializer_class(self):
        return {
            "create": CommentCreateSerializer,
            "update": CommentEditPayloadSerializer,
            "partial_update": CommentEditPayloadSerializer,
            "destroy": DeletionSerializer,
            "react": ReactionSerializer,
            "moderate": ModerationSerializer,
            "for_news": ThreadCommentSerializer,
        }.get(self.action, CommentSerializer)

    def _paginated(self, queryset, serializer_class=CommentSerializer):
        page = self.paginate_queryset(queryset)
        return self.get_paginated_response(serializer_class(page, many=True).data)

    def create(self, request, *args, **kwargs):
        serializer = CommentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        comment = lifecycle.create(
            serializer.validated_data["content"],
            request.user,
            serializer.validated_data["news_id"],
            serializer.validated_data.get("parent_comment_id"),
        )
        message = (
            "Comment posted."
            if comment.status == CommentStatus.APPROVED
            else "Comment submitted and awaiting moderation."
        )
        return api_response(CommentSerializer(comment).data, status=status.HTTP_201_CREATED, message=message)

    def update(self, request, pk=None, *args, **kwargs):
        serializer = CommentEditPayloadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        comment = lifecycle.edit(lifecycle.get_comment(pk), request.user, serializer.validated_data["content"])
        return api_response(CommentSerializer(comment).data)

    def partial_update(self, request, pk=None, *args, **kwargs):
        return self.update(request, pk, *args, **kwargs)

    def destroy(self, request, pk=None, *args, **kwargs):
        serializer = DeletionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        comment = lifecycle.delete(
            lifecycle.get_comment(pk),
            request.user,
            reason=serializer.validated_data["reason"],
            notes=serializer.validated_data["notes"],
        )
        if comment is None:
            return api_response(None, message="Comment deleted.")
        return api_response(CommentSerializer(comment).data, message="Comment removed by moderation.")

    @action(detail=True, methods=["post"])
    def react(self, request, pk=None):
        """Toggle a ``like`` or ``dislike`` on a comment."""
        serializer = ReactionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        summary = lifecycle.react(lifecycle.get_comment(pk), request.user, serializer.validated_data["reaction"])
        return api_response(ReactionSummarySerializer(asdict(summary)).data)

    @action(detail=True, methods=["patch"])
    def moderate(self, request, pk=None):
        """Set a comment's status to approved, rejected or flagged (moderator/admin)."""
        serializer = ModerationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        comment = lifecycle.moderate(
            lifecycle.get_comment(pk),
            request.user,
            serializer.validated_data["status"],
            reason=serializer.validated_data["moderation_reason"],
            notes=serializer.validated_data["moderation_notes"],
        )
        return api_response(CommentSerializer(comment).data, message=f"Comment {comment.status}.")

    @action(detail=False, methods=["get"], url_path=r"news/(?P<news_id>\d+)")
    def for_news(self, request, news_id=None):
        """Approved thread of an article: top-level comments with their replies."""
        params = request.query_params
        queryset = lifecycle.list_approved_for_news(
            news_id, sort_by=params.get("sort_by"), sort_order=params.get("sort_order")
        )
        return self._paginated(queryset, ThreadCommentSerializer)

    @action(detail=False, methods=["get"], permission_classes=[IsAuthenticated])
    def mine(self, request):
        """Comments written by the caller (``?status=`` to filter)."""
        return self._paginated(lifecycle.comments_for_author(request.user, request.query_params.get("status")))

    @action(detail=False, methods=["get"], url_path="moderation-queue")
    def moderation_queue(self, request):
        """Comments waiting for moderation, oldest first."""
        return self._paginated(lifecycle.moderation_queue(request.user, request.query_params.get("status")))


__all__ = ["CommentViewSet"]
