"""News endpoints: public reads, author submissions, and staff review."""

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated

from access_control.permissions import RBACPermission
from access_control.policy import Operation
from core.pagination import EnvelopePagination
from core.response import BaseViewSet, api_response
from . import lifecycle
from .models import News, NewsStatus
from .serializers import NewsSerializer, NewsWriteSerializer, ReviewSerializer


class NewsViewSet(BaseViewSet):
    """Routes every write through ``news.lifecycle``.

    ``list`` and ``retrieve`` are public and only ever expose approved
    articles; reading an article counts a view.
    """

    queryset = News.objects.none()
    serializer_class = NewsSerializer
    permission_classes = [RBACPermission]
    pagination_class = EnvelopePagination
    lookup_value_regex = r"\d+"
    action_operations = {
        "create": Operation.CREATE_NEWS,
        "update": Operation.EDIT_NEWS,
        "partial_update": Operation.EDIT_NEWS,
        "destroy": Operation.DELETE_NEWS,
        "review": Operation.REVIEW_NEWS,
        "moderation_queue": Operation.VIEW_MODERATION_QUEUE,
    }

    def get_serializer_class(self):
        if self.action in ("create", "update", "partial_update"):
            return NewsWriteSerializer
        if self.action == "review":
            return ReviewSerializer
        return NewsSerializer

    def get_queryset(self):
        params = self.request.query_params
        return lifecycle.approved_news(
            category=params.get("category"),
            search=params.get("search"),
            sort_by=params.get("sort_by"),
            sort_order=params.get("sort_order"),
        )

    def _paginated(self, queryset):
        page = self.paginate_queryset(queryset)
        return self.get_paginated_response(NewsSerializer(page, many=True).data)

    def list(self, request, *args, **kwargs):
        return self._paginated(self.get_queryset())

    def retrieve(self, request, pk=None, *args, **kwargs):
        article = lifecycle.record_view(lifecycle.get_approved_news(pk))
        return api_response(NewsSerializer(article).data)

    def create(self, request, *args, **kwargs):
        serializer = NewsWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        article = lifecycle.submit(request.user, **serializer.validated_data)
        message = (
            "News submitted for review."
            if article.status == NewsStatus.PENDING_REVIEW
            else "News saved as draft."
        )
        return api_response(NewsSerializer(article).data, status=status.HTTP_201_CREATED, message=message)

    def update(self, request, pk=None, *args, **kwargs):
        partial = kwargs.pop("partial", False)
        article = lifecycle.get_news(pk)
        serializer = NewsWriteSerializer(article, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        article = lifecycle.edit(article, request.user, dict(serializer.validated_data))
        return api_response(NewsSerializer(article).data)

    def destroy(self, request, pk=None, *args, **kwargs):
        lifecycle.delete(lifecycle.get_news(pk), request.user)
        return api_response(None, message="News deleted.")

    @action(detail=True, methods=["post"])
    def review(self, request, pk=None):
        """Approve or reject an article (moderator/admin)."""
        serializer = ReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        article = lifecycle.review(
            lifecycle.get_news(pk),
            request.user,
            serializer.validated_data["status"],
            serializer.validated_data["review_comments"],
        )
        verb = "approved" if article.status == NewsStatus.APPROVED else "rejected"
        return api_response(NewsSerializer(article).data, message=f"News {verb}.")

    @action(detail=False, methods=["get"], permission_classes=[IsAuthenticated])
    def mine(self, request):
        """Articles authored by the caller, any status."""
        return self._paginated(lifecycle.news_for_author(request.user, request.query_params.get("status")))

    @action(detail=False, methods=["get"], url_path="moderation-queue")
    def moderation_queue(self, request):
        """Articles waiting for review (``?status=`` to inspect other states)."""
        return self._paginated(lifecycle.moderation_queue(request.user, request.query_params.get("status")))


__all__ = ["NewsViewSet"]
