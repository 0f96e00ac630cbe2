"""Serializers for news articles: read projection and write payloads."""

from rest_framework import serializers

from authentication.serializers import UserSummarySerializer
from .models import News


class NewsSerializer(serializers.ModelSerializer):
    """Article with author and reviewer rendered as ``{id, name, email, role}``."""

    author = UserSummarySerializer(read_only=True)
    reviewed_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = News
        fields = [
            "id",
            "title",
            "summary",
            "content",
            "category",
            "sources",
            "images",
            "tags",
            "is_breaking_news",
            "status",
            "author",
            "reviewed_by",
            "review_comments",
            "published_at",
            "view_count",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class NewsWriteSerializer(serializers.ModelSerializer):
    """Fields an author or staff member may set; workflow fields stay read-only."""

    sources = serializers.ListField(child=serializers.CharField(), required=False)
    images = serializers.ListField(child=serializers.CharField(), required=False)
    tags = serializers.ListField(child=serializers.CharField(max_length=50), required=False)

    class Meta:
        model = News
        fields = [
            "title",
            "summary",
            "content",
            "category",
            "sources",
            "images",
            "tags",
            "is_breaking_news",
        ]


class ReviewSerializer(serializers.Serializer):
    """Moderator decision; the value itself is checked by the lifecycle engine."""

    status = serializers.CharField()
    review_comments = serializers.CharField(required=False, allow_blank=True, default="")
