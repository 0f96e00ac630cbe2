"""Serializers for comment threads, moderation payloads and reactions."""

from django.conf import settings
from rest_framework import serializers

from authentication.serializers import UserSummarySerializer
from .models import Comment, CommentEdit


class CommentEditSerializer(serializers.ModelSerializer):
    class Meta:
        model = CommentEdit
        fields = ["content", "edited_at"]
        read_only_fields = fields


class ReplySerializer(serializers.ModelSerializer):
    """Compact comment: author as a summary, reactions as counts."""

    author = UserSummarySerializer(read_only=True)
    likes_count = serializers.SerializerMethodField()
    dislikes_count = serializers.SerializerMethodField()

    class Meta:
        model = Comment
        fields = [
            "id",
            "content",
            "author",
            "parent_comment",
            "status",
            "likes_count",
            "dislikes_count",
            "is_edited",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    # Thread listings annotate the counts; single comments fall back to a query.
    @staticmethod
    def get_likes_count(obj) -> int:
        annotated = getattr(obj, "likes_total", None)
        return obj.likes.count() if annotated is None else annotated

    @staticmethod
    def get_dislikes_count(obj) -> int:
        annotated = getattr(obj, "dislikes_total", None)
        return obj.dislikes.count() if annotated is None else annotated


class CommentSerializer(ReplySerializer):
    """Full projection with the article as ``{id, title}`` and moderation metadata."""

    news = serializers.SerializerMethodField()
    moderated_by = UserSummarySerializer(read_only=True)
    edit_history = CommentEditSerializer(many=True, read_only=True)

    class Meta(ReplySerializer.Meta):
        fields = ReplySerializer.Meta.fields + [
            "news",
            "moderated_by",
            "moderation_reason",
            "moderation_notes",
            "edit_history",
        ]
        read_only_fields = fields

    @staticmethod
    def get_news(obj) -> dict:
        return {"id": obj.news_id, "title": obj.news.title}


class ThreadCommentSerializer(ReplySerializer):
    """Top-level comment with its first approved replies and the full reply count.

    Expects the queryset from ``comments.lifecycle.list_approved_for_news``.
    """

    replies = ReplySerializer(source="approved_replies", many=True, read_only=True)
    reply_count = serializers.IntegerField(read_only=True)

    class Meta(ReplySerializer.Meta):
        fields = ReplySerializer.Meta.fields + ["replies", "reply_count"]
        read_only_fields = fields


class CommentCreateSerializer(serializers.Serializer):
    """Shape of a new comment; content rules are enforced by the lifecycle engine."""

    content = serializers.CharField(allow_blank=True, trim_whitespace=False)
    news_id = serializers.IntegerField()
    parent_comment_id = serializers.IntegerField(required=False, allow_null=True)


class CommentEditPayloadSerializer(serializers.Serializer):
    content = serializers.CharField(allow_blank=True, trim_whitespace=False)


class ModerationSerializer(serializers.Serializer):
    status = serializers.CharField()
    moderation_reason = serializers.CharField(required=False, allow_blank=True, default="")
    moderation_notes = serializers.CharField(
        required=False, allow_blank=True, default="", max_length=getattr(settings, "COMMENT_MAX_LENGTH", 1000)
    )


class DeletionSerializer(serializers.Serializer):
    """Optional reason and notes recorded when staff soft-delete a comment."""

    reason = serializers.CharField(required=False, allow_blank=True, default="")
    notes = serializers.CharField(
        required=False, allow_blank=True, default="", max_length=getattr(settings, "COMMENT_MAX_LENGTH", 1000)
    )


class ReactionSerializer(serializers.Serializer):
    reaction = serializers.CharField()


class ReactionSummarySerializer(serializers.Serializer):
    likes = serializers.IntegerField()
    dislikes = serializers.IntegerField()
    user_reaction = serializers.CharField(allow_null=True)
