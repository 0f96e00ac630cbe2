"""Comment threads on news articles, with moderation metadata and reactions."""

from django.conf import settings
from django.db import models
from django.utils import timezone


class CommentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"
    FLAGGED = "flagged", "Flagged"


class ModerationReason(models.TextChoices):
    SPAM = "spam", "Spam"
    INAPPROPRIATE = "inappropriate", "Inappropriate"
    OFF_TOPIC = "off_topic", "Off topic"
    HARASSMENT = "harassment", "Harassment"
    FALSE_INFO = "false_info", "False information"
    OTHER = "other", "Other"


class Comment(models.Model):
    """A top-level comment (``parent_comment`` is null) or a reply to one.

    A user appears in at most one of ``likes``/``dislikes``; only
    ``comments.lifecycle.react`` mutates those sets.
    """

    content = models.TextField()
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="comments"
    )
    news = models.ForeignKey("news.News", on_delete=models.CASCADE, related_name="comments")
    parent_comment = models.ForeignKey(
        "self", on_delete=models.CASCADE, null=True, blank=True, related_name="replies"
    )
    status = models.CharField(
        max_length=20, choices=CommentStatus.choices, default=CommentStatus.PENDING, db_index=True
    )
    likes = models.ManyToManyField(settings.AUTH_USER_MODEL, blank=True, related_name="liked_comments")
    dislikes = models.ManyToManyField(
        settings.AUTH_USER_MODEL, blank=True, related_name="disliked_comments"
    )

    moderated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="moderated_comments",
    )
    moderation_reason = models.CharField(
        max_length=20, choices=ModerationReason.choices, default=ModerationReason.OTHER
    )
    moderation_notes = models.TextField(blank=True)
    is_edited = models.BooleanField(default=False)

    created_at = models.DateTimeField(default=timezone.now, editable=False)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["news", "created_at"], name="comment_news_created_idx"),
            models.Index(fields=["author"], name="comment_author_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"Comment #{self.pk} on news #{self.news_id}"

    @property
    def is_reply(self) -> bool:
        return self.parent_comment_id is not None


class CommentEdit(models.Model):
    """Snapshot of a comment's content taken just before an edit replaced it."""

    comment = models.ForeignKey(Comment, on_delete=models.CASCADE, related_name="edit_history")
    content = models.TextField()
    edited_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["edited_at", "id"]


__all__ = ["Comment", "CommentEdit", "CommentStatus", "ModerationReason"]
