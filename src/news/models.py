"""News article model moving through the editorial review workflow."""

from django.conf import settings
from django.db import models
from django.utils import timezone


class NewsStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    PENDING_REVIEW = "pending_review", "Pending review"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"
    # Reserved; no public operation moves an article here.
    PUBLISHED = "published", "Published"


class News(models.Model):
    """Article written by one author and reviewed by staff.

    ``published_at`` is stamped the first time the article is approved and
    never cleared afterwards.
    """

    title = models.CharField(max_length=255, unique=True)
    summary = models.TextField(blank=True)
    content = models.TextField()
    category = models.CharField(max_length=100, blank=True, db_index=True)
    sources = models.JSONField(default=list, blank=True)
    images = models.JSONField(default=list, blank=True)
    tags = models.JSONField(default=list, blank=True)
    is_breaking_news = models.BooleanField(default=False)

    status = models.CharField(
        max_length=20, choices=NewsStatus.choices, default=NewsStatus.DRAFT, db_index=True
    )
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="news"
    )
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reviewed_news",
    )
    review_comments = models.TextField(blank=True)
    published_at = models.DateTimeField(null=True, blank=True)
    view_count = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(default=timezone.now, editable=False)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-created_at"]
        verbose_name_plural = "news"
        indexes = [
            models.Index(fields=["status", "published_at"], name="news_status_published_idx"),
            models.Index(fields=["author", "created_at"], name="news_author_created_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.title


__all__ = ["News", "NewsStatus"]
