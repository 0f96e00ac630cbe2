"""News lifecycle engine: submission, editing, review, deletion, view counting.

States::

    draft ──► pending_review ──► approved
                  ▲    │
                  │    └───────► rejected
                  └── author edits title/content from any state

Every mutating operation consults the authorization gate first, then applies
the lifecycle rules, then persists inside one transaction. Review is a
permissive transition: it is legal from any status and concurrent reviews
are last-write-wins.
"""

import logging

from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from access_control.policy import Operation, is_owner, require
from access_control.roles import Role
from core import errors
from core.pagination import apply_sort

from .models import News, NewsStatus

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset(
    {"title", "summary", "content", "category", "sources", "images", "tags", "is_breaking_news"}
)
REVIEW_DECISIONS = frozenset({NewsStatus.APPROVED, NewsStatus.REJECTED})
PUBLIC_SORT_FIELDS = {"published_at", "created_at", "view_count", "title"}


def get_news(news_id) -> News:
    try:
        return News.objects.select_related("author", "reviewed_by").get(pk=news_id)
    except (News.DoesNotExist, ValueError, TypeError):
        raise errors.NotFound("News article not found.")


def get_approved_news(news_id) -> News:
    article = get_news(news_id)
    if article.status != NewsStatus.APPROVED:
        raise errors.NotFound("News article not found.")
    return article


def _clean_fields(fields: dict) -> dict:
    unknown = set(fields) - EDITABLE_FIELDS
    if unknown:
        raise errors.ValidationFailed(f"Fields cannot be set directly: {', '.join(sorted(unknown))}.")
    return dict(fields)


def _apply_rules(article: News, now) -> None:
    """Derive timestamps from the article's new state."""
    article.updated_at = now
    if article.status == NewsStatus.APPROVED and article.published_at is None:
        article.published_at = now


def submit(acting_user, **fields) -> News:
    """Create an article; journalists go straight to review, others start as drafts."""
    require(acting_user, Operation.CREATE_NEWS)
    values = _clean_fields(fields)
    if not values.get("title") or not values.get("content"):
        raise errors.ValidationFailed("Title and content are required.")

    status = NewsStatus.PENDING_REVIEW if acting_user.role == Role.JOURNALIST else NewsStatus.DRAFT
    now = timezone.now()
    article = News(author=acting_user, status=status, created_at=now, **values)
    _apply_rules(article, now)
    with transaction.atomic():
        article.save()

    logger.info("News %s submitted by %s as %s", article.pk, acting_user.pk, status)
    return article


def edit(article: News, acting_user, fields: dict) -> News:
    """Update article fields.

    The owning author changing title or content sends the article back to
    ``pending_review`` whatever its current status. Staff edits leave the
    status alone.
    """
    owner = is_owner(acting_user, article.author_id)
    require(acting_user, Operation.EDIT_NEWS, ownership_match=owner)
    values = _clean_fields(fields)

    previous = article.status
    for name, value in values.items():
        setattr(article, name, value)
    if owner and (values.get("title") or values.get("content")):
        article.status = NewsStatus.PENDING_REVIEW

    _apply_rules(article, timezone.now())
    with transaction.atomic():
        article.save()

    if previous != article.status:
        logger.info("News %s edited by author %s: %s -> %s", article.pk, acting_user.pk, previous, article.status)
    return article


def review(article: News, acting_user, decision, comments: str = "") -> News:
    """Approve or reject an article. ``published_at`` is set only on first approval."""
    require(acting_user, Operation.REVIEW_NEWS)
    if decision not in REVIEW_DECISIONS:
        raise errors.ValidationFailed("Invalid status. Use: approved or rejected.")

    previous = article.status
    article.status = NewsStatus(decision)
    article.reviewed_by = acting_user
    article.review_comments = comments or ""
    _apply_rules(article, timezone.now())
    with transaction.atomic():
        article.save(
            update_fields=["status", "reviewed_by", "review_comments", "published_at", "updated_at"]
        )

    logger.info("News %s reviewed by %s: %s -> %s", article.pk, acting_user.pk, previous, article.status)
    return article


def delete(article: News, acting_user) -> None:
    """Hard-delete an article (author or staff). Its comments go with it."""
    owner = is_owner(acting_user, article.author_id)
    require(acting_user, Operation.DELETE_NEWS, ownership_match=owner)
    article_id = article.pk
    with transaction.atomic():
        article.delete()
    logger.info("News %s deleted by %s", article_id, acting_user.pk)


def record_view(article: News) -> News:
    """Count one read of an approved article."""
    if article.status != NewsStatus.APPROVED:
        raise errors.InvalidState("Only approved articles record views.")
    News.objects.filter(pk=article.pk).update(view_count=F("view_count") + 1)
    article.refresh_from_db(fields=["view_count"])
    return article


def approved_news(category=None, search=None, sort_by=None, sort_order=None):
    """Public listing: approved articles only, optionally filtered."""
    queryset = News.objects.filter(status=NewsStatus.APPROVED).select_related("author", "reviewed_by")
    if category:
        queryset = queryset.filter(category=category)
    if search:
        queryset = queryset.filter(
            Q(title__icontains=search) | Q(content__icontains=search) | Q(tags__icontains=search)
        )
    return apply_sort(queryset, sort_by, sort_order, PUBLIC_SORT_FIELDS, "published_at")


def news_for_author(user, status=None):
    queryset = News.objects.filter(author=user).select_related("reviewed_by")
    if status:
        queryset = queryset.filter(status=_parse_status(status))
    return queryset.order_by("-created_at", "-pk")


def moderation_queue(acting_user, status=None):
    """Articles awaiting staff action, oldest first."""
    require(acting_user, Operation.VIEW_MODERATION_QUEUE)
    wanted = _parse_status(status or NewsStatus.PENDING_REVIEW)
    return (
        News.objects.filter(status=wanted)
        .select_related("author", "reviewed_by")
        .order_by("created_at", "pk")
    )


def _parse_status(value) -> NewsStatus:
    try:
        return NewsStatus(value)
    except ValueError:
        raise errors.ValidationFailed(f"Unknown news status: {value}.")


__all__ = [
    "get_news",
    "get_approved_news",
    "submit",
    "edit",
    "review",
    "delete",
    "record_view",
    "approved_news",
    "news_for_author",
    "moderation_queue",
]
