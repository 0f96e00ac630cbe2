"""Comment lifecycle and thread engine.

States::

    pending ──► approved ──(author edit)──► pending
       │
       ├──────► rejected   (author edits blocked)
       └──────► flagged

Moderation is permissive: staff may re-classify a comment from any status
and concurrent moderation is last-write-wins. Threads are two levels deep
by default (``settings.COMMENT_THREAD_MAX_DEPTH``).
"""

import logging
from dataclasses import dataclass

from django.conf import settings
from django.db import transaction
from django.db.models import Count, IntegerField, OuterRef, Prefetch, Q, Subquery
from django.db.models.functions import Coalesce
from django.utils import timezone

from access_control.policy import Operation, is_owner, require
from access_control.roles import Role
from core import errors
from core.pagination import apply_sort
from news.models import News, NewsStatus

from .models import Comment, CommentEdit, CommentStatus, ModerationReason

logger = logging.getLogger(__name__)

AUTO_APPROVED_ROLES = frozenset({Role.JOURNALIST, Role.MODERATOR, Role.ADMIN})
MODERATION_OUTCOMES = frozenset({CommentStatus.APPROVED, CommentStatus.REJECTED, CommentStatus.FLAGGED})
LIKE = "like"
DISLIKE = "dislike"
THREAD_SORT_FIELDS = {"created_at", "updated_at"}


@dataclass(frozen=True)
class ReactionSummary:
    likes: int
    dislikes: int
    user_reaction: str | None


def get_comment(comment_id) -> Comment:
    try:
        return Comment.objects.select_related("author", "news", "moderated_by").get(pk=comment_id)
    except (Comment.DoesNotExist, ValueError, TypeError):
        raise errors.NotFound("Comment not found.")


def _clean_content(content) -> str:
    text = (content or "").strip()
    if not text:
        raise errors.ValidationFailed("Comment content is required.")
    limit = getattr(settings, "COMMENT_MAX_LENGTH", 1000)
    if len(text) > limit:
        raise errors.ValidationFailed(f"Comment content cannot exceed {limit} characters.")
    return text


def _parse_reason(reason) -> ModerationReason:
    if not reason:
        return ModerationReason.OTHER
    try:
        return ModerationReason(reason)
    except ValueError:
        raise errors.ValidationFailed(
            f"Invalid moderation reason. Use one of: {', '.join(ModerationReason.values)}."
        )


def _thread_depth(comment: Comment) -> int:
    depth = 1
    while comment.parent_comment_id is not None:
        depth += 1
        comment = comment.parent_comment
    return depth


def _apply_rules(comment: Comment, previous_content: str | None, now) -> CommentEdit | None:
    """Stamp ``updated_at``; on a content change of a saved comment, return the history entry."""
    comment.updated_at = now
    if comment.pk is None or previous_content is None or previous_content == comment.content:
        return None
    comment.is_edited = True
    return CommentEdit(comment=comment, content=previous_content, edited_at=now)


def create(content, author, news_id, parent_comment_id=None) -> Comment:
    """Post a comment or reply on an approved article.

    Staff and journalists are published immediately; everyone else waits
    in the moderation queue.
    """
    require(author, Operation.CREATE_COMMENT)
    text = _clean_content(content)

    try:
        news = News.objects.get(pk=news_id, status=NewsStatus.APPROVED)
    except (News.DoesNotExist, ValueError, TypeError):
        raise errors.NotFound("News article not found or not approved.")

    parent = None
    if parent_comment_id:
        try:
            parent = Comment.objects.select_related("parent_comment").get(
                pk=parent_comment_id, news=news, status=CommentStatus.APPROVED
            )
        except (Comment.DoesNotExist, ValueError, TypeError):
            raise errors.NotFound("Parent comment not found.")
        max_depth = getattr(settings, "COMMENT_THREAD_MAX_DEPTH", 2)
        if max_depth and _thread_depth(parent) + 1 > max_depth:
            raise errors.ValidationFailed("Replies cannot be nested any deeper.")

    status = CommentStatus.APPROVED if author.role in AUTO_APPROVED_ROLES else CommentStatus.PENDING
    now = timezone.now()
    comment = Comment(
        content=text,
        author=author,
        news=news,
        parent_comment=parent,
        status=status,
        created_at=now,
    )
    _apply_rules(comment, None, now)
    with transaction.atomic():
        comment.save()

    logger.info("Comment %s created by %s on news %s as %s", comment.pk, author.pk, news.pk, status)
    return comment


def edit(comment: Comment, acting_user, new_content) -> Comment:
    """Replace the content of the caller's own comment.

    Rejected comments are frozen. An approved comment goes back to
    ``pending`` for another moderation pass.
    """
    require(acting_user, Operation.EDIT_COMMENT, ownership_match=is_owner(acting_user, comment.author_id))
    if comment.status == CommentStatus.REJECTED:
        raise errors.InvalidState("A rejected comment cannot be edited.")
    text = _clean_content(new_content)

    previous_content = comment.content
    previous_status = comment.status
    comment.content = text
    if comment.status == CommentStatus.APPROVED:
        comment.status = CommentStatus.PENDING

    history = _apply_rules(comment, previous_content, timezone.now())
    with transaction.atomic():
        comment.save()
        if history is not None:
            history.save()

    if previous_status != comment.status:
        logger.info(
            "Comment %s edited by %s: %s -> %s", comment.pk, acting_user.pk, previous_status, comment.status
        )
    return comment


def delete(comment: Comment, acting_user, reason=None, notes=None) -> Comment | None:
    """Authors remove their own comment; staff reject someone else's instead.

    Returns None after a hard delete, or the rejected comment after a soft delete.
    """
    if is_owner(acting_user, comment.author_id):
        require(acting_user, Operation.DELETE_COMMENT_HARD, ownership_match=True)
        comment_id = comment.pk
        with transaction.atomic():
            comment.delete()
        logger.info("Comment %s deleted by its author %s", comment_id, acting_user.pk)
        return None

    require(acting_user, Operation.DELETE_COMMENT_SOFT, ownership_match=False)
    return _set_moderation(comment, acting_user, CommentStatus.REJECTED, reason, notes)


def moderate(comment: Comment, acting_user, new_status, reason=None, notes=None) -> Comment:
    """Overwrite status and moderation metadata, whatever the current status."""
    require(acting_user, Operation.MODERATE_COMMENT)
    if new_status not in MODERATION_OUTCOMES:
        raise errors.ValidationFailed("Invalid status. Use: approved, rejected or flagged.")
    return _set_moderation(comment, acting_user, CommentStatus(new_status), reason, notes)


def _set_moderation(comment: Comment, acting_user, status, reason, notes) -> Comment:
    parsed_reason = _parse_reason(reason)
    previous = comment.status
    comment.status = status
    comment.moderated_by = acting_user
    comment.moderation_reason = parsed_reason
    comment.moderation_notes = notes or ""
    _apply_rules(comment, None, timezone.now())
    with transaction.atomic():
        comment.save(
            update_fields=["status", "moderated_by", "moderation_reason", "moderation_notes", "updated_at"]
        )
    logger.info(
        "Comment %s moderated by %s: %s -> %s (%s)", comment.pk, acting_user.pk, previous, status, parsed_reason
    )
    return comment


def react(comment: Comment, acting_user, kind) -> ReactionSummary:
    """Toggle a like or dislike.

    Reacting again with the same kind withdraws the reaction; switching
    kinds moves the user from one set to the other.
    """
    require(acting_user, Operation.REACT_COMMENT)
    if kind not in (LIKE, DISLIKE):
        raise errors.ValidationFailed("Invalid reaction. Use: like or dislike.")

    with transaction.atomic():
        try:
            locked = Comment.objects.select_for_update().get(pk=comment.pk)
        except Comment.DoesNotExist:
            raise errors.NotFound("Comment not found.")
        target, opposite = (locked.likes, locked.dislikes) if kind == LIKE else (locked.dislikes, locked.likes)

        if target.filter(pk=acting_user.pk).exists():
            target.remove(acting_user)
            user_reaction = None
        else:
            opposite.remove(acting_user)
            target.add(acting_user)
            user_reaction = kind

        summary = ReactionSummary(
            likes=locked.likes.count(),
            dislikes=locked.dislikes.count(),
            user_reaction=user_reaction,
        )
    return summary


def _reaction_total(relation: str):
    """Correlated count of one reaction set, without grouping the outer query."""
    through = getattr(Comment, relation).through
    counted = (
        through.objects.filter(comment=OuterRef("pk"))
        .order_by()
        .values("comment")
        .annotate(total=Count("pk"))
        .values("total")
    )
    return Coalesce(Subquery(counted, output_field=IntegerField()), 0)


def list_approved_for_news(news_id, sort_by=None, sort_order=None):
    """Approved top-level comments of an article, each with its first approved replies.

    Replies are capped at ``settings.COMMENT_REPLY_LIMIT`` per comment
    (oldest first) and exposed as ``approved_replies``; ``reply_count``
    counts all approved replies. Comments and replies both carry
    ``likes_total`` and ``dislikes_total``.
    """
    if not News.objects.filter(pk=news_id).exists():
        raise errors.NotFound("News article not found.")

    limit = getattr(settings, "COMMENT_REPLY_LIMIT", 10)
    replies = (
        Comment.objects.filter(status=CommentStatus.APPROVED)
        .select_related("author")
        .annotate(likes_total=_reaction_total("likes"), dislikes_total=_reaction_total("dislikes"))
        .order_by("created_at", "pk")[:limit]
    )
    queryset = (
        Comment.objects.filter(news_id=news_id, status=CommentStatus.APPROVED, parent_comment__isnull=True)
        .select_related("author")
        .annotate(
            reply_count=Count("replies", filter=Q(replies__status=CommentStatus.APPROVED)),
            likes_total=_reaction_total("likes"),
            dislikes_total=_reaction_total("dislikes"),
        )
        .prefetch_related(Prefetch("replies", queryset=replies, to_attr="approved_replies"))
    )
    return apply_sort(queryset, sort_by, sort_order, THREAD_SORT_FIELDS, "created_at")


def comments_for_author(user, status=None):
    queryset = Comment.objects.filter(author=user).select_related("news", "moderated_by")
    if status:
        queryset = queryset.filter(status=_parse_status(status))
    return queryset.order_by("-created_at", "-pk")


def moderation_queue(acting_user, status=None):
    """Comments awaiting staff action, oldest first."""
    require(acting_user, Operation.VIEW_MODERATION_QUEUE)
    wanted = _parse_status(status or CommentStatus.PENDING)
    return (
        Comment.objects.filter(status=wanted)
        .select_related("author", "news", "moderated_by")
        .order_by("created_at", "pk")
    )


def _parse_status(value) -> CommentStatus:
    try:
        return CommentStatus(value)
    except ValueError:
        raise errors.ValidationFailed(f"Unknown comment status: {value}.")


__all__ = [
    "ReactionSummary",
    "LIKE",
    "DISLIKE",
    "get_comment",
    "create",
    "edit",
    "delete",
    "moderate",
    "react",
    "list_approved_for_news",
    "comments_for_author",
    "moderation_queue",
]
