"""Comment lifecycle and thread engine."""

from __future__ import annotations

from django.test import override_settings

from comments import lifecycle
from comments.models import Comment, CommentStatus, ModerationReason
from comments.serializers import ThreadCommentSerializer
from core import errors
from news.models import NewsStatus
from tests.utils import NewsroomTestCase, create_news


def _approved(author, news, content="Approved comment", parent=None):
    return Comment.objects.create(
        content=content, author=author, news=news, parent_comment=parent, status=CommentStatus.APPROVED
    )


class CommentTestCase(NewsroomTestCase):
    @classmethod
    def setUpTestData(cls):
        super().setUpTestData()
        cls.news = create_news(cls.journalist, NewsStatus.APPROVED, title="Approved article")
        cls.other_news = create_news(cls.journalist, NewsStatus.APPROVED, title="Another article")
        cls.pending_news = create_news(cls.journalist, NewsStatus.PENDING_REVIEW, title="Pending article")


class CreateTests(CommentTestCase):
    def test_registered_user_comment_awaits_moderation(self):
        comment = lifecycle.create("hi", self.member, self.news.pk)

        self.assertEqual(comment.status, CommentStatus.PENDING)
        self.assertIsNone(comment.parent_comment)
        self.assertFalse(comment.is_edited)

    def test_journalist_and_staff_comments_are_approved(self):
        for user in (self.journalist, self.moderator, self.admin):
            with self.subTest(role=user.role):
                comment = lifecycle.create("Noted.", user, self.news.pk)
                self.assertEqual(comment.status, CommentStatus.APPROVED)

    def test_reader_cannot_comment(self):
        with self.assertRaises(errors.PermissionDenied):
            lifecycle.create("hi", self.reader, self.news.pk)

    def test_content_is_trimmed_and_bounded(self):
        comment = lifecycle.create("   padded   ", self.member, self.news.pk)
        self.assertEqual(comment.content, "padded")

        for content in ("", "   ", "x" * 1001):
            with self.subTest(length=len(content)):
                with self.assertRaises(errors.ValidationFailed):
                    lifecycle.create(content, self.member, self.news.pk)

    def test_news_must_be_approved(self):
        with self.assertRaises(errors.NotFound):
            lifecycle.create("hi", self.member, self.pending_news.pk)
        with self.assertRaises(errors.NotFound):
            lifecycle.create("hi", self.member, 999999)

    def test_reply_to_approved_top_level_comment(self):
        parent = _approved(self.other_member, self.news)

        reply = lifecycle.create("Reply", self.member, self.news.pk, parent.pk)

        self.assertEqual(reply.parent_comment, parent)
        self.assertTrue(reply.is_reply)

    def test_parent_must_be_approved_and_on_same_news(self):
        pending_parent = Comment.objects.create(content="Pending", author=self.other_member, news=self.news)
        foreign_parent = _approved(self.other_member, self.other_news)

        for parent in (pending_parent, foreign_parent):
            with self.subTest(parent=parent.pk):
                with self.assertRaises(errors.NotFound):
                    lifecycle.create("Reply", self.member, self.news.pk, parent.pk)

    def test_reply_to_a_reply_is_rejected_by_default(self):
        top = _approved(self.other_member, self.news)
        reply = _approved(self.journalist, self.news, parent=top)

        with self.assertRaises(errors.ValidationFailed):
            lifecycle.create("Too deep", self.member, self.news.pk, reply.pk)

    @override_settings(COMMENT_THREAD_MAX_DEPTH=0)
    def test_reply_to_a_reply_allowed_when_depth_unlimited(self):
        top = _approved(self.other_member, self.news)
        reply = _approved(self.journalist, self.news, parent=top)

        nested = lifecycle.create("Deeper", self.member, self.news.pk, reply.pk)

        self.assertEqual(nested.parent_comment, reply)


class EditTests(CommentTestCase):
    def test_moderated_then_edited_comment_returns_to_pending(self):
        comment = lifecycle.create("hi", self.member, self.news.pk)
        lifecycle.moderate(comment, self.moderator, CommentStatus.APPROVED)
        self.assertEqual(comment.status, CommentStatus.APPROVED)
        history_before = comment.edit_history.count()

        lifecycle.edit(comment, self.member, "hello everyone")

        comment.refresh_from_db()
        self.assertEqual(comment.status, CommentStatus.PENDING)
        self.assertTrue(comment.is_edited)
        self.assertEqual(comment.edit_history.count(), history_before + 1)
        self.assertEqual(comment.edit_history.get().content, "hi")

    def test_unchanged_content_adds_no_history(self):
        comment = _approved(self.member, self.news, content="same")

        lifecycle.edit(comment, self.member, "  same  ")

        self.assertFalse(comment.is_edited)
        self.assertEqual(comment.edit_history.count(), 0)

    def test_rejected_comment_cannot_be_edited(self):
        comment = Comment.objects.create(
            content="nope", author=self.member, news=self.news, status=CommentStatus.REJECTED
        )
        with self.assertRaises(errors.InvalidState):
            lifecycle.edit(comment, self.member, "please")

        comment.refresh_from_db()
        self.assertEqual(comment.content, "nope")

    def test_flagged_comment_can_be_edited_and_keeps_status(self):
        comment = Comment.objects.create(
            content="hmm", author=self.member, news=self.news, status=CommentStatus.FLAGGED
        )

        lifecycle.edit(comment, self.member, "rephrased")

        self.assertEqual(comment.status, CommentStatus.FLAGGED)

    def test_only_author_may_edit(self):
        comment = _approved(self.member, self.news)
        for user in (self.other_member, self.moderator, self.admin):
            with self.subTest(role=user.role):
                with self.assertRaises(errors.PermissionDenied):
                    lifecycle.edit(comment, user, "rewritten")


class DeleteTests(CommentTestCase):
    def test_author_hard_delete_removes_replies(self):
        comment = _approved(self.member, self.news)
        reply = _approved(self.journalist, self.news, parent=comment)

        self.assertIsNone(lifecycle.delete(comment, self.member))

        self.assertFalse(Comment.objects.filter(pk__in=[comment.pk, reply.pk]).exists())

    def test_moderator_soft_delete_rejects_with_defaults(self):
        comment = _approved(self.member, self.news)

        result = lifecycle.delete(comment, self.moderator)

        comment.refresh_from_db()
        self.assertEqual(result, comment)
        self.assertEqual(comment.status, CommentStatus.REJECTED)
        self.assertEqual(comment.moderated_by, self.moderator)
        self.assertEqual(comment.moderation_reason, ModerationReason.OTHER)
        self.assertEqual(comment.moderation_notes, "")

    def test_soft_delete_records_reason_and_notes(self):
        comment = _approved(self.member, self.news)

        lifecycle.delete(comment, self.admin, reason="spam", notes="Link farm")

        comment.refresh_from_db()
        self.assertEqual(comment.moderation_reason, ModerationReason.SPAM)
        self.assertEqual(comment.moderation_notes, "Link farm")

    def test_stranger_delete_is_denied_without_state_change(self):
        comment = _approved(self.member, self.news)

        with self.assertRaises(errors.PermissionDenied):
            lifecycle.delete(comment, self.other_member)

        comment.refresh_from_db()
        self.assertEqual(comment.status, CommentStatus.APPROVED)
        self.assertIsNone(comment.moderated_by)

    def test_moderator_deleting_own_comment_hard_deletes(self):
        comment = _approved(self.moderator, self.news)

        self.assertIsNone(lifecycle.delete(comment, self.moderator))
        self.assertFalse(Comment.objects.filter(pk=comment.pk).exists())


class ModerateTests(CommentTestCase):
    def test_moderation_is_permissive(self):
        comment = Comment.objects.create(
            content="x", author=self.member, news=self.news, status=CommentStatus.REJECTED
        )
        for new_status in (CommentStatus.APPROVED, CommentStatus.FLAGGED, CommentStatus.REJECTED):
            lifecycle.moderate(comment, self.moderator, new_status, reason="off_topic", notes="n")
            comment.refresh_from_db()
            self.assertEqual(comment.status, new_status)
            self.assertEqual(comment.moderation_reason, ModerationReason.OFF_TOPIC)

    def test_invalid_status_or_reason(self):
        comment = _approved(self.member, self.news)
        with self.assertRaises(errors.ValidationFailed):
            lifecycle.moderate(comment, self.moderator, CommentStatus.PENDING)
        with self.assertRaises(errors.ValidationFailed):
            lifecycle.moderate(comment, self.moderator, CommentStatus.REJECTED, reason="rude")

    def test_only_staff_moderate(self):
        comment = _approved(self.member, self.news)
        with self.assertRaises(errors.PermissionDenied):
            lifecycle.moderate(comment, self.journalist, CommentStatus.REJECTED)

    def test_moderation_is_logged(self):
        comment = _approved(self.member, self.news)
        with self.assertLogs("comments.lifecycle", level="INFO") as logs:
            lifecycle.moderate(comment, self.moderator, CommentStatus.FLAGGED)
        self.assertIn("flagged", logs.output[0])


class ReactTests(CommentTestCase):
    def setUp(self):
        self.comment = _approved(self.member, self.news)

    def _membership(self, user):
        return (
            self.comment.likes.filter(pk=user.pk).exists(),
            self.comment.dislikes.filter(pk=user.pk).exists(),
        )

    def test_like_twice_restores_membership(self):
        before = self._membership(self.other_member)

        first = lifecycle.react(self.comment, self.other_member, "like")
        second = lifecycle.react(self.comment, self.other_member, "like")

        self.assertEqual((first.likes, first.dislikes, first.user_reaction), (1, 0, "like"))
        self.assertEqual((second.likes, second.dislikes, second.user_reaction), (0, 0, None))
        self.assertEqual(self._membership(self.other_member), before)

    def test_switching_reaction_keeps_sets_disjoint(self):
        lifecycle.react(self.comment, self.other_member, "like")
        summary = lifecycle.react(self.comment, self.other_member, "dislike")

        self.assertEqual((summary.likes, summary.dislikes, summary.user_reaction), (0, 1, "dislike"))
        self.assertEqual(self._membership(self.other_member), (False, True))

    def test_likes_and_dislikes_never_overlap(self):
        sequence = ["like", "dislike", "dislike", "like", "dislike", "like", "like"]
        for kind in sequence:
            lifecycle.react(self.comment, self.other_member, kind)
            lifecycle.react(self.comment, self.journalist, kind)
            likes = set(self.comment.likes.values_list("pk", flat=True))
            dislikes = set(self.comment.dislikes.values_list("pk", flat=True))
            self.assertEqual(likes & dislikes, set())

    def test_invalid_kind_and_reader(self):
        with self.assertRaises(errors.ValidationFailed):
            lifecycle.react(self.comment, self.other_member, "love")
        with self.assertRaises(errors.PermissionDenied):
            lifecycle.react(self.comment, self.reader, "like")


class ThreadTests(CommentTestCase):
    @classmethod
    def setUpTestData(cls):
        super().setUpTestData()
        cls.top = _approved(cls.member, cls.news, content="Top")
        cls.hidden = Comment.objects.create(content="Hidden", author=cls.other_member, news=cls.news)
        cls.replies = [
            _approved(cls.journalist, cls.news, content=f"Reply {i}", parent=cls.top) for i in range(12)
        ]
        Comment.objects.create(
            content="Pending reply", author=cls.other_member, news=cls.news, parent_comment=cls.top
        )

    def test_thread_lists_approved_top_level_with_capped_replies(self):
        thread = list(lifecycle.list_approved_for_news(self.news.pk))

        self.assertEqual(thread, [self.top])
        entry = thread[0]
        self.assertEqual(entry.reply_count, 12)
        self.assertEqual([r.pk for r in entry.approved_replies], [r.pk for r in self.replies[:10]])

    @override_settings(COMMENT_REPLY_LIMIT=3)
    def test_reply_limit_is_configurable(self):
        entry = list(lifecycle.list_approved_for_news(self.news.pk))[0]
        self.assertEqual(len(entry.approved_replies), 3)

    def test_thread_of_unknown_news_is_not_found(self):
        with self.assertRaises(errors.NotFound):
            lifecycle.list_approved_for_news(999999)

    def test_thread_of_unapproved_news_is_empty(self):
        self.assertEqual(list(lifecycle.list_approved_for_news(self.pending_news.pk)), [])

    def test_comments_for_author(self):
        mine = list(lifecycle.comments_for_author(self.other_member))
        self.assertEqual(len(mine), 2)
        self.assertEqual(list(lifecycle.comments_for_author(self.member, "approved")), [self.top])

    def test_moderation_queue_oldest_first(self):
        queue = list(lifecycle.moderation_queue(self.moderator))
        self.assertEqual(queue[0], self.hidden)
        self.assertTrue(all(c.status == CommentStatus.PENDING for c in queue))

        with self.assertRaises(errors.PermissionDenied):
            lifecycle.moderation_queue(self.member)


class MultiThreadTests(CommentTestCase):
    @classmethod
    def setUpTestData(cls):
        super().setUpTestData()
        cls.tops = [_approved(cls.member, cls.other_news, content=f"Top {i}") for i in range(3)]
        cls.replies = {
            top.pk: [
                _approved(cls.journalist, cls.other_news, content=f"Reply {i} to {top.pk}", parent=top)
                for i in range(12)
            ]
            for top in cls.tops
        }
        cls.tops[0].likes.add(cls.other_member, cls.moderator)
        cls.replies[cls.tops[1].pk][0].dislikes.add(cls.member)

    def test_reply_cap_applies_per_top_level_comment(self):
        thread = list(lifecycle.list_approved_for_news(self.other_news.pk))

        self.assertEqual({entry.pk for entry in thread}, {top.pk for top in self.tops})
        for entry in thread:
            with self.subTest(top=entry.pk):
                self.assertEqual(entry.reply_count, 12)
                self.assertEqual(
                    [r.pk for r in entry.approved_replies], [r.pk for r in self.replies[entry.pk][:10]]
                )

    def test_reaction_counts_are_annotated(self):
        thread = {entry.pk: entry for entry in lifecycle.list_approved_for_news(self.other_news.pk)}

        self.assertEqual(thread[self.tops[0].pk].likes_total, 2)
        self.assertEqual(thread[self.tops[0].pk].dislikes_total, 0)
        self.assertEqual(thread[self.tops[1].pk].approved_replies[0].dislikes_total, 1)

    def test_serializing_a_thread_needs_no_further_queries(self):
        thread = list(lifecycle.list_approved_for_news(self.other_news.pk))

        with self.assertNumQueries(0):
            data = ThreadCommentSerializer(thread, many=True).data

        by_id = {item["id"]: item for item in data}
        self.assertEqual(by_id[self.tops[0].pk]["likes_count"], 2)
        self.assertEqual(len(by_id[self.tops[2].pk]["replies"]), 10)
