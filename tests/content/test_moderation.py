"""Tests for CommentModeration — comment authoring and moderation."""

from datetime import UTC, datetime, timedelta

import pytest
from inkwell.content.access import Actor
from inkwell.content.models import CommentStatus
from inkwell.content.moderation import CommentModeration
from inkwell.shared.errors import ForbiddenError, InputValidationError, NotFoundError

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=UTC)
GUEST = {"guest_name": "Ann", "guest_email": "ann@example.com"}


@pytest.fixture
def moderation(store, clock) -> CommentModeration:
    return CommentModeration(store, clock=clock)


@pytest.fixture
def post(make_post):
    return make_post("Commented")


class TestCreate:
    def test_user_comment_is_pending(self, moderation, post, author):
        comment = moderation.create(author, post.id, {"content": "Nice post"})
        assert comment.status == CommentStatus.PENDING
        assert comment.user_id == 42
        assert comment.guest_name is None

    def test_guest_comment(self, moderation, post, anonymous):
        comment = moderation.create(anonymous, post.id, {"content": "Hi", **GUEST})
        assert comment.is_guest is True
        assert comment.guest_email == "ann@example.com"

    def test_admin_comment_is_pending_too(self, moderation, post, admin):
        assert moderation.create(admin, post.id, {"content": "Hi"}).status == CommentStatus.PENDING

    def test_authenticated_actor_ignores_guest_fields(self, moderation, post, author):
        comment = moderation.create(author, post.id, {"content": "Hi", **GUEST})
        assert comment.user_id == 42
        assert comment.guest_name is None

    def test_guest_without_email_rejected(self, moderation, post, store, anonymous):
        with pytest.raises(InputValidationError) as exc_info:
            moderation.create(anonymous, post.id, {"content": "Hi", "guest_name": "Ann", "guest_email": ""})
        assert any(e.startswith("guest_email:") for e in exc_info.value.errors)
        assert store.comments.count() == 0

    def test_blank_content_rejected(self, moderation, post, author, store):
        with pytest.raises(InputValidationError):
            moderation.create(author, post.id, {"content": "   "})
        assert store.comments.count() == 0

    def test_missing_post(self, moderation, author):
        with pytest.raises(NotFoundError):
            moderation.create(author, 99, {"content": "Hi"})


class TestEditAndDelete:
    def test_owner_edits_keeping_status(self, moderation, post, author, admin, clock):
        comment = moderation.create(author, post.id, {"content": "Frist"})
        moderation.approve(admin, comment.id)
        clock.now = NOW + timedelta(minutes=5)

        edited = moderation.edit(author, comment.id, "First")
        assert edited.content == "First"
        assert edited.status == CommentStatus.APPROVED
        assert edited.updated_at == NOW + timedelta(minutes=5)

    def test_other_user_cannot_edit(self, moderation, post, author, stranger):
        comment = moderation.create(author, post.id, {"content": "Mine"})
        with pytest.raises(ForbiddenError):
            moderation.edit(stranger, comment.id, "Yours")

    def test_guest_comment_only_admin_can_edit(self, moderation, post, anonymous, author, admin):
        comment = moderation.create(anonymous, post.id, {"content": "Hi", **GUEST})
        with pytest.raises(ForbiddenError):
            moderation.edit(author, comment.id, "Changed")
        assert moderation.edit(admin, comment.id, "Changed").content == "Changed"

    def test_edit_validates_content(self, moderation, post, author):
        comment = moderation.create(author, post.id, {"content": "Hi"})
        with pytest.raises(InputValidationError):
            moderation.edit(author, comment.id, " ")
        with pytest.raises(InputValidationError):
            moderation.edit(author, comment.id, "x" * 5001)

    def test_owner_deletes(self, moderation, post, author, store):
        comment = moderation.create(author, post.id, {"content": "Hi"})
        moderation.delete(author, comment.id)
        assert store.comments.count() == 0

    def test_stranger_cannot_delete(self, moderation, post, author, stranger):
        comment = moderation.create(author, post.id, {"content": "Hi"})
        with pytest.raises(ForbiddenError):
            moderation.delete(stranger, comment.id)


class TestModeration:
    def test_approve_and_reject_are_reversible(self, moderation, post, author, admin):
        comment = moderation.create(author, post.id, {"content": "Hi"})
        assert moderation.approve(admin, comment.id).status == CommentStatus.APPROVED
        assert moderation.reject(admin, comment.id).status == CommentStatus.REJECTED
        assert moderation.approve(admin, comment.id).status == CommentStatus.APPROVED

    def test_approve_is_idempotent(self, moderation, post, author, admin):
        comment = moderation.create(author, post.id, {"content": "Hi"})
        moderation.approve(admin, comment.id)
        assert moderation.approve(admin, comment.id).status == CommentStatus.APPROVED

    def test_requires_admin(self, moderation, post, author):
        comment = moderation.create(author, post.id, {"content": "Hi"})
        with pytest.raises(ForbiddenError):
            moderation.approve(author, comment.id)

    def test_missing_comment(self, moderation, admin):
        with pytest.raises(NotFoundError):
            moderation.reject(admin, 99)

    def test_bulk_approve_skips_unknown_ids(self, moderation, post, author, admin):
        for text in ("one", "two"):
            moderation.create(author, post.id, {"content": text})
        assert moderation.bulk_approve(admin, [1, 2, 999]) == 2
        assert len(moderation.list_approved(post.id)) == 2

    def test_bulk_reject_counts_duplicates_once(self, moderation, post, author, admin):
        moderation.create(author, post.id, {"content": "one"})
        assert moderation.bulk_reject(admin, [1, 1]) == 1

    def test_bulk_requires_admin(self, moderation, author):
        with pytest.raises(ForbiddenError):
            moderation.bulk_approve(author, [1])


class TestReadPaths:
    def test_public_listing_shows_only_approved(self, moderation, post, author, admin):
        approved = moderation.create(author, post.id, {"content": "good"})
        moderation.create(author, post.id, {"content": "waiting"})
        moderation.approve(admin, approved.id)
        assert [c.id for c in moderation.list_approved(post.id)] == [approved.id]

    def test_pending_queue(self, moderation, post, author, admin):
        first = moderation.create(author, post.id, {"content": "one"})
        moderation.create(author, post.id, {"content": "two"})
        moderation.approve(admin, first.id)
        assert [c.content for c in moderation.list_pending(admin)] == ["two"]

    def test_get_hides_pending_from_strangers(self, moderation, post, author, stranger, admin):
        comment = moderation.create(author, post.id, {"content": "Hi"})
        assert moderation.get(author, comment.id).id == comment.id
        assert moderation.get(admin, comment.id).id == comment.id
        with pytest.raises(NotFoundError):
            moderation.get(stranger, comment.id)

    def test_recent_newest_first(self, moderation, post, author, admin, clock):
        moderation.create(author, post.id, {"content": "older"})
        clock.now = NOW + timedelta(minutes=1)
        moderation.create(author, post.id, {"content": "newer"})
        assert [c.content for c in moderation.recent(admin, 1)] == ["newer"]
        assert len(moderation.list_all(admin)) == 2
