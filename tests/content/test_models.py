"""Tests for content domain models."""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from inkwell.content.models import (
    Comment,
    CommentInput,
    CommentStatus,
    Post,
    PostChanges,
    PostInput,
    PostStatus,
    User,
    parse_input,
)
from inkwell.shared.errors import InputValidationError

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=UTC)


class TestStatusEnums:
    def test_post_status_values(self):
        assert {s.value for s in PostStatus} == {"draft", "published", "archived"}

    def test_comment_status_values(self):
        assert {s.value for s in CommentStatus} == {"pending", "approved", "rejected"}


class TestPostVisibility:
    def _post(self, **kwargs: object) -> Post:
        return Post(title="T", content="C", author_id=1, created_at=NOW, **kwargs)  # type: ignore[arg-type]

    def test_draft_is_hidden(self):
        assert self._post().is_visible(NOW) is False

    def test_published_in_past_is_visible(self):
        post = self._post(status=PostStatus.PUBLISHED, published_at=NOW - timedelta(hours=1))
        assert post.is_visible(NOW) is True

    def test_published_exactly_now_is_visible(self):
        post = self._post(status=PostStatus.PUBLISHED, published_at=NOW)
        assert post.is_visible(NOW) is True

    def test_scheduled_post_is_hidden_until_due(self):
        post = self._post(status=PostStatus.PUBLISHED, published_at=NOW + timedelta(days=1))
        assert post.is_visible(NOW) is False
        assert post.is_visible(NOW + timedelta(days=2)) is True

    def test_archived_is_hidden(self):
        post = self._post(status=PostStatus.ARCHIVED, published_at=NOW - timedelta(days=1))
        assert post.is_visible(NOW) is False

    def test_naive_timestamps_are_read_as_utc(self):
        post = self._post(status=PostStatus.PUBLISHED, published_at=datetime(2024, 6, 15, 11, 0))
        assert post.published_at == datetime(2024, 6, 15, 11, 0, tzinfo=UTC)
        assert post.is_visible(NOW) is True

    def test_aware_timestamps_keep_their_offset(self):
        plus_two = timezone(timedelta(hours=2))
        post = self._post(published_at=datetime(2024, 6, 15, 13, 0, tzinfo=plus_two))
        assert post.published_at.utcoffset() == timedelta(hours=2)


class TestCommentIdentity:
    def test_user_comment(self):
        comment = Comment(post_id=1, content="Hi", user_id=5, created_at=NOW)
        assert comment.owner_id == 5
        assert comment.is_guest is False

    def test_guest_comment(self):
        comment = Comment(
            post_id=1, content="Hi", guest_name="Ann", guest_email="ann@example.com", created_at=NOW
        )
        assert comment.owner_id is None
        assert comment.is_guest is True

    def test_guest_needs_both_fields(self):
        with pytest.raises(ValueError):
            Comment(post_id=1, content="Hi", guest_name="Ann", created_at=NOW)

    def test_user_and_guest_are_exclusive(self):
        with pytest.raises(ValueError):
            Comment(
                post_id=1,
                content="Hi",
                user_id=5,
                guest_name="Ann",
                guest_email="ann@example.com",
                created_at=NOW,
            )


class TestUser:
    def test_display_name_uses_full_name(self):
        user = User(username="ann", first_name="Ann", last_name="Lee", created_at=NOW)
        assert user.display_name == "Ann Lee"

    def test_display_name_falls_back_to_username(self):
        assert User(username="ann", created_at=NOW).display_name == "ann"


class TestParseInput:
    def test_valid_post_input(self):
        fields = parse_input(PostInput, {"title": "  Hello  ", "content": "Body"})
        assert fields.title == "Hello"
        assert fields.excerpt is None

    def test_blank_title_rejected(self):
        with pytest.raises(InputValidationError) as exc_info:
            parse_input(PostInput, {"title": "   ", "content": "Body"})
        assert any(e.startswith("title:") for e in exc_info.value.errors)

    def test_title_too_long_rejected(self):
        with pytest.raises(InputValidationError):
            parse_input(PostInput, {"title": "x" * 201, "content": "Body"})

    def test_missing_content_rejected(self):
        with pytest.raises(InputValidationError) as exc_info:
            parse_input(PostInput, {"title": "Hello"})
        assert any(e.startswith("content:") for e in exc_info.value.errors)

    def test_meta_description_limit(self):
        with pytest.raises(InputValidationError):
            parse_input(PostInput, {"title": "T", "content": "C", "meta_description": "m" * 161})

    def test_model_instance_passes_through(self):
        changes = PostChanges(title="New")
        assert parse_input(PostChanges, changes) is changes

    def test_partial_changes_default_to_none(self):
        changes = parse_input(PostChanges, {})
        assert changes.title is None
        assert changes.tag_ids is None

    def test_comment_blank_guest_fields_become_none(self):
        fields = parse_input(CommentInput, {"content": "Hi", "guest_name": " ", "guest_email": ""})
        assert fields.guest_name is None
        assert fields.guest_email is None

    def test_comment_invalid_email_rejected(self):
        with pytest.raises(InputValidationError) as exc_info:
            parse_input(CommentInput, {"content": "Hi", "guest_email": "not-an-email"})
        assert any(e.startswith("guest_email:") for e in exc_info.value.errors)

    def test_comment_too_long_rejected(self):
        with pytest.raises(InputValidationError):
            parse_input(CommentInput, {"content": "c" * 5001})
