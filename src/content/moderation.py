"""Comment moderation.

Comments start pending, whoever writes them, admins included.  Admins
move them to approved or rejected and may flip that decision at any
time; there is no terminal state.  Only approved comments reach the
public listing.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import Any

from inkwell.content.access import Actor, require_admin, require_can_mutate
from inkwell.content.models import (
    COMMENT_MAX_LENGTH,
    Comment,
    CommentInput,
    CommentStatus,
    parse_input,
)
from inkwell.content.store import Repository
from inkwell.shared.errors import InputValidationError, NotFoundError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class CommentModeration:
    """Create, edit, and moderate comments on posts."""

    def __init__(self, store: Repository, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self.store = store
        self.clock = clock

    def _require(self, comment_id: int) -> Comment:
        comment = self.store.comments.get(comment_id)
        if comment is None:
            raise NotFoundError("comment", comment_id)
        return comment

    # ── Authoring ────────────────────────────────────────────────

    def create(self, actor: Actor, post_id: int, data: CommentInput | dict[str, Any]) -> Comment:
        """Add a pending comment to a post.

        Authenticated actors comment as themselves and any guest fields
        are ignored.  Anonymous actors must give a guest name and email.
        """
        fields = parse_input(CommentInput, data)
        if actor.is_anonymous:
            missing = [
                name
                for name, value in (("guest_name", fields.guest_name), ("guest_email", fields.guest_email))
                if not value
            ]
            if missing:
                raise InputValidationError(
                    [f"{name}: required for anonymous comments" for name in missing]
                )
            identity: dict[str, Any] = {
                "guest_name": fields.guest_name,
                "guest_email": str(fields.guest_email),
            }
        else:
            identity = {"user_id": actor.user_id}

        with self.store.transaction():
            if self.store.posts.get(post_id) is None:
                raise NotFoundError("post", post_id)
            comment = self.store.comments.save(
                Comment(
                    post_id=post_id,
                    content=fields.content,
                    status=CommentStatus.PENDING,
                    created_at=self.clock(),
                    **identity,
                )
            )
        logger.info(
            "Comment %s on post %s by %s awaiting moderation",
            comment.id,
            post_id,
            "guest" if comment.is_guest else f"user {comment.user_id}",
        )
        return comment

    def edit(self, actor: Actor, comment_id: int, content: str) -> Comment:
        """Change a comment's text.  The moderation status is kept."""
        content = content.strip() if content else ""
        if not content:
            raise InputValidationError("content: must not be blank")
        if len(content) > COMMENT_MAX_LENGTH:
            raise InputValidationError(
                f"content: must be at most {COMMENT_MAX_LENGTH} characters"
            )
        with self.store.transaction():
            comment = self._require(comment_id)
            require_can_mutate(actor, comment.owner_id, "edit this comment")
            comment.content = content
            comment.updated_at = self.clock()
            comment = self.store.comments.save(comment)
        return comment

    def delete(self, actor: Actor, comment_id: int) -> None:
        with self.store.transaction():
            comment = self._require(comment_id)
            require_can_mutate(actor, comment.owner_id, "delete this comment")
            self.store.comments.delete(comment_id)
        logger.info("Deleted comment %s", comment_id)

    # ── Moderation ───────────────────────────────────────────────

    def _set_status(self, actor: Actor, comment_id: int, status: CommentStatus) -> Comment:
        require_admin(actor, f"mark comments {status}")
        with self.store.transaction():
            comment = self._require(comment_id)
            if comment.status != status:
                comment.status = status
                comment = self.store.comments.save(comment)
        logger.info("Comment %s %s", comment_id, status)
        return comment

    def approve(self, actor: Actor, comment_id: int) -> Comment:
        return self._set_status(actor, comment_id, CommentStatus.APPROVED)

    def reject(self, actor: Actor, comment_id: int) -> Comment:
        return self._set_status(actor, comment_id, CommentStatus.REJECTED)

    def _bulk_set_status(self, actor: Actor, comment_ids: Iterable[int], status: CommentStatus) -> int:
        require_admin(actor, f"mark comments {status}")
        found = 0
        with self.store.transaction():
            for comment_id in dict.fromkeys(comment_ids):
                comment = self.store.comments.get(comment_id)
                if comment is None:
                    continue
                found += 1
                if comment.status != status:
                    comment.status = status
                    self.store.comments.save(comment)
        logger.info("Bulk marked %d comment(s) %s", found, status)
        return found

    def bulk_approve(self, actor: Actor, comment_ids: Iterable[int]) -> int:
        """Approve every listed comment that exists.

        Returns the number found; unknown ids are skipped.
        """
        return self._bulk_set_status(actor, comment_ids, CommentStatus.APPROVED)

    def bulk_reject(self, actor: Actor, comment_ids: Iterable[int]) -> int:
        return self._bulk_set_status(actor, comment_ids, CommentStatus.REJECTED)

    # ── Read paths ───────────────────────────────────────────────

    def get(self, actor: Actor, comment_id: int) -> Comment:
        """Fetch a comment.  Unapproved ones are only shown to admins and
        their author.
        """
        comment = self._require(comment_id)
        if comment.status == CommentStatus.APPROVED or actor.is_admin:
            return comment
        if comment.owner_id is not None and actor.user_id == comment.owner_id:
            return comment
        raise NotFoundError("comment", comment_id)

    def list_approved(self, post_id: int) -> list[Comment]:
        return self.store.comments.query(
            lambda c: c.post_id == post_id and c.status == CommentStatus.APPROVED,
            order_by=lambda c: c.created_at,
        )

    def list_pending(self, actor: Actor) -> list[Comment]:
        require_admin(actor, "list pending comments")
        return self.store.comments.query(
            lambda c: c.status == CommentStatus.PENDING,
            order_by=lambda c: c.created_at,
        )

    def list_all(self, actor: Actor) -> list[Comment]:
        require_admin(actor, "list all comments")
        return self.store.comments.query(order_by=lambda c: c.created_at)

    def recent(self, actor: Actor, count: int = 5) -> list[Comment]:
        require_admin(actor, "list recent comments")
        return self.store.comments.query(
            order_by=lambda c: c.created_at, descending=True, limit=count
        )
