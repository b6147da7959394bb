"""User directory: registration, profiles, roles, and per-user listings.

Passwords and sessions are handled upstream; a ``User`` here is only the
directory entry that posts, comments, and images point at by id.
Usernames and non-empty emails are unique, compared case-insensitively.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from inkwell.content.access import Actor, require_admin, require_can_mutate
from inkwell.content.models import (
    Comment,
    Post,
    Role,
    User,
    UserChanges,
    UserInput,
    parse_input,
)
from inkwell.content.store import Repository
from inkwell.shared.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class UserDirectory:
    """Manage directory entries for authors and commenters."""

    def __init__(self, store: Repository, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self.store = store
        self.clock = clock

    def _require(self, user_id: int) -> User:
        user = self.store.users.get(user_id)
        if user is None:
            raise NotFoundError("user", user_id)
        return user

    def _check_unique(self, user_id: int | None, *, username: str | None, email: str | None) -> None:
        for other in self.store.users.query(lambda u: u.id != user_id):
            if username and other.username.casefold() == username.casefold():
                raise ConflictError(f"username already taken: {username}")
            if email and other.email.casefold() == email.casefold():
                raise ConflictError(f"email already registered: {email}")

    # ── Mutations ────────────────────────────────────────────────

    def register(self, data: UserInput | dict[str, Any]) -> User:
        """Add a user with the ``user`` role."""
        fields = parse_input(UserInput, data)
        email = str(fields.email) if fields.email else ""
        with self.store.transaction():
            self._check_unique(None, username=fields.username, email=email)
            user = self.store.users.save(
                User(
                    username=fields.username,
                    email=email,
                    first_name=fields.first_name,
                    last_name=fields.last_name,
                    role=Role.USER,
                    created_at=self.clock(),
                )
            )
        logger.info("Registered user %s (%s)", user.id, user.username)
        return user

    def update(self, actor: Actor, user_id: int, data: UserChanges | dict[str, Any]) -> User:
        """Edit a profile.  Users may edit only themselves; admins anyone."""
        changes = parse_input(UserChanges, data)
        with self.store.transaction():
            user = self._require(user_id)
            require_can_mutate(actor, user.id, "edit this user")
            if changes.email is not None:
                email = str(changes.email)
                self._check_unique(user.id, username=None, email=email)
                user.email = email
            if changes.first_name is not None:
                user.first_name = changes.first_name.strip()
            if changes.last_name is not None:
                user.last_name = changes.last_name.strip()
            user = self.store.users.save(user)
        logger.info("Updated user %s", user_id)
        return user

    def _set_role(self, actor: Actor, user_id: int, role: Role, action: str) -> User:
        require_admin(actor, action)
        with self.store.transaction():
            user = self._require(user_id)
            if user.role == role:
                return user
            user.role = role
            user = self.store.users.save(user)
        logger.info("User %s is now %s", user_id, role)
        return user

    def promote(self, actor: Actor, user_id: int) -> User:
        return self._set_role(actor, user_id, Role.ADMIN, "grant admin rights")

    def demote(self, actor: Actor, user_id: int) -> User:
        return self._set_role(actor, user_id, Role.USER, "revoke admin rights")

    def delete(self, actor: Actor, user_id: int) -> None:
        """Remove a user and their comments.  Admin only.

        Raises ConflictError while the user still authors posts; reassign or
        delete those first.
        """
        require_admin(actor, "delete users")
        with self.store.transaction():
            self._require(user_id)
            authored = self.store.posts.count(lambda p: p.author_id == user_id)
            if authored:
                raise ConflictError(f"user {user_id} still authors {authored} post(s)")
            comments = self.store.comments.query(lambda c: c.user_id == user_id)
            for comment in comments:
                self.store.comments.delete(comment.id)
            self.store.users.delete(user_id)
        logger.info("Deleted user %s and %d comment(s)", user_id, len(comments))

    # ── Read paths ───────────────────────────────────────────────

    def get(self, user_id: int) -> User:
        return self._require(user_id)

    def get_by_username(self, username: str) -> User:
        needle = username.strip().casefold()
        matches = self.store.users.query(lambda u: u.username.casefold() == needle, limit=1)
        if not matches:
            raise NotFoundError("user", username)
        return matches[0]

    def list_users(self, actor: Actor) -> list[User]:
        require_admin(actor, "list users")
        return self.store.users.query(order_by=lambda u: u.id)

    def posts_by(self, actor: Actor, user_id: int) -> list[Post]:
        """Posts authored by ``user_id``, newest first.

        Admins and the author see every post; everyone else only the
        publicly visible ones.
        """
        self._require(user_id)
        now = self.clock()
        sees_all = actor.is_admin or actor.user_id == user_id
        return self.store.posts.query(
            lambda p: p.author_id == user_id and (sees_all or p.is_visible(now)),
            order_by=lambda p: p.created_at,
            descending=True,
        )

    def comments_by(self, actor: Actor, user_id: int) -> list[Comment]:
        """Every comment ``user_id`` wrote, newest first.  Self or admin."""
        self._require(user_id)
        require_can_mutate(actor, user_id, "view this user's comments")
        return self.store.comments.query(
            lambda c: c.user_id == user_id, order_by=lambda c: c.created_at, descending=True
        )
