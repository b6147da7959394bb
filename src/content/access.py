"""Actors and the ownership-based access policy.

Every service operation takes an explicit ``Actor``; credentials are
verified upstream.  ``can_mutate`` is the single ownership rule shared by
posts, comments, and images.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from inkwell.content.models import Role
from inkwell.shared.errors import ForbiddenError


class Actor(BaseModel):
    """The identity making a request: anonymous, a user, or an admin."""

    model_config = ConfigDict(frozen=True)

    user_id: int | None = None
    role: Role | None = None

    @classmethod
    def anonymous(cls) -> Actor:
        return cls()

    @classmethod
    def user(cls, user_id: int) -> Actor:
        return cls(user_id=user_id, role=Role.USER)

    @classmethod
    def admin(cls, user_id: int) -> Actor:
        return cls(user_id=user_id, role=Role.ADMIN)

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None

    @property
    def is_admin(self) -> bool:
        return self.user_id is not None and self.role == Role.ADMIN


def can_mutate(actor: Actor, owner_id: int | None) -> bool:
    """Decide whether ``actor`` may change a resource owned by ``owner_id``.

    Admins always may; users only their own resources; anonymous actors
    never.  Ownerless resources (guest comments) are admin-only.
    """
    if actor.is_admin:
        return True
    if actor.is_anonymous or owner_id is None:
        return False
    return actor.user_id == owner_id


def require_admin(actor: Actor, action: str) -> None:
    if not actor.is_admin:
        raise ForbiddenError(action)


def require_authenticated(actor: Actor, action: str) -> None:
    if actor.is_anonymous:
        raise ForbiddenError(action)


def require_can_mutate(actor: Actor, owner_id: int | None, action: str) -> None:
    if not can_mutate(actor, owner_id):
        raise ForbiddenError(action)
