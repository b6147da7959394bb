"""Shared fixtures: a fixed clock, an in-memory store, actors, and record factories."""

from collections.abc import Callable
from datetime import UTC, datetime

import pytest
from inkwell.content.access import Actor
from inkwell.content.models import Category, Post, PostStatus, Tag, User
from inkwell.content.store import ContentStore

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=UTC)


class FixedClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def store() -> ContentStore:
    return ContentStore()


@pytest.fixture
def admin() -> Actor:
    return Actor.admin(1)


@pytest.fixture
def author() -> Actor:
    return Actor.user(42)


@pytest.fixture
def stranger() -> Actor:
    return Actor.user(7)


@pytest.fixture
def anonymous() -> Actor:
    return Actor.anonymous()


# ── Record factories ─────────────────────────────────────────────
#
# Each factory saves straight into ``store``, bypassing the services.
# Pass ``in_store=`` to target a different store.


@pytest.fixture
def make_post(store: ContentStore) -> Callable[..., Post]:
    def _make(
        title: str = "A post",
        *,
        slug: str | None = None,
        status: PostStatus = PostStatus.DRAFT,
        published_at: datetime | None = None,
        created_at: datetime = NOW,
        in_store: ContentStore | None = None,
        **kwargs: object,
    ) -> Post:
        target = in_store if in_store is not None else store
        return target.posts.save(
            Post(
                title=title,
                slug=slug or title.lower().replace(" ", "-"),
                content=kwargs.pop("content", "Body text"),  # type: ignore[arg-type]
                status=status,
                author_id=kwargs.pop("author_id", 42),  # type: ignore[arg-type]
                published_at=published_at,
                created_at=created_at,
                **kwargs,  # type: ignore[arg-type]
            )
        )

    return _make


@pytest.fixture
def make_category(store: ContentStore) -> Callable[..., Category]:
    def _make(name: str = "Python") -> Category:
        return store.categories.save(
            Category(name=name, slug=name.lower().replace(" ", "-"), created_at=NOW)
        )

    return _make


@pytest.fixture
def make_tag(store: ContentStore) -> Callable[..., Tag]:
    def _make(name: str = "testing") -> Tag:
        return store.tags.save(Tag(name=name, slug=name.lower().replace(" ", "-"), created_at=NOW))

    return _make


@pytest.fixture
def make_user(store: ContentStore) -> Callable[..., User]:
    def _make(username: str = "reader", **kwargs: object) -> User:
        return store.users.save(
            User(username=username, created_at=kwargs.pop("created_at", NOW), **kwargs)  # type: ignore[arg-type]
        )

    return _make
