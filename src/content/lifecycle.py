"""Post lifecycle: creation, editing, and publication state transitions.

States: draft (initial) → published → draft (unpublish) or archived.
Every transition runs inside a single store transaction, so a failure at
any point leaves the stored post exactly as it was.

The read side applies the public visibility rule (published and
``published_at <= now``); the admin listing sees every post.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from inkwell.config import ContentConfig
from inkwell.content.access import Actor, require_admin, require_can_mutate
from inkwell.content.models import (
    Post,
    PostChanges,
    PostInput,
    PostStatus,
    as_utc,
    parse_input,
)
from inkwell.content.slugs import unique_slug
from inkwell.content.store import Repository
from inkwell.seo import text
from inkwell.shared.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def _published_desc(post: Post) -> datetime:
    return post.published_at or post.created_at


class PostLifecycle:
    """State machine and read paths for blog posts."""

    def __init__(
        self,
        store: Repository,
        *,
        settings: ContentConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.settings = settings or ContentConfig()
        self.clock = clock

    # ── Private helpers ──────────────────────────────────────────

    def _require(self, post_id: int) -> Post:
        post = self.store.posts.get(post_id)
        if post is None:
            raise NotFoundError("post", post_id)
        return post

    def _check_references(self, category_id: int | None, tag_ids: list[int]) -> None:
        if category_id is not None and self.store.categories.get(category_id) is None:
            raise NotFoundError("category", category_id)
        for tag_id in tag_ids:
            if self.store.tags.get(tag_id) is None:
                raise NotFoundError("tag", tag_id)

    def _allocate_slug(self, title: str, post_id: int | None) -> str:
        def is_taken(candidate: str) -> bool:
            other = self.store.posts.find_by_slug(candidate)
            return other is not None and other.id != post_id

        return unique_slug(
            title,
            is_taken,
            fallback="post",
            max_attempts=self.settings.slug_max_attempts,
        )

    def _save_with_slug(self, post: Post) -> Post:
        """Save a post, re-allocating its slug once on a concurrent collision."""
        try:
            return self.store.posts.save(post)
        except ConflictError:
            logger.info("Slug %r taken concurrently, re-allocating", post.slug)
            post.slug = self._allocate_slug(post.title, post.id)
            return self.store.posts.save(post)

    def _derive_excerpt(self, content: str) -> str:
        return text.excerpt(content, self.settings.excerpt_length)

    # ── Transitions ──────────────────────────────────────────────

    def create(self, actor: Actor, data: PostInput | dict[str, Any]) -> Post:
        """Create a draft post authored by ``actor``.  Admin only."""
        require_admin(actor, "create posts")
        fields = parse_input(PostInput, data)
        with self.store.transaction():
            self._check_references(fields.category_id, fields.tag_ids)
            post = Post(
                title=fields.title,
                slug=self._allocate_slug(fields.title, None),
                content=fields.content,
                excerpt=fields.excerpt or self._derive_excerpt(fields.content),
                status=PostStatus.DRAFT,
                author_id=actor.user_id,
                category_id=fields.category_id,
                tag_ids=list(dict.fromkeys(fields.tag_ids)),
                meta_description=fields.meta_description,
                meta_keywords=fields.meta_keywords,
                featured_image_url=fields.featured_image_url,
                is_featured=fields.is_featured,
                created_at=self.clock(),
            )
            post = self._save_with_slug(post)
        logger.info("Created post %s (%s)", post.id, post.slug)
        return post

    def update(self, actor: Actor, post_id: int, data: PostChanges | dict[str, Any]) -> Post:
        """Apply a partial update.  The slug only changes with the title."""
        changes = parse_input(PostChanges, data)
        with self.store.transaction():
            post = self._require(post_id)
            require_can_mutate(actor, post.author_id, "edit this post")
            self._check_references(changes.category_id, changes.tag_ids or [])

            if changes.title is not None and changes.title != post.title:
                post.title = changes.title
                post.slug = self._allocate_slug(post.title, post.id)
            if changes.content is not None:
                post.content = changes.content
            post.excerpt = changes.excerpt or self._derive_excerpt(post.content)
            if changes.category_id is not None:
                post.category_id = changes.category_id
            if changes.tag_ids is not None:
                post.tag_ids = list(dict.fromkeys(changes.tag_ids))
            if changes.meta_description is not None:
                post.meta_description = changes.meta_description
            if changes.meta_keywords is not None:
                post.meta_keywords = changes.meta_keywords
            if changes.featured_image_url is not None:
                post.featured_image_url = changes.featured_image_url
            if changes.is_featured is not None:
                post.is_featured = changes.is_featured
            post.updated_at = self.clock()
            post = self._save_with_slug(post)
        logger.info("Updated post %s", post_id)
        return post

    def publish(self, actor: Actor, post_id: int, *, at: datetime | None = None) -> Post:
        """Publish a post.

        The first publish stamps ``published_at`` with ``at`` (a future
        time schedules the post) or now.  A naive ``at`` is taken as UTC.

        Once a post has gone live its ``published_at`` is fixed, and
        publishing it again changes nothing.  A post that is only scheduled
        can be moved: publishing it again sets ``published_at`` to ``at``,
        or to now when ``at`` is omitted.
        """
        require_admin(actor, "publish posts")
        now = self.clock()
        when = as_utc(at) if at is not None else now
        with self.store.transaction():
            post = self._require(post_id)
            scheduled = post.published_at is not None and post.published_at > now
            if post.status == PostStatus.PUBLISHED and not scheduled:
                return post
            if post.status == PostStatus.PUBLISHED and post.published_at == when:
                return post
            post.status = PostStatus.PUBLISHED
            if post.published_at is None or scheduled:
                post.published_at = when
            post.updated_at = now
            post = self.store.posts.save(post)
        logger.info("Published post %s at %s", post_id, post.published_at)
        return post

    def unpublish(self, actor: Actor, post_id: int) -> Post:
        """Return a post to draft, keeping its first-publish time."""
        require_admin(actor, "unpublish posts")
        with self.store.transaction():
            post = self._require(post_id)
            if post.status == PostStatus.DRAFT:
                return post
            post.status = PostStatus.DRAFT
            post.updated_at = self.clock()
            post = self.store.posts.save(post)
        logger.info("Unpublished post %s", post_id)
        return post

    def archive(self, actor: Actor, post_id: int) -> Post:
        require_admin(actor, "archive posts")
        with self.store.transaction():
            post = self._require(post_id)
            if post.status == PostStatus.ARCHIVED:
                return post
            post.status = PostStatus.ARCHIVED
            post.updated_at = self.clock()
            post = self.store.posts.save(post)
        logger.info("Archived post %s", post_id)
        return post

    def delete(self, actor: Actor, post_id: int) -> None:
        """Delete a post together with its comments; images are detached."""
        require_admin(actor, "delete posts")
        with self.store.transaction():
            self._require(post_id)
            comments = self.store.comments.query(lambda c: c.post_id == post_id)
            for comment in comments:
                self.store.comments.delete(comment.id)
            for image in self.store.images.query(lambda i: i.post_id == post_id):
                image.post_id = None
                self.store.images.save(image)
            self.store.posts.delete(post_id)
        logger.info("Deleted post %s and %d comment(s)", post_id, len(comments))

    def record_view(self, post_id: int) -> int:
        """Increment and return the view counter of a post."""
        with self.store.transaction():
            post = self._require(post_id)
            post.view_count += 1
            self.store.posts.save(post)
        return post.view_count

    def regenerate_slugs(self, actor: Actor) -> int:
        """Re-derive every post slug from its title.  Returns how many changed."""
        require_admin(actor, "regenerate slugs")
        changed = 0
        with self.store.transaction():
            for post in self.store.posts.query(order_by=lambda p: p.id):
                slug = self._allocate_slug(post.title, post.id)
                if slug != post.slug:
                    post.slug = slug
                    self.store.posts.save(post)
                    changed += 1
        logger.info("Regenerated %d slug(s)", changed)
        return changed

    # ── Read paths ───────────────────────────────────────────────

    def get(self, actor: Actor, post_id: int) -> Post:
        """Fetch a post.  Hidden posts are reported as missing unless the
        actor is an admin or the author.
        """
        post = self._require(post_id)
        if post.is_visible(self.clock()):
            return post
        if actor.is_admin or (actor.user_id is not None and actor.user_id == post.author_id):
            return post
        raise NotFoundError("post", post_id)

    def get_by_slug(self, slug: str) -> Post:
        post = self.store.posts.find_by_slug(slug)
        if post is None or not post.is_visible(self.clock()):
            raise NotFoundError("post", slug)
        return post

    def _visible(
        self,
        where: Callable[[Post], bool] | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[Post]:
        now = self.clock()
        return self.store.posts.query(
            lambda p: p.is_visible(now) and (where is None or where(p)),
            order_by=_published_desc,
            descending=True,
            offset=offset,
            limit=limit,
        )

    def list_public(self, offset: int = 0, limit: int | None = None) -> list[Post]:
        return self._visible(offset=offset, limit=limit)

    def list_all(self, actor: Actor) -> list[Post]:
        """Every post in every state, newest first.  Admin only."""
        require_admin(actor, "list all posts")
        return self.store.posts.query(order_by=lambda p: p.created_at, descending=True)

    def list_featured(self) -> list[Post]:
        return self._visible(lambda p: p.is_featured)

    def list_by_category(self, category_id: int) -> list[Post]:
        return self._visible(lambda p: p.category_id == category_id)

    def list_by_tag(self, tag_id: int) -> list[Post]:
        return self._visible(lambda p: tag_id in p.tag_ids)

    def search(self, term: str) -> list[Post]:
        """Case-insensitive search over visible posts.

        Matches title, content, excerpt, category name, and tag names.
        An empty term returns every visible post.
        """
        needle = term.strip().casefold()
        if not needle:
            return self.list_public()
        categories = {c.id: c.name.casefold() for c in self.store.categories.query()}
        tags = {t.id: t.name.casefold() for t in self.store.tags.query()}

        def matches(post: Post) -> bool:
            haystacks = [
                post.title.casefold(),
                post.content.casefold(),
                post.excerpt.casefold(),
                categories.get(post.category_id, ""),
                *(tags.get(tag_id, "") for tag_id in post.tag_ids),
            ]
            return any(needle in h for h in haystacks)

        return self._visible(matches)
