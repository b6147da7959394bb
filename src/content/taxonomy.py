"""Categories and tags.

Both carry a unique slug derived from their name.  A category that any
post still references cannot be deleted; deleting a tag detaches it from
its posts.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import Any

from inkwell.config import ContentConfig
from inkwell.content.access import Actor, require_admin
from inkwell.content.models import Category, CategoryInput, Tag, TagInput, parse_input
from inkwell.content.slugs import unique_slug
from inkwell.content.store import Repository, Table
from inkwell.shared.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class TaxonomyService:
    """Admin management of categories and tags, plus public lookups."""

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

    def _slug_for(self, table: Table, name: str, record_id: int | None, fallback: str) -> str:
        def is_taken(candidate: str) -> bool:
            other = table.find_by_slug(candidate)
            return other is not None and other.id != record_id

        return unique_slug(
            name, is_taken, fallback=fallback, max_attempts=self.settings.slug_max_attempts
        )

    # ── Categories ───────────────────────────────────────────────

    def create_category(self, actor: Actor, data: CategoryInput | dict[str, Any]) -> Category:
        require_admin(actor, "create categories")
        fields = parse_input(CategoryInput, data)
        with self.store.transaction():
            category = self.store.categories.save(
                Category(
                    name=fields.name,
                    slug=self._slug_for(self.store.categories, fields.name, None, "category"),
                    description=fields.description,
                    meta_description=fields.meta_description,
                    created_at=self.clock(),
                )
            )
        logger.info("Created category %s (%s)", category.id, category.slug)
        return category

    def update_category(
        self, actor: Actor, category_id: int, data: CategoryInput | dict[str, Any]
    ) -> Category:
        """Replace a category's fields; the slug follows a renamed category."""
        require_admin(actor, "edit categories")
        fields = parse_input(CategoryInput, data)
        with self.store.transaction():
            category = self.store.categories.get(category_id)
            if category is None:
                raise NotFoundError("category", category_id)
            if fields.name != category.name:
                category.slug = self._slug_for(
                    self.store.categories, fields.name, category_id, "category"
                )
            category.name = fields.name
            category.description = fields.description
            category.meta_description = fields.meta_description
            category = self.store.categories.save(category)
        return category

    def delete_category(self, actor: Actor, category_id: int) -> None:
        """Delete an unused category.

        Raises:
            ConflictError: a post still belongs to the category.
        """
        require_admin(actor, "delete categories")
        with self.store.transaction():
            if self.store.categories.get(category_id) is None:
                raise NotFoundError("category", category_id)
            in_use = self.store.posts.count(lambda p: p.category_id == category_id)
            if in_use:
                raise ConflictError(
                    f"category {category_id} still has {in_use} post(s); move them first"
                )
            self.store.categories.delete(category_id)
        logger.info("Deleted category %s", category_id)

    def list_categories(self) -> list[Category]:
        return self.store.categories.query(order_by=lambda c: c.name.casefold())

    def get_category_by_slug(self, slug: str) -> Category:
        category = self.store.categories.find_by_slug(slug)
        if category is None:
            raise NotFoundError("category", slug)
        return category

    # ── Tags ─────────────────────────────────────────────────────

    def _new_tag(self, name: str) -> Tag:
        return self.store.tags.save(
            Tag(
                name=name,
                slug=self._slug_for(self.store.tags, name, None, "tag"),
                created_at=self.clock(),
            )
        )

    def create_tag(self, actor: Actor, data: TagInput | dict[str, Any]) -> Tag:
        require_admin(actor, "create tags")
        fields = parse_input(TagInput, data)
        with self.store.transaction():
            tag = self._new_tag(fields.name)
        logger.info("Created tag %s (%s)", tag.id, tag.slug)
        return tag

    def create_tags(self, actor: Actor, names: Iterable[str]) -> list[Tag]:
        """Return tags for ``names``, creating the ones that do not exist.

        Existing tags are matched by exact name.
        """
        require_admin(actor, "create tags")
        inputs = [parse_input(TagInput, {"name": name}) for name in names]
        tags: list[Tag] = []
        with self.store.transaction():
            for fields in inputs:
                existing = self.store.tags.find_by("name", fields.name)
                tags.append(existing if existing is not None else self._new_tag(fields.name))
        return tags

    def update_tag(self, actor: Actor, tag_id: int, data: TagInput | dict[str, Any]) -> Tag:
        require_admin(actor, "edit tags")
        fields = parse_input(TagInput, data)
        with self.store.transaction():
            tag = self.store.tags.get(tag_id)
            if tag is None:
                raise NotFoundError("tag", tag_id)
            if fields.name != tag.name:
                tag.slug = self._slug_for(self.store.tags, fields.name, tag_id, "tag")
                tag.name = fields.name
                tag = self.store.tags.save(tag)
        return tag

    def delete_tag(self, actor: Actor, tag_id: int) -> None:
        """Delete a tag and remove it from every post that carries it."""
        require_admin(actor, "delete tags")
        with self.store.transaction():
            if self.store.tags.get(tag_id) is None:
                raise NotFoundError("tag", tag_id)
            for post in self.store.posts.query(lambda p: tag_id in p.tag_ids):
                post.tag_ids = [t for t in post.tag_ids if t != tag_id]
                self.store.posts.save(post)
            self.store.tags.delete(tag_id)
        logger.info("Deleted tag %s", tag_id)

    def list_tags(self) -> list[Tag]:
        return self.store.tags.query(order_by=lambda t: t.name.casefold())

    def get_tag_by_slug(self, slug: str) -> Tag:
        tag = self.store.tags.find_by_slug(slug)
        if tag is None:
            raise NotFoundError("tag", slug)
        return tag

    def popular_tags(self, count: int = 10) -> list[Tag]:
        """Tags ordered by how many visible posts carry them."""
        now = self.clock()
        usage: Counter[int] = Counter()
        for post in self.store.posts.query(lambda p: p.is_visible(now)):
            usage.update(set(post.tag_ids))
        return self.store.tags.query(
            order_by=lambda t: (-usage[t.id], t.name.casefold()),
            limit=count,
        )
