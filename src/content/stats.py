"""Dashboard statistics and period analytics.

Everything is recomputed from the store on each call; nothing is cached.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, Field

from inkwell.content.access import Actor, require_admin
from inkwell.content.models import (
    UNCATEGORIZED,
    Comment,
    CommentStatus,
    Post,
    PostStatus,
)
from inkwell.content.store import Repository

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class DashboardStats(BaseModel):
    total_posts: int = 0
    published_posts: int = 0
    draft_posts: int = 0
    total_comments: int = 0
    pending_comments: int = 0
    approved_comments: int = 0
    total_users: int = 0
    total_categories: int = 0
    total_tags: int = 0
    total_images: int = 0


class AnalyticsReport(BaseModel):
    """Activity within the last ``days`` plus published-post breakdowns.

    ``posts_by_category`` is ordered by count, then name;
    ``posts_by_month`` by ``YYYY-MM`` key, newest first.
    """

    days: int
    posts_created: int = 0
    comments_created: int = 0
    users_registered: int = 0
    posts_by_category: dict[str, int] = Field(default_factory=dict)
    posts_by_month: dict[str, int] = Field(default_factory=dict)


class StatsAggregator:
    """Read-only counts over the content store.  Admin only."""

    def __init__(self, store: Repository, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self.store = store
        self.clock = clock

    def dashboard(self, actor: Actor) -> DashboardStats:
        require_admin(actor, "view dashboard statistics")
        posts = self.store.posts
        comments = self.store.comments
        return DashboardStats(
            total_posts=posts.count(),
            published_posts=posts.count(lambda p: p.status == PostStatus.PUBLISHED),
            draft_posts=posts.count(lambda p: p.status == PostStatus.DRAFT),
            total_comments=comments.count(),
            pending_comments=comments.count(lambda c: c.status == CommentStatus.PENDING),
            approved_comments=comments.count(lambda c: c.status == CommentStatus.APPROVED),
            total_users=self.store.users.count(),
            total_categories=self.store.categories.count(),
            total_tags=self.store.tags.count(),
            total_images=self.store.images.count(),
        )

    def analytics(self, actor: Actor, days: int = 30) -> AnalyticsReport:
        """Summarise activity in the last ``days`` days."""
        require_admin(actor, "view analytics")
        since = self.clock() - timedelta(days=days)

        published = self.store.posts.query(lambda p: p.status == PostStatus.PUBLISHED)
        category_names = {c.id: c.name for c in self.store.categories.query()}

        by_category = Counter(category_names.get(p.category_id, UNCATEGORIZED) for p in published)
        by_month = Counter(p.created_at.strftime("%Y-%m") for p in published)

        report = AnalyticsReport(
            days=days,
            posts_created=self.store.posts.count(lambda p: p.created_at >= since),
            comments_created=self.store.comments.count(lambda c: c.created_at >= since),
            users_registered=self.store.users.count(lambda u: u.created_at >= since),
            posts_by_category=dict(
                sorted(by_category.items(), key=lambda item: (-item[1], item[0]))
            ),
            posts_by_month=dict(sorted(by_month.items(), reverse=True)),
        )
        logger.debug("Analytics for last %d day(s): %s", days, report)
        return report

    def recent_posts(self, actor: Actor, count: int = 5) -> list[Post]:
        require_admin(actor, "view recent posts")
        return self.store.posts.query(order_by=lambda p: p.created_at, descending=True, limit=count)

    def popular_posts(self, actor: Actor, count: int = 5) -> list[Post]:
        """Published posts with the most views."""
        require_admin(actor, "view popular posts")
        return self.store.posts.query(
            lambda p: p.status == PostStatus.PUBLISHED,
            order_by=lambda p: p.view_count,
            descending=True,
            limit=count,
        )

    def recent_comments(self, actor: Actor, count: int = 5) -> list[Comment]:
        require_admin(actor, "view recent comments")
        return self.store.comments.query(
            order_by=lambda c: c.created_at, descending=True, limit=count
        )
