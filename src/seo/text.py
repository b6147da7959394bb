"""Text derivations for SEO: excerpts, meta descriptions, keywords,
structured data, and a rule-based content checklist.

All functions are pure; none of them touch the store.
"""

from __future__ import annotations

import html
import json
import re
from collections import Counter
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from inkwell.config import SiteConfig
from inkwell.content.models import Post
from inkwell.seo.sitemap import canonical_url

ELLIPSIS = "..."

_TAG_RE = re.compile(r"<[^>]+>")
_WHITESPACE_RE = re.compile(r"\s+")
_WORD_RE = re.compile(r"\w+")
_IMG_RE = re.compile(r"<img\b", re.IGNORECASE)
_HEADING_RE = re.compile(r"<h[1-6]\b", re.IGNORECASE)

TITLE_RANGE = (30, 60)
META_DESCRIPTION_RANGE = (120, 160)
MIN_CONTENT_LENGTH = 300

RECOMMEND_TITLE = "Title should be between 30 and 60 characters"
RECOMMEND_META = "Meta description should be between 120 and 160 characters"
RECOMMEND_LENGTH = "Content should be at least 300 characters long"
RECOMMEND_IMAGES = "Consider adding images to improve engagement"
RECOMMEND_HEADINGS = "Use proper heading hierarchy (H1, H2, etc.)"


class SeoAnalysis(BaseModel):
    """Checklist result for a single post, in fixed check order."""

    post_id: int | None = None
    recommendations: list[str] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.recommendations


def strip_tags(content: str) -> str:
    """Remove markup, decode entities, and collapse whitespace."""
    if not content:
        return ""
    text = _TAG_RE.sub(" ", content)
    text = html.unescape(text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def excerpt(content: str, max_length: int = 300) -> str:
    """Plain-text excerpt of at most ``max_length`` characters.

    Truncated text is cut at the last whitespace that leaves room for the
    ellipsis, or hard-cut when there is none.
    """
    text = strip_tags(content)
    if len(text) <= max_length:
        return text
    budget = max_length - len(ELLIPSIS)
    if budget <= 0:
        return text[:max_length]
    cut = text.rfind(" ", 0, budget + 1)
    if cut > 0:
        return text[:cut].rstrip() + ELLIPSIS
    return text[:budget] + ELLIPSIS


def meta_description(content: str, max_length: int = 160) -> str:
    return excerpt(content, max_length)


def keywords(content: str, limit: int = 10) -> list[str]:
    """Most frequent words longer than three characters.

    Ties keep first-occurrence order.
    """
    words = [w.casefold() for w in _WORD_RE.findall(strip_tags(content)) if len(w) > 3]
    return [word for word, _ in Counter(words).most_common(limit)]


def _iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


def structured_data(post: Post, *, author_name: str, site: SiteConfig) -> str:
    """Serialize a schema.org ``BlogPosting`` payload for ``post``.

    Null timestamps and an empty image are omitted rather than emitted
    as nulls.
    """
    payload: dict[str, Any] = {
        "@context": "https://schema.org",
        "@type": "BlogPosting",
        "mainEntityOfPage": {
            "@type": "WebPage",
            "@id": canonical_url(site, post.slug),
        },
        "headline": post.title,
        "description": post.meta_description or post.excerpt,
        "author": {"@type": "Person", "name": author_name},
        "publisher": {
            "@type": "Organization",
            "name": site.site_name,
            "logo": {"@type": "ImageObject", "url": site.logo_url},
        },
    }
    if post.featured_image_url:
        payload["image"] = post.featured_image_url
    published = _iso(post.published_at)
    if published is not None:
        payload["datePublished"] = published
    modified = _iso(post.updated_at)
    if modified is not None:
        payload["dateModified"] = modified
    return json.dumps(payload, ensure_ascii=False)


def analyze(post: Post) -> SeoAnalysis:
    """Run the SEO checklist over a post."""
    recommendations: list[str] = []

    if not TITLE_RANGE[0] <= len(post.title) <= TITLE_RANGE[1]:
        recommendations.append(RECOMMEND_TITLE)

    meta = post.meta_description
    if not meta or not META_DESCRIPTION_RANGE[0] <= len(meta) <= META_DESCRIPTION_RANGE[1]:
        recommendations.append(RECOMMEND_META)

    if len(strip_tags(post.content)) < MIN_CONTENT_LENGTH:
        recommendations.append(RECOMMEND_LENGTH)

    if not _IMG_RE.search(post.content):
        recommendations.append(RECOMMEND_IMAGES)

    if not _HEADING_RE.search(post.content):
        recommendations.append(RECOMMEND_HEADINGS)

    return SeoAnalysis(post_id=post.id, recommendations=recommendations)
