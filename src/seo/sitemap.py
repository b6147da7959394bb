"""Sitemap XML, robots.txt, and canonical URLs.

Only posts that pass the public visibility rule are listed, so scheduled
posts stay out of the sitemap until their publication time.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Iterable
from datetime import datetime

from inkwell.config import SiteConfig
from inkwell.content.models import Post

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"


def canonical_url(site: SiteConfig, slug: str) -> str:
    return f"{site.root}/blog/{slug}"


def _add_url(
    urlset: ET.Element,
    loc: str,
    changefreq: str,
    priority: str,
    lastmod: str | None = None,
) -> None:
    url = ET.SubElement(urlset, "url")
    ET.SubElement(url, "loc").text = loc
    if lastmod is not None:
        ET.SubElement(url, "lastmod").text = lastmod
    ET.SubElement(url, "changefreq").text = changefreq
    ET.SubElement(url, "priority").text = priority


def build_sitemap(posts: Iterable[Post], site: SiteConfig, now: datetime) -> str:
    """Render a sitemap with the homepage and every visible post.

    Posts are listed in id order so the output is stable for a given store.
    """
    urlset = ET.Element("urlset", xmlns=SITEMAP_NS)
    _add_url(urlset, site.root, "daily", "1.0")

    visible = sorted((p for p in posts if p.is_visible(now)), key=lambda p: p.id or 0)
    for post in visible:
        modified = post.updated_at or post.published_at or post.created_at
        _add_url(
            urlset,
            canonical_url(site, post.slug),
            "weekly",
            "0.8",
            lastmod=modified.date().isoformat(),
        )

    ET.indent(urlset, space="  ")
    body = ET.tostring(urlset, encoding="unicode")
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + body + "\n"


def build_robots_txt(site: SiteConfig) -> str:
    return "\n".join(
        [
            "User-agent: *",
            "Allow: /",
            f"Sitemap: {site.root}/sitemap.xml",
            "",
        ]
    )
