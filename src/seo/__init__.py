"""SEO derivations — text artifacts, structured data, and sitemaps."""

from inkwell.seo.sitemap import build_robots_txt, build_sitemap, canonical_url
from inkwell.seo.text import (
    SeoAnalysis,
    analyze,
    excerpt,
    keywords,
    meta_description,
    strip_tags,
    structured_data,
)

__all__ = [
    "SeoAnalysis",
    "analyze",
    "build_robots_txt",
    "build_sitemap",
    "canonical_url",
    "excerpt",
    "keywords",
    "meta_description",
    "strip_tags",
    "structured_data",
]
