"""Tests for SEO text derivations."""

import json
from datetime import UTC, datetime

from inkwell.config import SiteConfig
from inkwell.content.models import Post
from inkwell.seo.text import (
    RECOMMEND_HEADINGS,
    RECOMMEND_IMAGES,
    RECOMMEND_LENGTH,
    RECOMMEND_META,
    RECOMMEND_TITLE,
    analyze,
    excerpt,
    keywords,
    meta_description,
    strip_tags,
    structured_data,
)

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=UTC)
SITE = SiteConfig(base_url="https://blog.example.com/", site_name="Example", logo_url="https://blog.example.com/logo.png")


def _post(**kwargs: object) -> Post:
    fields: dict[str, object] = {
        "id": 3,
        "title": "Hello",
        "slug": "hello",
        "content": "<p>Body</p>",
        "author_id": 1,
        "created_at": NOW,
    }
    fields.update(kwargs)
    return Post(**fields)  # type: ignore[arg-type]


class TestStripTags:
    def test_removes_markup_and_entities(self):
        assert strip_tags("<p>Fish &amp; <b>chips</b></p>\n<p>today</p>") == "Fish & chips today"

    def test_empty(self):
        assert strip_tags("") == ""


class TestExcerpt:
    def test_short_text_unchanged(self):
        assert excerpt("<p>Short text</p>", 300) == "Short text"

    def test_long_unbroken_text(self):
        result = excerpt("<p>" + "a" * 400 + "</p>", 300)
        assert len(result) == 300
        assert result.endswith("...")
        assert "<" not in result

    def test_cuts_at_word_boundary(self):
        result = excerpt("one two three four five", 15)
        assert result == "one two..."
        assert len(result) <= 15

    def test_exact_length_not_truncated(self):
        assert excerpt("a" * 10, 10) == "a" * 10

    def test_meta_description_limit(self):
        result = meta_description("word " * 100, 160)
        assert len(result) <= 160
        assert result.endswith("...")


class TestKeywords:
    def test_most_frequent_long_words(self):
        content = "<p>Python python PYTHON async async code the and</p>"
        assert keywords(content, 2) == ["python", "async"]

    def test_ties_keep_first_occurrence(self):
        assert keywords("delta alpha delta alpha gamma", 3) == ["delta", "alpha", "gamma"]

    def test_short_words_ignored(self):
        assert keywords("a an the and but") == []


class TestStructuredData:
    def test_full_payload(self):
        post = _post(
            excerpt="An excerpt",
            featured_image_url="https://img/1.png",
            published_at=NOW,
            updated_at=NOW,
        )
        data = json.loads(structured_data(post, author_name="Ann Lee", site=SITE))

        assert data["@type"] == "BlogPosting"
        assert data["mainEntityOfPage"]["@id"] == "https://blog.example.com/blog/hello"
        assert data["headline"] == "Hello"
        assert data["description"] == "An excerpt"
        assert data["author"]["name"] == "Ann Lee"
        assert data["publisher"]["name"] == "Example"
        assert data["image"] == "https://img/1.png"
        assert data["datePublished"] == "2024-06-15T12:00:00Z"

    def test_meta_description_preferred(self):
        post = _post(excerpt="Excerpt", meta_description="Meta")
        data = json.loads(structured_data(post, author_name="A", site=SITE))
        assert data["description"] == "Meta"

    def test_missing_fields_omitted(self):
        data = json.loads(structured_data(_post(), author_name="A", site=SITE))
        assert "image" not in data
        assert "datePublished" not in data
        assert "dateModified" not in data


class TestAnalyze:
    def test_bare_post_gets_every_recommendation(self):
        result = analyze(_post())
        assert result.post_id == 3
        assert result.passed is False
        assert result.recommendations == [
            RECOMMEND_TITLE,
            RECOMMEND_META,
            RECOMMEND_LENGTH,
            RECOMMEND_IMAGES,
            RECOMMEND_HEADINGS,
        ]

    def test_well_formed_post_passes(self):
        post = _post(
            title="A Practical Guide to Python Packaging Today",
            meta_description="m" * 140,
            content="<h2>Intro</h2><img src='x.png'><p>" + "word " * 80 + "</p>",
        )
        result = analyze(post)
        assert result.recommendations == []
        assert result.passed is True
