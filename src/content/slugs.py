"""URL slug derivation.

``generate_slug`` is a pure text transform.  ``unique_slug`` adds the
collision policy: numeric suffixes (``-2``, ``-3``, ...) up to a bounded
number of attempts, then ConflictError.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Callable

from inkwell.content.models import SLUG_MAX_LENGTH
from inkwell.shared.errors import ConflictError

DEFAULT_MAX_ATTEMPTS = 20

_WHITESPACE_RE = re.compile(r"\s+")
_INVALID_RE = re.compile(r"[^a-z0-9-]")
_HYPHENS_RE = re.compile(r"-{2,}")


def generate_slug(text: str) -> str:
    """Turn a title or name into a lowercase, hyphenated, ASCII slug.

    >>> generate_slug("Héllo, World!")
    'hello-world'
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFKD", text)
    slug = "".join(c for c in decomposed if not unicodedata.combining(c))
    slug = slug.lower()
    slug = _WHITESPACE_RE.sub("-", slug)
    slug = slug.replace("&", "and")
    slug = _INVALID_RE.sub("", slug)
    slug = _HYPHENS_RE.sub("-", slug)
    return slug.strip("-")


def unique_slug(
    text: str,
    is_taken: Callable[[str], bool],
    *,
    fallback: str = "post",
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> str:
    """Derive a slug from ``text`` that ``is_taken`` reports as free.

    Args:
        text: Title or name to slugify.
        is_taken: Predicate answering whether a candidate slug is in use.
        fallback: Base used when ``text`` has no slug-able characters.
        max_attempts: Total candidates to try, the bare base included.

    Raises:
        ConflictError: every candidate was taken.
    """
    base = generate_slug(text)[:SLUG_MAX_LENGTH].strip("-") or fallback
    if not is_taken(base):
        return base
    for n in range(2, max_attempts + 1):
        suffix = f"-{n}"
        candidate = base[: SLUG_MAX_LENGTH - len(suffix)].rstrip("-") + suffix
        if not is_taken(candidate):
            return candidate
    raise ConflictError(f"no free slug for {base!r} after {max_attempts} attempts")
