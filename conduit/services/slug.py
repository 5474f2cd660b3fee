"""
Slug generation for articles.

``slugify`` is a pure transform.  It keeps only ASCII letters, digits,
whitespace and hyphens, so non-Latin characters are dropped rather than
transliterated: "Xin chào" and "Xin cho" share the slug ``xin-cho``.
Uniqueness is handled separately by ``ensure_unique``.
"""
import inspect
import re
from typing import Awaitable, Callable, Union

FALLBACK_SLUG = "article"

_SLUG_STRIP_RE = re.compile(r"[^a-z0-9\s-]", re.ASCII)
_SLUG_SEPARATOR_RE = re.compile(r"[\s-]+", re.ASCII)

SlugExists = Callable[[str], Union[bool, Awaitable[bool]]]


def slugify(title: str) -> str:
    """Return a lowercase ``[a-z0-9-]`` slug for *title*, or ``"article"``."""
    slug = _SLUG_STRIP_RE.sub("", title.lower())
    slug = _SLUG_SEPARATOR_RE.sub("-", slug).strip("-")
    return slug or FALLBACK_SLUG


async def ensure_unique(base: str, exists: SlugExists) -> str:
    """
    Return the first of ``base``, ``base-1``, ``base-2``, ... for which
    *exists* is false.

    *exists* may be a plain function or a coroutine function and is called
    once per candidate.  Nothing stops another writer from claiming the
    returned slug before it is inserted; the unique constraint on
    ``articles.slug`` is the real guard and callers retry on violation.
    """
    candidate = base
    counter = 1
    while True:
        taken = exists(candidate)
        if inspect.isawaitable(taken):
            taken = await taken
        if not taken:
            return candidate
        candidate = f"{base}-{counter}"
        counter += 1
