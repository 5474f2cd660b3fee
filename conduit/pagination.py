"""
Offset/limit normalisation shared by the article list and feed.

Bad values are never rejected: anything that is not a usable number falls
back to the default, and oversized limits are clamped.
"""
import re

from conduit.config import settings

# Plain optionally-signed decimal digits; no whitespace, underscores or exponents.
_INTEGER_RE = re.compile(r"[+-]?[0-9]+")

# Values must fit a signed 64-bit LIMIT/OFFSET.
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def _as_int(value) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and _INTEGER_RE.fullmatch(value):
        number = int(value)
    else:
        return None
    if not _INT64_MIN <= number <= _INT64_MAX:
        return None
    return number


def normalize_limit(value) -> int:
    """
    ``> MAX_PAGE_SIZE`` clamps to ``MAX_PAGE_SIZE``; ``< 1``, missing,
    non-numeric or out of 64-bit range falls back to ``DEFAULT_PAGE_SIZE``.
    """
    limit = _as_int(value)
    if limit is None or limit < 1:
        return settings.DEFAULT_PAGE_SIZE
    return min(limit, settings.MAX_PAGE_SIZE)


def normalize_offset(value) -> int:
    offset = _as_int(value)
    if offset is None or offset < 0:
        return 0
    return offset
