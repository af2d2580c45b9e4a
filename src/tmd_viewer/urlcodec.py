"""Mapping between Query values and URL hash fragments.

Fragment grammar:
    #feeds?user_name=<enc>&keyword=<enc>&has_media_only=true&page=<1-based>&count=<int>

Every field is optional. The hash stores ``page`` 1-based while Query keeps it
0-based; this module is the only place that applies the offset. The REST call
sends the 0-based page (see ``api_params``).
"""

import re
from dataclasses import fields
from urllib.parse import parse_qsl, quote

from .models import Query

FEEDS_VIEW = "feeds"
SETTINGS_VIEW = "settings"
DEFAULT_HASH = "#feeds"

_FEEDS_RE = re.compile(r"^#?feeds\??")
_SETTINGS_RE = re.compile(r"^#?settings\??")
_INT_RE = re.compile(r"^\s*([+-]?\d+)")

# Schema order, not alphabetical
FIELD_ORDER = tuple(f.name for f in fields(Query))


def _encode_component(value: str) -> str:
    """Percent-encode like JavaScript's encodeURIComponent."""
    return quote(value, safe="!~*'()")


def _wire_value(value) -> str:
    if value is True:
        return "true"
    return str(value)


def _pairs(query: Query, one_based_page: bool) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    for name in FIELD_ORDER:
        value = getattr(query, name)
        if value is None:
            continue
        if name == "page" and one_based_page:
            value = value + 1
        pairs.append((name, _wire_value(value)))
    return pairs


def encode_query(query: Query) -> str:
    """Canonical hash query string; defined fields only, page 1-based."""
    return "&".join(
        f"{_encode_component(k)}={_encode_component(v)}"
        for k, v in _pairs(query, one_based_page=True)
    )


def api_params(query: Query) -> list[tuple[str, str]]:
    """Ordered parameters for ``GET /a/feeds`` (page 0-based)."""
    return _pairs(query, one_based_page=False)


def feeds_hash(query: Query) -> str:
    return f"{FEEDS_VIEW}?{encode_query(query)}"


def _parse_int(value: str | None) -> int | None:
    """Leading-integer parse, the way parseInt reads "3abc" as 3."""
    if value is None:
        return None
    match = _INT_RE.match(value)
    return int(match.group(1)) if match else None


def parse_page(value: str | None) -> int:
    """1-based page text to a 0-based page; junk and values below 1 mean page 1."""
    page = _parse_int(value)
    return max(1, page if page is not None else 1) - 1


def decode_fragment(fragment: str) -> Query:
    """Decode ``#feeds?...``, ``feeds?...`` or a bare query string.

    Malformed values fall back to defaults instead of raising.
    """
    match = _FEEDS_RE.match(fragment)
    if match:
        fragment = fragment[match.end():]
    else:
        fragment = fragment.lstrip("#").lstrip("?")

    # Later duplicates win
    params = dict(parse_qsl(fragment, keep_blank_values=True))

    count = _parse_int(params.get("count"))
    if count is not None and count <= 0:
        count = None

    return Query(
        user_name=params.get("user_name") or None,
        keyword=params.get("keyword") or None,
        has_media_only=True if params.get("has_media_only") == "true" else None,
        since=params.get("since") or None,
        until=params.get("until") or None,
        page=parse_page(params.get("page")),
        count=count,
    )


def route_for(hash_value: str) -> str | None:
    """Return the view a hash routes to, or None when it must redirect."""
    if _SETTINGS_RE.match(hash_value):
        return SETTINGS_VIEW
    if _FEEDS_RE.match(hash_value):
        return FEEDS_VIEW
    return None
