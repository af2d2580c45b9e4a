"""Parse ``/a/feeds`` JSON responses into FeedRecord objects.

The server emits two record shapes:
    plain post      feed_id, feed_at, user_name, twitter_url, contents, media?
    retweet wrapper retweet_at, user_name, retweet_id, retweet_user_name, retweet?

Identifiers are decimal strings and timestamps are Unix epoch seconds.
``retweet`` is missing when the original post is not in the archive.
"""

import logging
from datetime import datetime, timezone

from .errors import DecodeError
from .models import FeedRecord, MediaRef

logger = logging.getLogger(__name__)


def parse_feeds_response(data: object) -> list[FeedRecord]:
    """Extract records from a decoded response body.

    A missing ``feeds`` field means no results. A body that is not an object,
    or a ``feeds`` value that is not a list, raises DecodeError.
    """
    if not isinstance(data, dict):
        raise DecodeError(f"Expected a JSON object, got {type(data).__name__}")
    feeds = data.get("feeds")
    if feeds is None:
        return []
    if not isinstance(feeds, list):
        raise DecodeError(f"Expected 'feeds' to be a list, got {type(feeds).__name__}")
    logger.debug("Server query echo: %s", data.get("query"))
    return parse_feeds(feeds)


def parse_feeds(raw_feeds: list[dict]) -> list[FeedRecord]:
    """Parse raw feed dicts, skipping the ones that cannot be read."""
    records = []
    for entry in raw_feeds:
        try:
            records.append(_parse_single_feed(entry))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            entry_id = entry.get("feed_id", entry.get("retweet_id", "?")) if isinstance(entry, dict) else "?"
            logger.warning("Skipping malformed feed %s: %s", entry_id, e)
    return records


def _timestamp(value: object) -> datetime:
    if isinstance(value, bool):
        raise TypeError(f"Invalid timestamp: {value!r}")
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (OverflowError, OSError) as e:
        raise ValueError(f"Timestamp out of range: {value!r}") from e


def _optional_timestamp(value: object) -> datetime | None:
    return None if value is None else _timestamp(value)


def _optional_str(value: object) -> str | None:
    return None if value is None else str(value)


def _text(entry: dict, key: str, required: bool = False) -> str | None:
    """A text field; missing or null is None unless ``required``."""
    value = entry[key] if required else entry.get(key)
    if value is None and not required:
        return None
    if not isinstance(value, str):
        raise TypeError(f"'{key}' must be a string, got {type(value).__name__}")
    return value


def _parse_single_feed(entry: dict) -> FeedRecord:
    if "retweet_at" in entry:
        inner = entry.get("retweet")
        return FeedRecord(
            feed_id=str(entry["retweet_id"]),
            user_name=_text(entry, "user_name", required=True),
            feed_at=_timestamp(entry["retweet_at"]),
            retweet=_parse_single_feed(inner) if inner else None,
            retweet_user_name=_text(entry, "retweet_user_name"),
        )

    return FeedRecord(
        feed_id=str(entry["feed_id"]),
        user_name=_text(entry, "user_name", required=True),
        feed_at=_timestamp(entry["feed_at"]),
        twitter_url=_text(entry, "twitter_url") or "",
        contents=_text(entry, "contents") or "",
        reply_to_feed_id=_optional_str(entry.get("reply_to_feed_id")),
        reply_to_user_name=_text(entry, "reply_to_user_name"),
        media=[_parse_media(m) for m in entry.get("media") or []],
    )


def _parse_media(raw: dict) -> MediaRef:
    return MediaRef(
        feed_id=str(raw["feed_id"]),
        media_id=str(raw["media_id"]),
        media_type=raw.get("media_type", ""),
        thumbnail=raw.get("thumbnail") or None,
        deleted_at=_optional_timestamp(raw.get("deleted_at")),
    )
