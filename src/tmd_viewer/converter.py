"""Convert ViewRecord objects to CSV format."""

import csv
import io
from typing import TextIO

from .models import ViewRecord

CSV_COLUMNS = [
    "feed_id",
    "user_name",
    "contents",
    "date",
    "twitter_url",
    "is_retweet",
    "retweeted_by",
    "retweeted_at",
    "retweet_of",
    "is_reply",
    "media_urls",
    "media_variants",
]


def views_to_csv(
    views: tuple[ViewRecord, ...] | list[ViewRecord],
    output: TextIO | None = None,
    base_url: str = "",
) -> str:
    """Convert view-records to CSV format.

    Args:
        views: Records to convert, in display order.
        output: Optional file-like object to write to. If None, returns CSV as string.
        base_url: Prefix for media file URLs.

    Returns:
        CSV content as a string (also written to output if provided).
    """
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=CSV_COLUMNS, quoting=csv.QUOTE_MINIMAL)
    writer.writeheader()

    for v in views:
        writer.writerow(
            {
                "feed_id": v.feed_id,
                "user_name": v.user_name,
                "contents": v.contents,
                "date": v.feed_at.isoformat(),
                "twitter_url": v.twitter_url,
                "is_retweet": "true" if v.is_retweet else "false",
                "retweeted_by": v.retweeted_by or "",
                "retweeted_at": v.retweeted_at.isoformat() if v.retweeted_at else "",
                "retweet_of": v.retweet_of or "",
                "is_reply": "true" if v.is_reply else "false",
                "media_urls": "|".join(base_url + m.file_url for m in v.media),
                "media_variants": "|".join(m.variant.value for m in v.media),
            }
        )

    result = buf.getvalue()
    if output is not None:
        output.write(result)
    return result
