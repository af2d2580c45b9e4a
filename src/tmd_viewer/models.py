"""Data models for the feed browsing session."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


@dataclass(frozen=True)
class Query:
    """Filter and pagination intent. ``page`` is 0-based."""

    user_name: str | None = None
    keyword: str | None = None
    has_media_only: bool | None = None
    since: str | None = None  # passed through to the server as-is
    until: str | None = None
    page: int = 0
    count: int | None = None  # page size; server default when absent

    def __post_init__(self):
        # Absent means None, never "" or False
        for name in ("user_name", "keyword", "since", "until"):
            if getattr(self, name) == "":
                object.__setattr__(self, name, None)
        if not self.has_media_only:
            object.__setattr__(self, "has_media_only", None)
        if self.page < 0:
            raise ValueError(f"page must be >= 0, got {self.page}")
        if self.count is not None and self.count <= 0:
            raise ValueError(f"count must be > 0, got {self.count}")


class MediaType(str, Enum):
    IMAGE = "Image"
    VIDEO = "Video"


@dataclass
class MediaRef:
    feed_id: str
    media_id: str
    media_type: str  # "Image", "Video"; anything else is kept verbatim
    thumbnail: str | None = None  # base64 text
    deleted_at: datetime | None = None


@dataclass
class FeedRecord:
    feed_id: str
    user_name: str  # with leading "@"
    feed_at: datetime
    twitter_url: str = ""
    contents: str = ""
    reply_to_feed_id: str | None = None
    reply_to_user_name: str | None = None
    retweet: "FeedRecord | None" = None
    retweet_user_name: str | None = None  # author of the retweeted post
    media: list[MediaRef] = field(default_factory=list)


class MediaVariant(str, Enum):
    IMAGE_THUMB = "image"
    VIDEO_THUMB = "video"
    DELETED_PLACEHOLDER = "deleted"


@dataclass(frozen=True)
class MediaView:
    feed_id: str
    media_id: str
    variant: MediaVariant
    file_url: str
    preview_url: str
    preview_src: str | None  # None when the media is deleted


@dataclass(frozen=True)
class ViewRecord:
    """Rendering-ready form of a FeedRecord."""

    feed_id: str
    user_name: str
    author_url: str
    feed_at: datetime
    twitter_url: str
    contents: str
    is_retweet: bool
    is_reply: bool
    has_media: bool
    media: tuple[MediaView, ...] = ()
    retweeted_by: str | None = None
    retweeted_by_url: str | None = None
    retweeted_at: datetime | None = None
    # Author of a retweeted post that is not in the archive
    retweet_of: str | None = None
    retweet_of_url: str | None = None
