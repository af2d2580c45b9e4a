"""Shared test fixtures."""

from datetime import datetime, timezone

import pytest

from tmd_viewer.models import FeedRecord, MediaRef


@pytest.fixture
def feeds_response() -> dict:
    """A /a/feeds response with a post, a retweet, a reply and an orphan retweet."""
    return {
        "query": {"page": 0, "count": 100},
        "feeds": [
            {
                "feed_id": "1001",
                "feed_at": 1700000000,
                "user_name": "@alice",
                "twitter_url": "https://twitter.com/alice/status/1001",
                "contents": "Holiday pictures\nday one",
                "media": [
                    {
                        "feed_id": "1001",
                        "media_id": "1",
                        "media_type": "Image",
                        "media_url": "https://pbs.twimg.com/media/a.jpg",
                        "file_path": "alice.zip",
                        "media_path": "media/a.jpg",
                        "thumbnail": "iVBORw0KGgo",
                    },
                    {
                        "feed_id": "1001",
                        "media_id": "2",
                        "media_type": "Image",
                        "media_url": "https://pbs.twimg.com/media/b.jpg",
                        "file_path": "alice.zip",
                        "media_path": "media/b.jpg",
                        "deleted_at": 1700000500,
                    },
                ],
            },
            {
                "retweet_at": 1699990000,
                "user_name": "@bob",
                "retweet_id": "2002",
                "retweet_user_name": "@carol",
                "retweet": {
                    "feed_id": "2002",
                    "feed_at": 1699900000,
                    "user_name": "@carol",
                    "twitter_url": "https://twitter.com/carol/status/2002",
                    "contents": "Original thought",
                    "media": [
                        {
                            "feed_id": "2002",
                            "media_id": "7",
                            "media_type": "Video",
                            "media_url": "https://video.twimg.com/v.mp4",
                            "file_path": "bob.zip",
                            "media_path": "media/v.mp4",
                        }
                    ],
                },
            },
            {
                "feed_id": "3003",
                "feed_at": 1699800000,
                "user_name": "@dave",
                "twitter_url": "https://twitter.com/dave/status/3003",
                "contents": "@alice agreed",
            },
            {
                "retweet_at": 1699700000,
                "user_name": "@erin",
                "retweet_id": "4004",
                "retweet_user_name": "@frank",
            },
        ],
    }


@pytest.fixture
def plain_record() -> FeedRecord:
    return FeedRecord(
        feed_id="1001",
        user_name="@alice",
        feed_at=datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc),
        twitter_url="https://twitter.com/alice/status/1001",
        contents="Holiday pictures",
        media=[
            MediaRef(feed_id="1001", media_id="1", media_type="Image", thumbnail="iVBORw0KGgo"),
            MediaRef(feed_id="1001", media_id="2", media_type="Image"),
        ],
    )


@pytest.fixture
def retweet_record() -> FeedRecord:
    inner = FeedRecord(
        feed_id="2002",
        user_name="@carol",
        feed_at=datetime(2023, 11, 13, 18, 26, 40, tzinfo=timezone.utc),
        twitter_url="https://twitter.com/carol/status/2002",
        contents="Original thought",
        media=[MediaRef(feed_id="2002", media_id="7", media_type="Video")],
    )
    return FeedRecord(
        feed_id="2002",
        user_name="@bob",
        feed_at=datetime(2023, 11, 14, 19, 26, 40, tzinfo=timezone.utc),
        retweet=inner,
        retweet_user_name="@carol",
    )


@pytest.fixture
def orphan_record() -> FeedRecord:
    """A retweet wrapper whose original post is not in the archive."""
    return FeedRecord(
        feed_id="4004",
        user_name="@erin",
        feed_at=datetime(2023, 11, 11, 11, 6, 40, tzinfo=timezone.utc),
        retweet_user_name="@frank",
    )
