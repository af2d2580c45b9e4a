"""Turn FeedRecords into rendering-ready ViewRecords."""

from .models import FeedRecord, MediaRef, MediaType, MediaView, MediaVariant, ViewRecord

TWITTER_URL = "https://twitter.com"
MEDIA_FILE_PATH = "/a/media/file/{feed_id}/{media_id}"
MEDIA_PREVIEW_PATH = "/a/media/preview/{feed_id}/{media_id}"


def profile_url(user_name: str) -> str:
    """Twitter profile URL for a stored user name ("@handle")."""
    return f"{TWITTER_URL}/{user_name.removeprefix('@')}"


def media_variant(media: MediaRef) -> MediaVariant:
    # Unknown media types fall back to the video placeholder
    if media.media_type == MediaType.IMAGE.value:
        if media.deleted_at is not None:
            return MediaVariant.DELETED_PLACEHOLDER
        return MediaVariant.IMAGE_THUMB
    return MediaVariant.VIDEO_THUMB


def classify_media(media: MediaRef) -> MediaView:
    ids = {"feed_id": media.feed_id, "media_id": media.media_id}
    file_url = MEDIA_FILE_PATH.format(**ids)
    preview_url = MEDIA_PREVIEW_PATH.format(**ids)

    preview_src: str | None = None
    if media.deleted_at is None:
        if media.thumbnail:
            preview_src = f"data:image/jpeg;base64,{media.thumbnail}"
        else:
            preview_src = preview_url

    return MediaView(
        feed_id=media.feed_id,
        media_id=media.media_id,
        variant=media_variant(media),
        file_url=file_url,
        preview_url=preview_url,
        preview_src=preview_src,
    )


def classify(record: FeedRecord) -> ViewRecord:
    """Pick the display variant of a record.

    A retweet wrapper shows the retweeted post's author, content and media,
    with the wrapper supplying who retweeted it and when. A wrapper whose
    original is missing from the archive stays a plain record but keeps the
    original author as ``retweet_of``.
    """
    is_retweet = record.retweet is not None
    effective = record.retweet if is_retweet else record
    retweet_of = None if is_retweet else record.retweet_user_name

    media = tuple(classify_media(m) for m in effective.media)

    return ViewRecord(
        feed_id=effective.feed_id,
        user_name=effective.user_name,
        author_url=profile_url(effective.user_name),
        feed_at=effective.feed_at,
        twitter_url=effective.twitter_url,
        contents=effective.contents,
        is_retweet=is_retweet,
        is_reply=effective.contents.startswith("@"),
        has_media=len(media) > 0,
        media=media,
        retweeted_by=record.user_name if is_retweet else None,
        retweeted_by_url=profile_url(record.user_name) if is_retweet else None,
        retweeted_at=record.feed_at if is_retweet else None,
        retweet_of=retweet_of,
        retweet_of_url=profile_url(retweet_of) if retweet_of else None,
    )
