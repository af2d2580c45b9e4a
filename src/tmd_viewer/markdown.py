"""Render view-records as markdown or plain text.

One entry per record, in server order (newest first), separated by ---.
Media links are made absolute with ``base_url`` when one is given.
"""

from .models import MediaVariant, ViewRecord

DATE_FORMAT = "%Y-%m-%d %H:%M UTC"
EMPTY_PAGE = "*No feeds found.*"

_VARIANT_LABELS = {
    MediaVariant.IMAGE_THUMB: "image",
    MediaVariant.VIDEO_THUMB: "video",
    MediaVariant.DELETED_PLACEHOLDER: "deleted",
}


def render_feeds(views: tuple[ViewRecord, ...] | list[ViewRecord], base_url: str = "") -> str:
    """Render a page of feeds."""
    if not views:
        return EMPTY_PAGE + "\n"

    lines: list[str] = []
    for view in views:
        lines.append(_render_single_feed(view, base_url))
        lines.append("")

    return "\n".join(lines)


def _render_single_feed(view: ViewRecord, base_url: str) -> str:
    lines: list[str] = []

    if view.is_retweet:
        lines.append(
            f"*Retweeted by [{view.retweeted_by}]({view.retweeted_by_url})"
            f" on {view.retweeted_at.strftime(DATE_FORMAT)}*"
        )
    elif view.retweet_of:
        lines.append(
            f"*Retweet of [{view.retweet_of}]({view.retweet_of_url}),"
            " original post not archived*"
        )

    header = f"### [{view.user_name}]({view.author_url})"
    if view.is_reply:
        header += " (reply)"
    lines.append(header)
    lines.append("")

    for text_line in view.contents.strip().split("\n"):
        lines.append(f"> {text_line}" if text_line else ">")
    lines.append("")

    if view.twitter_url:
        lines.append(f"- **Tweet:** [{view.twitter_url}]({view.twitter_url})")
    lines.append(f"- **Date:** {view.feed_at.strftime(DATE_FORMAT)}")
    lines.append(f"- **ID:** {view.feed_id}")

    if view.has_media:
        media_desc = ", ".join(
            f"[{_VARIANT_LABELS[m.variant]}]({base_url}{m.file_url})"
            if m.variant != MediaVariant.DELETED_PLACEHOLDER
            else "~~deleted~~"
            for m in view.media
        )
        lines.append(f"- **Media:** {media_desc}")

    lines.append("")
    lines.append("---")

    return "\n".join(lines)


def render_feeds_text(views: tuple[ViewRecord, ...] | list[ViewRecord]) -> str:
    """One line per feed: date, author, media count and the first line of text."""
    if not views:
        return "No feeds found.\n"

    lines = []
    for view in views:
        author = view.user_name
        if view.is_retweet:
            author = f"{view.retweeted_by} RT {view.user_name}"
        elif view.retweet_of:
            author = f"{view.user_name} RT {view.retweet_of} (not archived)"
        first_line = view.contents.strip().split("\n", 1)[0]
        if len(first_line) > 80:
            first_line = first_line[:77] + "..."
        media = f" [{len(view.media)} media]" if view.has_media else ""
        lines.append(
            f"{view.feed_at.strftime(DATE_FORMAT)}  {author}{media}  {first_line}"
        )
    return "\n".join(lines) + "\n"
