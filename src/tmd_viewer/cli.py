"""CLI interface for tmd-viewer.

Commands:
    setup         - Configure the archive server URL
    feeds         - Fetch one page of feeds
    browse        - Interactive feed browsing session
    media         - Download a media file or its preview
    status        - Show config and server state
    set-data-dir  - Point the server at an archive directory
    scan          - Scan the archive directory
    thumbnails    - Generate media thumbnails
    clean         - Delete everything the server has indexed
"""

import asyncio
import sys
from dataclasses import replace
from pathlib import Path

import click

from .config import (
    CONFIG_FILE,
    OUTPUT_FORMATS,
    AppConfig,
    config_exists,
    load_config,
    save_config,
)
from .errors import FetchError
from .logging_config import setup_logging
from .urlcodec import DEFAULT_HASH


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--config", type=click.Path(), default=None, help="Config file path")
@click.pass_context
def main(ctx, verbose, config):
    """tmd-viewer — Browse an archive of captured tweets and media."""
    setup_logging(debug=verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config) if config else CONFIG_FILE


def _load(ctx) -> AppConfig:
    try:
        return load_config(ctx.obj["config_path"])
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _run(coro):
    """Run a client coroutine, turning fetch errors into a clean exit."""
    try:
        return asyncio.run(coro)
    except FetchError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _client(config: AppConfig):
    from .client import ArchiveClient

    return ArchiveClient(config.base_url, timeout=config.timeout)


@main.command()
@click.pass_context
def setup(ctx):
    """Configure the archive server connection."""
    config_path = ctx.obj["config_path"]
    current = _load(ctx)

    click.echo("tmd-viewer — Setup")
    click.echo("=" * 40)
    click.echo()

    base_url = click.prompt("Server URL", default=current.base_url)
    page_size = click.prompt(
        "Feeds per page (0 = server default)",
        default=current.page_size or 0,
        type=click.IntRange(min=0),
    )
    output_format = click.prompt(
        "Output format",
        default=current.output_format,
        type=click.Choice(OUTPUT_FORMATS),
    )

    config = AppConfig(
        base_url=base_url,
        timeout=current.timeout,
        page_size=page_size or None,
        output_format=output_format,
    )
    save_config(config, config_path)
    click.echo(f"\nConfig saved to {config_path}")
    click.echo("Run 'tmd-viewer feeds' to list the archive.")


def _render(views, output_format: str, base_url: str) -> str:
    from .converter import views_to_csv
    from .markdown import render_feeds, render_feeds_text

    if output_format == "csv":
        return views_to_csv(views, base_url=base_url)
    if output_format == "text":
        return render_feeds_text(views)
    return render_feeds(views, base_url=base_url)


async def _fetch_page(config: AppConfig, hash_value: str, edits: list, count: int | None):
    """Apply the hash, then the form edits, then run one fetch.

    Returns (views, canonical hash, session state).
    """
    from .pipeline import FetchPipeline
    from .reconciler import FetchFailed, FormField, Reconciler
    from .urlcodec import decode_fragment, feeds_hash

    reconciler = Reconciler()
    query = decode_fragment(hash_value)
    page_size = count or query.count or config.page_size
    if page_size != query.count:
        query = replace(query, count=page_size)
    reconciler.apply_from_url(feeds_hash(query))

    # Filters before the page: editing a filter resets the page
    for source, value in sorted(edits, key=lambda e: e[0] == FormField.PAGE):
        inputs = replace(reconciler.form_view(), **{source.value: value})
        reconciler.apply_from_form(source, inputs)

    async with _client(config) as client:
        ticket = reconciler.begin_fetch()
        outcome = await FetchPipeline(client).run(ticket)

    if isinstance(outcome, FetchFailed):
        reconciler.publish_failure(ticket)
        raise outcome.error

    canonical = reconciler.publish(ticket, outcome.views)
    return outcome.views, canonical, reconciler.state


@main.command()
@click.argument("hash_value", metavar="[HASH]", required=False, default=DEFAULT_HASH)
@click.option("-u", "--user", "user_name", default=None, help="Only feeds by this user")
@click.option("-k", "--keyword", default=None, help="Only feeds containing this text")
@click.option("--media-only", is_flag=True, default=False, help="Only feeds with media")
@click.option("--page", type=click.IntRange(min=1), default=None, help="Page number (1-based)")
@click.option("-n", "--count", type=click.IntRange(min=1), default=None, help="Feeds per page")
@click.option(
    "--format", "output_format", type=click.Choice(OUTPUT_FORMATS), default=None,
    help="Output format",
)
@click.option("-o", "--output", type=click.Path(), default=None, help="Output file")
@click.pass_context
def feeds(ctx, hash_value, user_name, keyword, media_only, page, count, output_format, output):
    """Fetch one page of feeds.

    HASH is a viewer location such as '#feeds?user_name=%40alice&page=2'.
    Filter options are applied on top of it.
    """
    from .reconciler import FormField

    config = _load(ctx)
    output_format = output_format or config.output_format

    edits = []
    if user_name is not None:
        edits.append((FormField.USER_NAME, user_name))
    if keyword is not None:
        edits.append((FormField.KEYWORD, keyword))
    if media_only:
        edits.append((FormField.HAS_MEDIA_ONLY, True))
    if page is not None:
        edits.append((FormField.PAGE, str(page)))

    views, canonical, state = _run(_fetch_page(config, hash_value, edits, count))

    rendered = _render(views, output_format, config.base_url)
    if output:
        Path(output).write_text(rendered, encoding="utf-8")
        click.echo(f"Wrote {len(views)} feeds to {output}", err=True)
    else:
        click.echo(rendered, nl=False)

    click.echo(
        f"Page {state.query.page + 1}: {len(views)} feeds"
        f" (previous: {'yes' if state.has_previous else 'no'},"
        f" next: {'yes' if state.has_next else 'no'})",
        err=True,
    )
    click.echo(f"#{canonical}", err=True)


BROWSE_HELP = """Commands:
  n            next page
  p            previous page
  g PAGE       go to page
  u [NAME]     filter by user (empty to clear)
  k [WORD]     filter by keyword (empty to clear)
  m            toggle media-only
  b / f        back / forward
  s            settings view
  h            feeds view
  q            quit"""


async def _browse(config: AppConfig, hash_value: str) -> None:
    from .browser import FeedBrowser, History
    from .markdown import render_feeds_text
    from .pipeline import FetchPipeline
    from .reconciler import FormField
    from .urlcodec import FEEDS_VIEW, SETTINGS_VIEW

    def show(views):
        click.echo(render_feeds_text(views), nl=False)

    async with _client(config) as client:
        browser = FeedBrowser(FetchPipeline(client), History(hash_value), renderer=show)
        await browser.load()

        while True:
            if browser.last_error is not None:
                click.echo(f"Error: {browser.last_error}", err=True)
                browser.last_error = None
            if browser.view == SETTINGS_VIEW:
                click.echo("[settings] use the scan/thumbnails/clean commands; 'h' returns to feeds")
            else:
                state = browser.state
                click.echo(
                    f"[page {state.query.page + 1}"
                    f"{' <' if state.has_previous else ''}"
                    f"{' >' if state.has_next else ''}] {browser.history.hash}"
                )

            try:
                line = click.prompt("feeds", default="", show_default=False)
            except click.Abort:
                break
            command, _, arg = line.strip().partition(" ")

            if command == "q":
                break
            elif command == "n":
                await browser.next_page()
            elif command == "p":
                await browser.previous_page()
            elif command == "g":
                await browser.edit(FormField.PAGE, arg)
            elif command == "u":
                await browser.edit(FormField.USER_NAME, arg)
            elif command == "k":
                await browser.edit(FormField.KEYWORD, arg)
            elif command == "m":
                await browser.edit(FormField.HAS_MEDIA_ONLY, not browser.form.has_media_only)
            elif command == "b":
                await browser.back()
            elif command == "f":
                await browser.forward()
            elif command == "s":
                await browser.navigate(SETTINGS_VIEW)
            elif command == "h":
                await browser.navigate(FEEDS_VIEW)
            else:
                click.echo(BROWSE_HELP)


@main.command()
@click.argument("hash_value", metavar="[HASH]", required=False, default=DEFAULT_HASH)
@click.pass_context
def browse(ctx, hash_value):
    """Browse feeds interactively, starting at HASH."""
    config = _load(ctx)
    _run(_browse(config, hash_value))


@main.command()
@click.argument("feed_id")
@click.argument("media_id")
@click.option("--preview", is_flag=True, help="Download the thumbnail instead")
@click.option("-o", "--output", type=click.Path(), required=True, help="Output file")
@click.pass_context
def media(ctx, feed_id, media_id, preview, output):
    """Download a media file."""
    config = _load(ctx)

    async def download():
        async with _client(config) as client:
            if preview:
                return await client.media_preview(feed_id, media_id)
            return await client.media_file(feed_id, media_id)

    content = _run(download())
    Path(output).write_bytes(content)
    click.echo(f"Saved {len(content):,} bytes to {output}")


def _echo_server_state(state: dict) -> None:
    for key in (
        "data_dir",
        "bind_address",
        "time_offset",
        "is_scanning",
        "scanner_count",
        "scanner_count_limit",
    ):
        if key in state:
            click.echo(f"  {key}: {state[key]}")


@main.command()
@click.pass_context
def status(ctx):
    """Show config and server state."""
    config_path = ctx.obj["config_path"]
    has_config = config_exists(config_path)
    config = _load(ctx)

    click.echo("tmd-viewer — Status")
    click.echo("=" * 40)
    click.echo(f"Config: {'Found' if has_config else 'Not configured'} ({config_path})")
    click.echo(f"Server: {config.base_url}")

    async def fetch_state():
        async with _client(config) as client:
            return await client.state()

    try:
        state = asyncio.run(fetch_state())
    except FetchError as e:
        click.echo(f"Server state: unavailable ({e})")
        return

    click.echo("Server state:")
    _echo_server_state(state)


def _settings_action(ctx, name: str, label: str, *args) -> None:
    config = _load(ctx)

    async def action():
        async with _client(config) as client:
            return await getattr(client, name)(*args)

    click.echo(f"{label}...")
    state = _run(action())
    click.echo("Done.")
    if state:
        _echo_server_state(state)


@main.command("set-data-dir")
@click.argument("data_dir")
@click.pass_context
def set_data_dir(ctx, data_dir):
    """Point the server at the directory holding the archives."""
    _settings_action(ctx, "set_data_dir", f"Setting data directory to {data_dir}", data_dir)


@main.command()
@click.pass_context
def scan(ctx):
    """Scan the data directory for new archives."""
    _settings_action(ctx, "scan", "Scanning archives")


@main.command()
@click.pass_context
def thumbnails(ctx):
    """Generate thumbnails for media that lack one."""
    _settings_action(ctx, "generate_thumbnails", "Generating thumbnails")


@main.command()
@click.confirmation_option(prompt="Delete every indexed feed and media entry?")
@click.pass_context
def clean(ctx):
    """Delete everything the server has indexed."""
    _settings_action(ctx, "clean", "Cleaning database")
