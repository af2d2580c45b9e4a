"""Tests for the fetch pipeline and the browsing session driver."""

import asyncio
from datetime import datetime, timezone

import httpx
import pytest
import respx

from tmd_viewer.browser import FeedBrowser, History
from tmd_viewer.client import ArchiveClient
from tmd_viewer.errors import DecodeError, NetworkError
from tmd_viewer.models import FeedRecord, Query
from tmd_viewer.pipeline import FetchPipeline
from tmd_viewer.reconciler import FetchFailed, FetchSucceeded, FormField
from tmd_viewer.state import FetchTicket

BASE_URL = "http://archive.test"


def _record(feed_id: str, contents: str = "hello") -> FeedRecord:
    return FeedRecord(
        feed_id=feed_id,
        user_name="@alice",
        feed_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
        contents=contents,
    )


class FakeSource:
    """Returns canned pages, keyed by 0-based page number."""

    def __init__(self, pages=None, error=None):
        self.pages = pages or {}
        self.error = error
        self.calls: list[Query] = []

    async def fetch_feeds(self, query):
        self.calls.append(query)
        if self.error is not None:
            raise self.error
        return self.pages.get(query.page, [])


class GatedSource(FakeSource):
    """Holds each fetch until the test releases its page."""

    def __init__(self, pages):
        super().__init__(pages)
        self._gates: dict[int, asyncio.Event] = {}

    def _gate(self, page: int) -> asyncio.Event:
        return self._gates.setdefault(page, asyncio.Event())

    def release(self, page: int) -> None:
        self._gate(page).set()

    async def fetch_feeds(self, query):
        self.calls.append(query)
        await self._gate(query.page).wait()
        return self.pages.get(query.page, [])


def _browser(source, hash_value="", rendered=None):
    renderer = rendered.append if rendered is not None else None
    return FeedBrowser(FetchPipeline(source), History(hash_value), renderer=renderer)


class TestFetchPipeline:
    def test_success_is_classified(self, retweet_record):
        pipeline = FetchPipeline(FakeSource({0: [retweet_record]}))
        ticket = FetchTicket(Query())

        outcome = asyncio.run(pipeline.run(ticket))

        assert isinstance(outcome, FetchSucceeded)
        assert outcome.ticket is ticket
        assert outcome.views[0].is_retweet
        assert outcome.views[0].user_name == "@carol"

    def test_fetch_error_becomes_event(self):
        error = NetworkError("down")
        pipeline = FetchPipeline(FakeSource(error=error))

        outcome = asyncio.run(pipeline.run(FetchTicket(Query())))

        assert isinstance(outcome, FetchFailed)
        assert outcome.error is error

    def test_other_errors_propagate(self):
        pipeline = FetchPipeline(FakeSource(error=KeyError("bug")))
        with pytest.raises(KeyError):
            asyncio.run(pipeline.run(FetchTicket(Query())))


class TestHistory:
    def test_push_and_back_forward(self):
        history = History("#feeds")
        history.push("#settings")
        assert history.back() == "#feeds"
        assert history.back() is None
        assert history.forward() == "#settings"
        assert history.forward() is None

    def test_replace_keeps_length(self):
        history = History("#feeds")
        history.replace("feeds?page=2")
        assert history.entries == ["#feeds?page=2"]

    def test_push_drops_forward_entries(self):
        history = History("#a")
        history.push("#b")
        history.back()
        history.push("#c")
        assert history.entries == ["#a", "#c"]


class TestFeedBrowser:
    def test_load_fetches_and_publishes(self):
        rendered = []
        source = FakeSource({0: [_record("1"), _record("2")]})
        browser = _browser(source, rendered=rendered)

        asyncio.run(browser.load())

        assert source.calls == [Query()]
        assert browser.view == "feeds"
        assert browser.history.hash == "#feeds?page=1"
        assert [v.feed_id for v in rendered[0]] == ["1", "2"]
        assert browser.state.has_next
        assert not browser.state.has_previous

    def test_load_from_shared_hash(self):
        source = FakeSource()
        browser = _browser(source, "#feeds?user_name=%40bob&page=4")

        asyncio.run(browser.load())

        assert source.calls == [Query(user_name="@bob", page=3)]
        assert browser.state.has_previous
        assert not browser.state.has_next
        assert browser.form.page == "4"

    def test_unknown_hash_redirects_to_feeds(self):
        source = FakeSource()
        browser = _browser(source, "#bogus")

        asyncio.run(browser.load())

        assert browser.history.entries == ["#bogus", "#feeds?page=1"]
        assert len(source.calls) == 1

    def test_programmatic_updates_add_no_history(self):
        source = FakeSource({0: [_record("1")], 1: [_record("2")]})
        browser = _browser(source, "#feeds")

        async def scenario():
            await browser.load()
            await browser.next_page()
            await browser.next_page()

        asyncio.run(scenario())

        assert browser.history.entries == ["#feeds?page=3"]
        assert len(source.calls) == 3
        assert not browser.state.has_next
        assert browser.state.has_previous

    def test_previous_on_first_page_does_nothing(self):
        source = FakeSource({0: [_record("1")]})
        browser = _browser(source)

        async def scenario():
            await browser.load()
            await browser.previous_page()

        asyncio.run(scenario())
        assert len(source.calls) == 1

    def test_filter_edit_resets_page(self):
        source = FakeSource()
        browser = _browser(source, "#feeds?page=5")

        async def scenario():
            await browser.load()
            await browser.edit(FormField.KEYWORD, "cats")

        asyncio.run(scenario())

        assert source.calls[-1] == Query(keyword="cats")
        assert browser.history.hash == "#feeds?keyword=cats&page=1"

    def test_unchanged_edit_does_not_refetch(self):
        source = FakeSource()
        browser = _browser(source, "#feeds?keyword=cats")

        async def scenario():
            await browser.load()
            await browser.edit(FormField.KEYWORD, "cats")

        asyncio.run(scenario())
        assert len(source.calls) == 1

    def test_page_input_edit(self):
        source = FakeSource()
        browser = _browser(source, "#feeds?keyword=cats")

        async def scenario():
            await browser.load()
            await browser.edit(FormField.PAGE, "7")

        asyncio.run(scenario())
        assert source.calls[-1] == Query(keyword="cats", page=6)

    def test_settings_and_back(self):
        source = FakeSource({0: [_record("1")]})
        browser = _browser(source, "#feeds")

        async def scenario():
            await browser.load()
            await browser.navigate("settings")
            assert browser.view == "settings"
            assert len(source.calls) == 1
            assert await browser.back()

        asyncio.run(scenario())

        assert browser.view == "feeds"
        assert browser.history.entries == ["#feeds?page=1", "#settings"]
        assert len(source.calls) == 2

    def test_failure_leaves_flags_reset(self):
        source = FakeSource(error=NetworkError("down"))
        rendered = []
        browser = _browser(source, "#feeds?page=3", rendered=rendered)

        asyncio.run(browser.load())

        assert isinstance(browser.last_error, NetworkError)
        assert not browser.state.has_next
        assert not browser.state.has_previous
        assert rendered == []
        assert browser.history.hash == "#feeds?page=3"

    def test_stale_response_is_discarded(self):
        """Page 0 and page 1 in flight; page 1 resolves first."""
        source = GatedSource({0: [_record("a")], 1: [_record("b")]})
        rendered = []
        browser = _browser(source, "#feeds", rendered=rendered)

        async def scenario():
            task_a = asyncio.create_task(browser.load())
            await asyncio.sleep(0)
            task_b = asyncio.create_task(browser.next_page())
            await asyncio.sleep(0)
            assert [q.page for q in source.calls] == [0, 1]

            source.release(1)
            await task_b
            after_b = browser.state

            source.release(0)
            await task_a
            return after_b

        after_b = asyncio.run(scenario())

        assert browser.state == after_b
        assert browser.state.query.page == 1
        assert browser.state.has_next
        assert [[v.feed_id for v in views] for views in rendered] == [["b"]]
        assert browser.history.hash == "#feeds?page=2"


class TestAgainstServer:
    @respx.mock
    def test_browse_two_pages(self, feeds_response):
        route = respx.get(f"{BASE_URL}/a/feeds")
        route.side_effect = [
            httpx.Response(200, json=feeds_response),
            httpx.Response(200, json={"query": {"page": 1}, "feeds": []}),
        ]
        rendered = []

        async def scenario():
            async with ArchiveClient(BASE_URL) as client:
                browser = FeedBrowser(
                    FetchPipeline(client), History("#feeds?has_media_only=true"), rendered.append
                )
                await browser.load()
                first = browser.state
                await browser.next_page()
                return browser, first

        browser, first = asyncio.run(scenario())

        assert first.has_next
        assert not first.has_previous
        assert len(rendered[0]) == 4
        assert rendered[1] == ()
        assert not browser.state.has_next
        assert browser.state.has_previous
        assert browser.history.hash == "#feeds?has_media_only=true&page=2"
        assert route.calls[1].request.url.params["page"] == "1"

    def _load(self, hash_value="#feeds", rendered=None):
        async def scenario():
            async with ArchiveClient(BASE_URL) as client:
                renderer = rendered.append if rendered is not None else None
                browser = FeedBrowser(FetchPipeline(client), History(hash_value), renderer)
                await browser.load()
                return browser

        return asyncio.run(scenario())

    @respx.mock
    def test_wrongly_typed_entries_do_not_end_session(self):
        good = {"feed_id": "5", "feed_at": 1, "user_name": "@ok", "contents": "fine"}
        respx.get(f"{BASE_URL}/a/feeds").mock(
            return_value=httpx.Response(
                200,
                json={
                    "feeds": [
                        {"feed_id": "1", "feed_at": 1, "user_name": None, "contents": "a"},
                        {"feed_id": "2", "feed_at": 1, "user_name": "@b", "contents": 5},
                        {"feed_id": "3", "feed_at": 10**20, "user_name": "@c"},
                        good,
                    ]
                },
            )
        )
        rendered = []

        browser = self._load(rendered=rendered)

        assert browser.last_error is None
        assert [[v.feed_id for v in views] for views in rendered] == [["5"]]
        assert browser.state.has_next

    @pytest.mark.parametrize(
        "error, expected",
        [
            (httpx.TooManyRedirects("loop"), NetworkError),
            (httpx.DecodingError("bad gzip"), DecodeError),
        ],
    )
    @respx.mock
    def test_request_failures_are_reported(self, error, expected):
        respx.get(f"{BASE_URL}/a/feeds").mock(side_effect=error)

        browser = self._load("#feeds?page=2")

        assert isinstance(browser.last_error, expected)
        assert not browser.state.has_next
        assert not browser.state.has_previous
        assert browser.history.hash == "#feeds?page=2"
