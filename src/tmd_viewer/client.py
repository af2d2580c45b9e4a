"""HTTP client for a running tmd-viewer archive server.

Endpoints:
    GET  /a/feeds                               paginated feed listing
    GET  /a/media/file/{feed_id}/{media_id}     original media file
    GET  /a/media/preview/{feed_id}/{media_id}  thumbnail
    GET  /a/state                               server state
    POST /a/set_data_dir, /a/scan, /a/generate_thumbnails, /a/clean

The server URL defaults to the address the server binds to out of the box.
The CLI passes the configured URL (see config.load_config).
"""

import logging

import httpx

from .classifier import MEDIA_FILE_PATH, MEDIA_PREVIEW_PATH
from .config import DEFAULT_BASE_URL
from .errors import DecodeError, NetworkError, ServerError
from .models import FeedRecord, Query
from .parser import parse_feeds_response
from .urlcodec import api_params

logger = logging.getLogger(__name__)

FEEDS_PATH = "/a/feeds"
STATE_PATH = "/a/state"


class ArchiveClient:
    """Async client for the archive server's REST API."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Accept": "application/json"},
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    async def fetch_feeds(self, query: Query) -> list[FeedRecord]:
        """Fetch one page of feeds for ``query``."""
        logger.info("Fetching feeds page %d...", query.page + 1)
        response = await self._request("GET", FEEDS_PATH, params=api_params(query))
        records = parse_feeds_response(self._json(response))
        logger.info("Fetched %d feeds", len(records))
        return records

    async def state(self) -> dict:
        response = await self._request("GET", STATE_PATH)
        data = self._json(response)
        if not isinstance(data, dict):
            raise DecodeError("Expected a JSON object from /a/state")
        return data

    async def set_data_dir(self, data_dir: str) -> dict:
        response = await self._request(
            "POST", "/a/set_data_dir", data={"data_dir": data_dir}
        )
        # 304 when the server got no data_dir
        return self._json(response) if response.content else {}

    async def scan(self) -> dict:
        return self._json(await self._request("POST", "/a/scan", data={}))

    async def generate_thumbnails(self) -> dict:
        return self._json(
            await self._request("POST", "/a/generate_thumbnails", data={})
        )

    async def clean(self) -> dict:
        return self._json(await self._request("POST", "/a/clean", data={}))

    async def media_file(self, feed_id: str, media_id: str) -> bytes:
        path = MEDIA_FILE_PATH.format(feed_id=feed_id, media_id=media_id)
        return (await self._request("GET", path)).content

    async def media_preview(self, feed_id: str, media_id: str) -> bytes:
        path = MEDIA_PREVIEW_PATH.format(feed_id=feed_id, media_id=media_id)
        return (await self._request("GET", path)).content

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.DecodingError as e:
            raise DecodeError(f"Could not decode the response body: {e}") from e
        except httpx.RequestError as e:
            raise NetworkError(
                f"Could not reach the archive server at {self.base_url}: {e}"
            ) from e

        if response.status_code == 429:
            raise ServerError(
                429, "Scanner limit reached. Wait for the running scan to finish."
            )

        if response.status_code == 404 and method == "GET":
            raise ServerError(404, f"Not found: {path}")

        if not response.is_success and response.status_code != 304:
            message, code = self._error_detail(response)
            raise ServerError(response.status_code, message, code)

        return response

    @staticmethod
    def _error_detail(response: httpx.Response) -> tuple[str, str | None]:
        """Read the server's ``{code, message}`` error body if there is one."""
        try:
            body = response.json()
        except ValueError:
            return response.text.strip(), None
        if isinstance(body, dict) and "message" in body:
            return str(body["message"]), body.get("code")
        return "", None

    @staticmethod
    def _json(response: httpx.Response):
        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(f"Malformed response body: {e}") from e

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()
