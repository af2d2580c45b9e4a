"""Run a tagged fetch and turn its outcome into a reconciler event."""

import logging
from typing import Protocol

from .classifier import classify
from .errors import FetchError
from .models import FeedRecord, Query
from .reconciler import FetchFailed, FetchSucceeded
from .state import FetchTicket

logger = logging.getLogger(__name__)


class FeedSource(Protocol):
    async def fetch_feeds(self, query: Query) -> list[FeedRecord]: ...


class FetchPipeline:
    """Fetch, classify, and report back as FetchSucceeded or FetchFailed.

    The pipeline never writes session state itself. Flags were reset when the
    ticket was issued; the Reconciler sets them from the returned event.
    """

    def __init__(self, source: FeedSource):
        self._source = source

    async def fetch(self, query: Query) -> list[FeedRecord]:
        return await self._source.fetch_feeds(query)

    async def run(self, ticket: FetchTicket) -> FetchSucceeded | FetchFailed:
        try:
            records = await self.fetch(ticket.query)
        except FetchError as e:
            return FetchFailed(ticket, e)
        views = tuple(classify(r) for r in records)
        logger.debug("Ticket %d: %d records classified", ticket.ticket_id, len(views))
        return FetchSucceeded(ticket, views)
