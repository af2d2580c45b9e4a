"""Keep URL hash, form inputs and session state consistent.

The Reconciler is the only writer of SessionState. Three sources feed it:
hash changes (initial load, back/forward), form edits, and fetch results.

Events are routed through a dispatch table to pure handlers with the shape
``(state, event) -> (new_state, effects)``. The caller performs the effects
(start a fetch, rewrite the hash, render) and feeds fetch results back in as
events.

Programmatic hash rewrites use replace semantics and never come back as a
HashChanged event, so publishing after a fetch cannot start another fetch.

A fetch is tagged with the Query it was issued for. Its result is accepted
only while that Query is still current; otherwise it is stale and dropped
without touching state.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum

from .models import Query, ViewRecord
from .state import FetchTicket, SessionState
from .urlcodec import (
    DEFAULT_HASH,
    FIELD_ORDER,
    FEEDS_VIEW,
    SETTINGS_VIEW,
    decode_fragment,
    feeds_hash,
    parse_page,
    route_for,
)

logger = logging.getLogger(__name__)

# Fields whose change warrants a refetch after a form edit
REFETCH_FIELDS = ("page", "user_name", "keyword", "has_media_only")


class FormField(str, Enum):
    PAGE = "page"
    USER_NAME = "user_name"
    KEYWORD = "keyword"
    HAS_MEDIA_ONLY = "has_media_only"


@dataclass(frozen=True)
class FormInputs:
    """Raw values of the filter form. ``page`` is the 1-based text shown."""

    page: str = "1"
    user_name: str = ""
    keyword: str = ""
    has_media_only: bool = False


@dataclass(frozen=True)
class FormChange:
    previous: Query
    candidate: Query
    changed: dict[str, bool]

    @property
    def should_fetch(self) -> bool:
        return any(self.changed[name] for name in REFETCH_FIELDS)


# ── Events ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class HashChanged:
    hash: str


@dataclass(frozen=True)
class FormEdited:
    source: FormField
    inputs: FormInputs


@dataclass(frozen=True)
class PageStepped:
    delta: int  # +1 next, -1 previous


@dataclass(frozen=True)
class RouteRequested:
    view: str


@dataclass(frozen=True)
class FetchSucceeded:
    ticket: FetchTicket
    views: tuple[ViewRecord, ...] = ()


@dataclass(frozen=True)
class FetchFailed:
    ticket: FetchTicket
    error: Exception


# ── Effects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class StartFetch:
    ticket: FetchTicket


@dataclass(frozen=True)
class ReplaceHash:
    """Rewrite the hash in place: no history entry, no HashChanged."""

    hash: str


@dataclass(frozen=True)
class PushHash:
    """User-initiated navigation: new history entry, then HashChanged."""

    hash: str


@dataclass(frozen=True)
class ShowView:
    view: str


@dataclass(frozen=True)
class Render:
    views: tuple[ViewRecord, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ReportError:
    error: Exception


Event = HashChanged | FormEdited | PageStepped | RouteRequested | FetchSucceeded | FetchFailed
Effect = StartFetch | ReplaceHash | PushHash | ShowView | Render | ReportError
Handler = Callable[[SessionState, Event], tuple[SessionState, list[Effect]]]


# ── Pure rules ──────────────────────────────────────────────────


def form_change(current: Query, source: FormField, inputs: FormInputs) -> FormChange:
    """Build the candidate Query for a form edit.

    Editing anything but the page input returns to the first page. Fields
    the form has no input for are carried over from ``current``.
    """
    page = parse_page(inputs.page) if source == FormField.PAGE else 0
    candidate = Query(
        user_name=inputs.user_name or None,
        keyword=inputs.keyword or None,
        has_media_only=True if inputs.has_media_only else None,
        since=current.since,
        until=current.until,
        page=page,
        count=current.count,
    )
    changed = {
        name: getattr(current, name) != getattr(candidate, name)
        for name in FIELD_ORDER
    }
    return FormChange(previous=current, candidate=candidate, changed=changed)


def form_inputs(state: SessionState) -> FormInputs:
    """Mirror the current Query back into form values."""
    query = state.query
    return FormInputs(
        page=str(query.page + 1),
        user_name=query.user_name or "",
        keyword=query.keyword or "",
        has_media_only=query.has_media_only is True,
    )


def published_state(
    state: SessionState, ticket: FetchTicket, result_count: int
) -> SessionState | None:
    """Flags after a completed fetch, or None when the ticket is stale."""
    if not ticket.is_current(state):
        return None
    return state.with_flags(
        has_previous=ticket.query.page > 0,
        has_next=result_count > 0,
    )


def _fetch(state: SessionState, query: Query) -> tuple[SessionState, list[Effect]]:
    # Flags are reset before the request goes out so a failure never leaves
    # a stale "has more" visible
    new_state = state.with_query(query).reset_flags()
    return new_state, [StartFetch(FetchTicket(query))]


# ── Handlers ────────────────────────────────────────────────────


def on_hash_changed(state: SessionState, event: HashChanged):
    view = route_for(event.hash)
    if view is None:
        logger.debug("Unrecognized hash %r, redirecting to %s", event.hash, DEFAULT_HASH)
        return state, [PushHash(DEFAULT_HASH)]
    if view == SETTINGS_VIEW:
        return state, [ShowView(SETTINGS_VIEW)]
    new_state, effects = _fetch(state, decode_fragment(event.hash))
    return new_state, [ShowView(FEEDS_VIEW), *effects]


def on_form_edited(state: SessionState, event: FormEdited):
    change = form_change(state.query, event.source, event.inputs)
    if not change.should_fetch:
        return state.with_query(change.candidate), []
    return _fetch(state, change.candidate)


def on_page_stepped(state: SessionState, event: PageStepped):
    page = state.query.page + event.delta
    if page < 0:
        return state, []
    return _fetch(state, replace(state.query, page=page))


def on_route_requested(state: SessionState, event: RouteRequested):
    if event.view == SETTINGS_VIEW:
        return state, [PushHash(f"#{SETTINGS_VIEW}")]
    return state, [PushHash("#" + feeds_hash(state.query))]


def on_fetch_succeeded(state: SessionState, event: FetchSucceeded):
    new_state = published_state(state, event.ticket, len(event.views))
    if new_state is None:
        logger.debug("Discarding stale result for ticket %d", event.ticket.ticket_id)
        return state, []
    return new_state, [ReplaceHash(feeds_hash(new_state.query)), Render(event.views)]


def on_fetch_failed(state: SessionState, event: FetchFailed):
    if not event.ticket.is_current(state):
        logger.debug("Discarding stale failure for ticket %d", event.ticket.ticket_id)
        return state, []
    logger.warning("Fetch failed for %s: %s", event.ticket.query, event.error)
    return state.reset_flags(), [ReportError(event.error)]


DISPATCH: dict[type, Handler] = {
    HashChanged: on_hash_changed,
    FormEdited: on_form_edited,
    PageStepped: on_page_stepped,
    RouteRequested: on_route_requested,
    FetchSucceeded: on_fetch_succeeded,
    FetchFailed: on_fetch_failed,
}


class Reconciler:
    """Single writer of the session state."""

    def __init__(self, state: SessionState | None = None):
        self._state = state or SessionState()

    @property
    def state(self) -> SessionState:
        return self._state

    def dispatch(self, event: Event) -> list[Effect]:
        handler = DISPATCH[type(event)]
        self._state, effects = handler(self._state, event)
        logger.debug("%s -> %s", type(event).__name__, [type(e).__name__ for e in effects])
        return effects

    def apply_from_url(self, hash_value: str) -> Query:
        """Overwrite the whole Query from a hash. Does not fetch."""
        query = decode_fragment(hash_value)
        self._state = self._state.with_query(query)
        return query

    def apply_from_form(self, source: FormField, inputs: FormInputs) -> FormChange:
        change = form_change(self._state.query, source, inputs)
        self._state = self._state.with_query(change.candidate)
        return change

    def begin_fetch(self) -> FetchTicket:
        self._state = self._state.reset_flags()
        return FetchTicket(self._state.query)

    def publish(self, ticket: FetchTicket, records: Sequence) -> str | None:
        """Write pagination flags; return the hash to replace, None if stale."""
        new_state = published_state(self._state, ticket, len(records))
        if new_state is None:
            logger.debug("Discarding stale result for ticket %d", ticket.ticket_id)
            return None
        self._state = new_state
        return feeds_hash(new_state.query)

    def publish_failure(self, ticket: FetchTicket) -> bool:
        if not ticket.is_current(self._state):
            return False
        self._state = self._state.reset_flags()
        return True

    def next_page(self) -> FetchTicket:
        self._state, effects = on_page_stepped(self._state, PageStepped(1))
        return effects[0].ticket

    def previous_page(self) -> FetchTicket | None:
        self._state, effects = on_page_stepped(self._state, PageStepped(-1))
        return effects[0].ticket if effects else None

    def form_view(self) -> FormInputs:
        return form_inputs(self._state)
