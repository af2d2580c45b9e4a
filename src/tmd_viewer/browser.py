"""Drive a browsing session: dispatch events, perform the resulting effects."""

import logging
from collections.abc import Callable
from dataclasses import replace

from .models import ViewRecord
from .pipeline import FetchPipeline
from .reconciler import (
    Event,
    FormEdited,
    FormField,
    FormInputs,
    HashChanged,
    PageStepped,
    PushHash,
    Reconciler,
    Render,
    ReplaceHash,
    ReportError,
    RouteRequested,
    ShowView,
    StartFetch,
)
from .state import SessionState
from .urlcodec import DEFAULT_HASH

logger = logging.getLogger(__name__)

Renderer = Callable[[tuple[ViewRecord, ...]], None]


def _with_hash_sign(value: str) -> str:
    return value if value.startswith("#") else "#" + value


class History:
    """Hash history of the session, like the browser's back/forward stack."""

    def __init__(self, initial: str = ""):
        self._entries = [_with_hash_sign(initial) if initial else ""]
        self._index = 0

    @property
    def hash(self) -> str:
        return self._entries[self._index]

    @property
    def entries(self) -> list[str]:
        return list(self._entries)

    def replace(self, value: str) -> None:
        self._entries[self._index] = _with_hash_sign(value)

    def push(self, value: str) -> None:
        del self._entries[self._index + 1:]
        self._entries.append(_with_hash_sign(value))
        self._index += 1

    def back(self) -> str | None:
        if self._index == 0:
            return None
        self._index -= 1
        return self.hash

    def forward(self) -> str | None:
        if self._index >= len(self._entries) - 1:
            return None
        self._index += 1
        return self.hash


class FeedBrowser:
    """One browsing session against an archive server.

    Events run to completion except for the fetch itself, so a newer event can
    arrive while a fetch is in flight. The older result is then dropped by the
    Reconciler.
    """

    def __init__(
        self,
        pipeline: FetchPipeline,
        history: History | None = None,
        renderer: Renderer | None = None,
        reconciler: Reconciler | None = None,
    ):
        self.pipeline = pipeline
        self.history = history or History()
        self.reconciler = reconciler or Reconciler()
        self._renderer = renderer
        self.view: str | None = None
        self.views: tuple[ViewRecord, ...] = ()
        self.last_error: Exception | None = None

    @property
    def state(self) -> SessionState:
        return self.reconciler.state

    @property
    def form(self) -> FormInputs:
        return self.reconciler.form_view()

    async def load(self) -> None:
        """Route the current hash, as on page load."""
        await self.handle(HashChanged(self.history.hash or DEFAULT_HASH))

    async def handle(self, event: Event) -> None:
        for effect in self.reconciler.dispatch(event):
            await self._perform(effect)

    async def _perform(self, effect) -> None:
        if isinstance(effect, StartFetch):
            self.last_error = None
            outcome = await self.pipeline.run(effect.ticket)
            await self.handle(outcome)
        elif isinstance(effect, ReplaceHash):
            self.history.replace(effect.hash)
        elif isinstance(effect, PushHash):
            self.history.push(effect.hash)
            await self.handle(HashChanged(self.history.hash))
        elif isinstance(effect, ShowView):
            self.view = effect.view
        elif isinstance(effect, Render):
            self.views = effect.views
            if self._renderer is not None:
                self._renderer(effect.views)
        elif isinstance(effect, ReportError):
            self.last_error = effect.error
        else:
            raise TypeError(f"Unknown effect: {effect!r}")

    async def next_page(self) -> None:
        await self.handle(PageStepped(1))

    async def previous_page(self) -> None:
        await self.handle(PageStepped(-1))

    async def edit(self, source: FormField, value) -> None:
        """Change one form input and let the Reconciler decide on a refetch."""
        inputs = replace(self.form, **{source.value: value})
        await self.handle(FormEdited(source, inputs))

    async def navigate(self, view: str) -> None:
        await self.handle(RouteRequested(view))

    async def back(self) -> bool:
        hash_value = self.history.back()
        if hash_value is None:
            return False
        await self.handle(HashChanged(hash_value))
        return True

    async def forward(self) -> bool:
        hash_value = self.history.forward()
        if hash_value is None:
            return False
        await self.handle(HashChanged(hash_value))
        return True
