"""Session state of one feed browsing session.

State lives from session start to exit and is never persisted; a new session
re-derives it from the URL hash. Values are immutable: the Reconciler replaces
the whole object on every mutation, so whatever a reader holds is a snapshot.
"""

import itertools
from dataclasses import dataclass, field, replace

from .models import Query

_ticket_ids = itertools.count(1)


@dataclass(frozen=True)
class SessionState:
    query: Query = field(default_factory=Query)
    has_previous: bool = False
    has_next: bool = False

    def with_query(self, query: Query) -> "SessionState":
        return replace(self, query=query)

    def with_flags(self, has_previous: bool, has_next: bool) -> "SessionState":
        return replace(self, has_previous=has_previous, has_next=has_next)

    def reset_flags(self) -> "SessionState":
        return self.with_flags(False, False)


@dataclass(frozen=True)
class FetchTicket:
    """Tags an in-flight fetch with the Query it was issued for."""

    query: Query
    ticket_id: int = field(default_factory=lambda: next(_ticket_ids))

    def is_current(self, state: SessionState) -> bool:
        return self.query == state.query
