"""Single-identifier queries with a remembered, refreshable history."""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from enum import Enum
from typing import TYPE_CHECKING

from uuidlookup.constants import PRESENCE_LABELS, QUERY_HISTORY_LIMIT, SETTLE_INTERVAL
from uuidlookup.trie import LoadStatus, Record, TrieIndex

if TYPE_CHECKING:
    from uuidlookup.ingest import LookupSession

log = logging.getLogger("uuidlookup.query")


class SearchOutcome(str, Enum):
    MATCH = "match"
    NO_MATCH = "no-match"
    INDETERMINATE = "indeterminate"


class IndexNotReady(RuntimeError):
    """An authoritative answer was needed but the index is not ready."""


class QueryResult:
    """Cached outcome of one queried identifier, updated in place."""

    __slots__ = ("identifier", "outcome", "record", "checks")

    def __init__(self, identifier: str):
        self.identifier = identifier
        self.outcome = SearchOutcome.INDETERMINATE
        self.record: Record | None = None
        self.checks = 0

    @property
    def is_pending(self) -> bool:
        return self.outcome is SearchOutcome.INDETERMINATE

    def __repr__(self) -> str:
        return f"<QueryResult {self.identifier} {self.outcome.value}>"


def describe(outcome: SearchOutcome | QueryResult, labels: tuple[str, str, str] = PRESENCE_LABELS) -> str:
    """Caller-facing text for an outcome; *labels* is (match, no-match, pending)."""
    if isinstance(outcome, QueryResult):
        outcome = outcome.outcome
    match_label, no_match_label, pending_label = labels
    if outcome is SearchOutcome.MATCH:
        return match_label
    if outcome is SearchOutcome.NO_MATCH:
        return no_match_label
    return pending_label


class QueryService:
    """Answers membership questions against the session's current index.

    A hit is reported as soon as the record is present.  A miss is only
    reported once the index is ``ready``; before that (and after a failed
    load) the answer stays indeterminate.
    """

    def __init__(self, session: LookupSession, history_limit: int = QUERY_HISTORY_LIMIT):
        self.session = session
        self.history_limit = max(1, history_limit)
        self._history: OrderedDict[str, QueryResult] = OrderedDict()

    @property
    def index(self) -> TrieIndex:
        return self.session.index

    def check(self, identifier: str) -> SearchOutcome:
        """Evaluate *identifier* once without touching the history."""
        return self._outcome(self.index.lookup(identifier))

    def _outcome(self, record: Record | None) -> SearchOutcome:
        if record is not None:
            return SearchOutcome.MATCH
        if self.index.status is LoadStatus.READY:
            return SearchOutcome.NO_MATCH
        return SearchOutcome.INDETERMINATE

    def require_ready(self) -> TrieIndex:
        index = self.index
        if index.status is not LoadStatus.READY:
            raise IndexNotReady(f"index is {index.status.value}, not ready")
        return index

    def search(self, identifier: str) -> QueryResult:
        """Query *identifier*, reusing its history entry if one exists."""
        result = self._history.get(identifier)
        if result is None:
            result = QueryResult(identifier)
            self._history[identifier] = result
            while len(self._history) > self.history_limit:
                self._history.popitem(last=False)
        else:
            self._history.move_to_end(identifier)
        self._evaluate(result)
        return result

    def _evaluate(self, result: QueryResult) -> None:
        result.record = self.index.lookup(result.identifier)
        result.outcome = self._outcome(result.record)
        result.checks += 1

    def poll(self) -> int:
        """Re-check pending entries; returns how many are still pending."""
        pending = 0
        for result in self._history.values():
            if result.is_pending:
                self._evaluate(result)
                pending += result.is_pending
        return pending

    async def settle(self, identifier: str, interval: float = SETTLE_INTERVAL) -> QueryResult:
        """Search, then keep re-checking until the answer is definitive.

        Stops with a pending result if the index is not loading, e.g.
        after a failed load.
        """
        result = self.search(identifier)
        while result.is_pending and self.index.status is LoadStatus.LOADING:
            await asyncio.sleep(interval)
            self._evaluate(result)
        return result

    def history(self) -> list[QueryResult]:
        """Cached results, most recent first."""
        return list(reversed(self._history.values()))

    def clear(self) -> None:
        self._history.clear()

    def refresh(self) -> list[QueryResult]:
        """Re-issue every remembered query against the current index."""
        previous = list(self._history)
        self.clear()
        log.debug("Refreshing %d remembered queries", len(previous))
        return [self.search(identifier) for identifier in previous]

    def __len__(self) -> int:
        return len(self._history)
