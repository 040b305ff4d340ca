"""Bulk filtering of a line stream by membership in the loaded index.

Each line is scanned for a leading UUID (optionally behind one marker
character).  Lines with an identifier are kept or dropped according to
the selected :class:`FilterMode`; lines without one are dropped, except
for a non-matching first line, which is treated as a header and always
kept.  Kept lines are emitted unchanged, in input order, each followed
by the same terminator.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import AsyncIterator, Callable
from enum import Enum
from typing import TextIO

from uuidlookup.constants import BULK_MARKERS, BULK_YIELD_EVERY, UUID_PATTERN
from uuidlookup.ingest import Lines, aiter_lines
from uuidlookup.query import IndexNotReady, QueryService
from uuidlookup.trie import LoadStatus, TrieIndex

log = logging.getLogger("uuidlookup.bulk")


class FilterMode(str, Enum):
    MATCHES = "matches"
    NON_MATCHES = "non-matches"


def bulk_pattern(markers: str = BULK_MARKERS) -> re.Pattern[str]:
    """Regex capturing (marker, identifier) at the start of a line."""
    marker = f"[{re.escape(markers)}]?" if markers else ""
    return re.compile(f"^({marker})({UUID_PATTERN})", re.IGNORECASE)


def strip_terminator(line: str) -> str:
    if line.endswith("\r\n"):
        return line[:-2]
    if line.endswith(("\n", "\r")):
        return line[:-1]
    return line


class BulkStats:
    """Counters for one filtering pass."""

    __slots__ = ("lines", "candidates", "matched", "unmatched", "skipped", "kept", "header")

    def __init__(self):
        self.lines = 0
        self.candidates = 0
        self.matched = 0
        self.unmatched = 0
        self.skipped = 0
        self.kept = 0
        self.header: str | None = None

    def __repr__(self) -> str:
        return (
            f"<BulkStats lines={self.lines} candidates={self.candidates} "
            f"matched={self.matched} unmatched={self.unmatched} "
            f"skipped={self.skipped} kept={self.kept}>"
        )


class BulkQueryStream:
    """Filters lines against the index behind *queries*."""

    def __init__(
        self,
        queries: QueryService,
        mode: FilterMode = FilterMode.MATCHES,
        newline: str = "\n",
        markers: str = BULK_MARKERS,
        yield_every: int = BULK_YIELD_EVERY,
        feedback: bool = True,
    ):
        self.queries = queries
        self.mode = FilterMode(mode)
        self.newline = newline
        self.pattern = bulk_pattern(markers)
        self.yield_every = max(1, yield_every)
        self.feedback = feedback
        self.stats = BulkStats()

    def extract(self, line: str) -> str | None:
        """Identifier at the start of *line*, as written, or None."""
        m = self.pattern.match(line)
        return m.group(2) if m else None

    def _keep(self, index: TrieIndex, identifier: str) -> bool:
        if self.feedback:
            # History entry for live display only; the decision below uses
            # the index pinned at the start of the pass.
            self.queries.search(identifier)
        if index.status is not LoadStatus.READY:
            raise IndexNotReady(f"index is {index.status.value}, not ready")
        if index.lookup(identifier) is not None:
            self.stats.matched += 1
            return self.mode is FilterMode.MATCHES
        self.stats.unmatched += 1
        return self.mode is FilterMode.NON_MATCHES

    async def afilter(
        self,
        lines: Lines,
        progress: Callable[[int], object] | None = None,
    ) -> AsyncIterator[str]:
        """Yield the kept lines, each ending with ``self.newline``.

        Raises :class:`~uuidlookup.query.IndexNotReady` before reading
        anything if the index is still loading or failed to load.  The
        index current at that point answers the whole pass, even if a
        new load replaces it part-way through.
        """
        index = self.queries.require_ready()
        stats = self.stats = BulkStats()
        pending = self.yield_every

        async for raw in aiter_lines(lines):
            line = strip_terminator(raw)
            stats.lines += 1
            identifier = self.extract(line)

            if identifier is None:
                if stats.lines == 1:
                    stats.header = line
                    stats.kept += 1
                    yield line + self.newline
                else:
                    stats.skipped += 1
            else:
                stats.candidates += 1
                if self._keep(index, identifier):
                    stats.kept += 1
                    yield line + self.newline

            pending -= 1
            if pending <= 0:
                pending = self.yield_every
                if progress is not None:
                    progress(stats.lines)
                await asyncio.sleep(0)

        log.info(
            "Filtered %s lines: %s candidates, %s matched, %s unmatched, %s skipped, %s kept (%s)",
            f"{stats.lines:,}", f"{stats.candidates:,}", f"{stats.matched:,}",
            f"{stats.unmatched:,}", f"{stats.skipped:,}", f"{stats.kept:,}", self.mode.value,
        )

    async def write(
        self,
        lines: Lines,
        out: TextIO,
        progress: Callable[[int], object] | None = None,
    ) -> BulkStats:
        """Stream the kept lines into *out* and return the pass counters."""
        async for line in self.afilter(lines, progress):
            out.write(line)
        return self.stats
