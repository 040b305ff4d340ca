"""Streaming load of the primary identifier list into a fresh index."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import AsyncIterable, AsyncIterator, Callable, Iterable

from uuidlookup.constants import FIELD_DELIMITER, INGEST_BATCH_SIZE, QUOTE_CHARS
from uuidlookup.trie import LoadStatus, TrieIndex

log = logging.getLogger("uuidlookup")

Lines = Iterable[str] | AsyncIterable[str]
ProgressCallback = Callable[[int], object]


class IngestError(RuntimeError):
    """The primary stream failed part-way; the index is not usable."""


async def aiter_lines(lines: Lines) -> AsyncIterator[str]:
    """Iterate sync and async line sources the same way."""
    if isinstance(lines, AsyncIterable):
        async for line in lines:
            yield line
    else:
        for line in lines:
            yield line


def extract_identifier(line: str) -> str:
    """First delimited field of *line* with enclosing quotes removed."""
    field = line.split(FIELD_DELIMITER, 1)[0].strip()
    return field.strip(QUOTE_CHARS).strip()


class IngestPipeline:
    """Feeds one line stream into one :class:`TrieIndex`.

    The first line is a header and is never inserted.  Every
    ``batch_size`` records the pipeline hands control back to the event
    loop; a batch boundary never falls inside an insertion, so readers
    running in between always see a consistent trie.
    """

    def __init__(
        self,
        index: TrieIndex,
        batch_size: int = INGEST_BATCH_SIZE,
        is_current: Callable[[], bool] | None = None,
    ):
        self.index = index
        self.batch_size = max(1, batch_size)
        self.is_current = is_current or (lambda: True)
        self.rejected = 0
        self.mixed_case = 0
        self.abandoned = False

    async def batches(self, lines: Lines) -> AsyncIterator[int]:
        """Load *lines*, yielding the processed count after each batch."""
        index = self.index
        if index.status is not LoadStatus.EMPTY:
            raise RuntimeError(f"index is already {index.status.value}; start a new TrieIndex")
        index.status = LoadStatus.LOADING

        header_seen = False
        pending = self.batch_size
        try:
            async for line in aiter_lines(lines):
                if not header_seen:
                    header_seen = True
                    index.label = extract_identifier(line) or None
                    continue

                self._add(line)
                pending -= 1
                if pending <= 0:
                    pending = self.batch_size
                    await asyncio.sleep(0)
                    if not self.is_current():
                        self.abandoned = True
                        log.info("Load replaced by a newer one; stopping at %s records",
                                 f"{index.processed:,}")
                        return
                    yield index.processed
        except (OSError, UnicodeError) as exc:
            index.status = LoadStatus.ERROR
            log.error("Read failed after %s records: %s", f"{index.processed:,}", exc)
            raise IngestError(f"read failed after {index.processed:,} records: {exc}") from exc
        except Exception:
            index.status = LoadStatus.ERROR
            raise

        index.status = LoadStatus.READY
        self._log_summary()

    async def run(self, lines: Lines, progress: ProgressCallback | None = None) -> TrieIndex:
        """Load *lines* to completion, reporting each batch to *progress*."""
        async for count in self.batches(lines):
            if progress is not None:
                await _maybe_await(progress(count))
        if progress is not None and not self.abandoned:
            await _maybe_await(progress(self.index.processed))
        return self.index

    def _add(self, line: str) -> None:
        identifier = extract_identifier(line)
        if not identifier:
            return
        self.index.processed += 1
        try:
            self.index.insert(identifier)
        except ValueError:
            self.rejected += 1
            log.debug("Skipping malformed identifier %r", identifier)
            return
        if identifier != identifier.lower():
            self.mixed_case += 1

    def _log_summary(self) -> None:
        index = self.index
        log.info(
            "Loaded %s identifiers (%s duplicates, %s rejected, %s splits, max depth %d)",
            f"{len(index):,}",
            f"{index.counters.duplicates:,}",
            f"{self.rejected:,}",
            f"{index.counters.splits:,}",
            index.counters.max_depth,
        )
        if self.mixed_case:
            log.warning(
                "%s identifiers contain uppercase hex; lookups are case-sensitive "
                "and will not match their lowercase form",
                f"{self.mixed_case:,}",
            )


async def _maybe_await(result: object) -> None:
    if inspect.isawaitable(result):
        await result


class LookupSession:
    """Holds the current index; each load replaces it with a fresh one."""

    def __init__(self, batch_size: int = INGEST_BATCH_SIZE):
        self.batch_size = batch_size
        self.index = TrieIndex()
        self.pipeline: IngestPipeline | None = None

    @property
    def status(self) -> LoadStatus:
        return self.index.status

    def _begin(self) -> IngestPipeline:
        index = TrieIndex()
        self.index = index
        self.pipeline = IngestPipeline(
            index, self.batch_size, is_current=lambda: self.index is index,
        )
        return self.pipeline

    async def load(self, lines: Lines, progress: ProgressCallback | None = None) -> TrieIndex:
        """Start a new index from *lines*, abandoning the previous one."""
        return await self._begin().run(lines, progress)

    async def load_path(self, path: str, progress: ProgressCallback | None = None) -> TrieIndex:
        """Like :meth:`load`, reading *path* as UTF-8 text.

        The previous index is dropped even if *path* cannot be opened; the
        session is then left with a fresh index in ``error``.
        """
        pipeline = self._begin()
        try:
            f = open(path, "r", encoding="utf-8")
        except OSError as exc:
            pipeline.index.status = LoadStatus.ERROR
            log.error("Cannot open %s: %s", path, exc)
            raise IngestError(f"cannot open {path}: {exc}") from exc
        log.info("Loading identifiers from %s", path)
        with f:
            return await pipeline.run(f, progress)
