"""Terminal mode: interactive lookups and bulk filtering."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import sys

from uuidlookup.bulk import BulkQueryStream, BulkStats, FilterMode
from uuidlookup.constants import IMPACT_LABELS, PRESENCE_LABELS, UUID_RE
from uuidlookup.ingest import IngestError, LookupSession
from uuidlookup.progress import LoadProgress
from uuidlookup.query import QueryService, describe
from uuidlookup.trie import Internal, Leaf, TrieIndex

log = logging.getLogger("uuidlookup")

LABEL_SETS: dict[str, tuple[str, str, str]] = {
    "presence": PRESENCE_LABELS,
    "impact": IMPACT_LABELS,
}


async def load_in_background(session: LookupSession, path: str) -> TrieIndex | None:
    """Load *path* into *session*; failures are logged, not raised."""
    progress = LoadProgress(every=20)
    try:
        index = await session.load_path(path, progress)
    except IngestError as exc:
        log.error("Load failed: %s", exc)
        return None
    progress.finish(index.processed)
    return index


def print_stats(index: TrieIndex) -> None:
    stats = index.stats()
    print(f"  status      {index.status.value}")
    if index.label:
        print(f"  label       {index.label}")
    print(f"  processed   {index.processed:,}")
    print(f"  stored      {stats['inserted']:,}")
    print(f"  duplicates  {stats['duplicates']:,}")
    print(f"  splits      {stats['splits']:,}")
    print(f"  max depth   {stats['max_depth']}")


def print_path(index: TrieIndex, identifier: str) -> None:
    for step in index.lookup_with_path(identifier):
        if isinstance(step.slot, Internal):
            what = f"node ({step.slot.node.size:,} below)"
        elif isinstance(step.slot, Leaf):
            what = f"leaf {step.slot.record.identifier}"
        else:
            what = "empty"
        mark = "" if step.full_match is None else ("  MATCH" if step.full_match else "  no match")
        print(f"  {'  ' * step.depth}[{step.depth}] {step.key} -> {what}{mark}")


def print_history(queries: QueryService, labels: tuple[str, str, str]) -> None:
    results = queries.history()
    if not results:
        print("  No searches yet.")
        return
    print("=" * 56)
    print(f" {'#':>3}  {'UUID':<36}  Result")
    print("-" * 56)
    for i, r in enumerate(results):
        print(f" {i+1:>3}  {r.identifier:<36}  {describe(r, labels)}")
    print("=" * 56)


async def run_cli(
    session: LookupSession,
    queries: QueryService,
    path: str,
    labels: tuple[str, str, str] = PRESENCE_LABELS,
) -> None:
    """Interactive prompt; the file keeps loading while queries are typed."""
    load_tasks = [asyncio.create_task(load_in_background(session, path))]

    print()
    print("Commands:")
    print("  UUID              -- look up one identifier")
    print("  history           -- list previous lookups")
    print("  refresh           -- re-run previous lookups")
    print("  clear             -- forget previous lookups")
    print("  path UUID         -- show the trie path for a lookup")
    print("  stats             -- index statistics")
    print("  load FILE         -- replace the index with another file")
    print("  done              -- quit")
    print()

    while True:
        try:
            inp = (await asyncio.to_thread(input, "  uuid> ")).strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break

        if not inp:
            continue
        cmd, _, arg = inp.partition(" ")
        cmd = cmd.lower()
        arg = arg.strip()

        if cmd in ("done", "quit", "exit"):
            break
        if cmd == "history":
            queries.poll()
            print_history(queries, labels)
        elif cmd == "refresh":
            queries.refresh()
            print_history(queries, labels)
        elif cmd == "clear":
            queries.clear()
            print("  History cleared.")
        elif cmd == "stats":
            print_stats(session.index)
        elif cmd == "path" and arg:
            print_path(session.index, arg)
        elif cmd == "load" and arg:
            load_tasks.append(asyncio.create_task(load_in_background(session, arg)))
            await asyncio.sleep(0)
            queries.refresh()
            print(f"  Loading {arg} ...")
        else:
            if not UUID_RE.match(inp):
                print("  Format: xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx")
                continue
            result = queries.search(inp)
            if result.is_pending:
                print(f"  {inp}  {describe(result, labels)}")
                result = await queries.settle(inp)
            print(f"  {inp}  {describe(result, labels)}")

    # Cancel whatever is still loading and collect every task.
    for task in load_tasks:
        if not task.done():
            task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


async def run_filter(
    session: LookupSession,
    queries: QueryService,
    ids_path: str,
    lines_path: str,
    mode: FilterMode,
    out_path: str | None = None,
) -> BulkStats:
    """Load *ids_path*, then write the kept lines of *lines_path*.

    Raises :class:`IngestError` if either file cannot be read.
    """
    progress = LoadProgress(every=20)
    index = await session.load_path(ids_path, progress)
    progress.finish(index.processed)

    stream = BulkQueryStream(queries, mode, feedback=False)
    try:
        src = open(lines_path, "r", encoding="utf-8", newline="")
    except OSError as exc:
        raise IngestError(f"cannot open {lines_path}: {exc}") from exc

    with src:
        if out_path is None:
            return await stream.write(src, sys.stdout)
        with open(out_path, "w", encoding="utf-8", newline="") as out:
            stats = await stream.write(src, out)
        log.info("Wrote %s lines to %s", f"{stats.kept:,}", out_path)
        return stats
