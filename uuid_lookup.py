#!/usr/bin/env python3
"""
UUID Lookup

Loads a large list of UUIDs (CSV, header line first, UUID in the first
column) into an in-memory segment trie and answers membership queries,
either interactively or by filtering another file line by line.

Usage:
    uuid-lookup ids.csv                                   # interactive
    uuid-lookup ids.csv --filter lines.txt -o kept.txt    # bulk filter
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from uuidlookup.bulk import FilterMode
from uuidlookup.cli import LABEL_SETS, run_cli, run_filter
from uuidlookup.constants import INGEST_BATCH_SIZE
from uuidlookup.ingest import IngestError, LookupSession
from uuidlookup.query import IndexNotReady, QueryService


# Logging setup

logging.basicConfig(
    level=logging.INFO,
    format="[%(levelname)s] %(message)s",
)
log = logging.getLogger("uuidlookup")


# Entry point

def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="UUID Lookup -- membership checks against a large UUID list",
    )
    parser.add_argument("ids",
                        help="CSV / text file of UUIDs (header line, UUID in first column)")
    parser.add_argument("--filter", dest="filter_path", default=None,
                        help="Filter this file's lines by membership instead of prompting")
    parser.add_argument("--keep", choices=[m.value for m in FilterMode],
                        default=FilterMode.MATCHES.value,
                        help="Which candidate lines to keep when filtering")
    parser.add_argument("--output", "-o", default=None,
                        help="Write filtered lines here (default: stdout)")
    parser.add_argument("--labels", choices=sorted(LABEL_SETS), default="presence",
                        help="Wording for lookup results")
    parser.add_argument("--batch-size", type=int, default=INGEST_BATCH_SIZE,
                        help="Records loaded between progress updates")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Enable debug-level logging")
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    session = LookupSession(batch_size=args.batch_size)
    queries = QueryService(session)

    try:
        if args.filter_path:
            asyncio.run(run_filter(
                session, queries, args.ids, args.filter_path,
                FilterMode(args.keep), args.output,
            ))
        else:
            print("UUID LOOKUP -- membership search")
            asyncio.run(run_cli(session, queries, args.ids, LABEL_SETS[args.labels]))
    except (IngestError, IndexNotReady) as exc:
        log.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
