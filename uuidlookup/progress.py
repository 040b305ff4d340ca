"""Progress reporting for long loads and bulk passes."""

from __future__ import annotations

import logging
import time

log = logging.getLogger("uuidlookup")


class LoadProgress:
    """Logs a running count at each batch boundary.

    Instances are plain callables, ``progress(count)``, so any function
    with the same signature can be passed to the pipeline instead.
    """

    def __init__(self, noun: str = "identifiers", every: int = 1, logger: logging.Logger | None = None):
        self.noun = noun
        self.every = max(1, every)  # log one in every N batches
        self.log = logger or log
        self.t0 = time.monotonic()
        self.calls = 0
        self.last_count = 0

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.t0

    def __call__(self, count: int) -> None:
        self.calls += 1
        self.last_count = count
        if self.calls % self.every == 0:
            self.log.info("  %s %s processed (%.1fs)", f"{count:,}", self.noun, self.elapsed)

    def finish(self, count: int) -> None:
        elapsed = self.elapsed
        rate = count / elapsed if elapsed > 0 else 0.0
        self.log.info("Done: %s %s in %.2fs (%s/s)", f"{count:,}", self.noun, elapsed, f"{rate:,.0f}")
