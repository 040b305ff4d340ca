"""Segment trie for exact UUID membership.

Each level of the trie branches on one 4-hex-digit window of the
identifier.  A key holds a single leaf until a second identifier lands
on it, at which point the leaf is pushed one level down into a fresh
child node (a "split").  Since the eight windows cover every hex digit,
two distinct identifiers always separate by depth 7, and a lookup costs
at most eight dict probes regardless of how many records are stored.

The structure is append-only: slots are only ever added or upgraded from
leaf to internal, never removed.
"""

from __future__ import annotations

from enum import Enum

from uuidlookup.constants import (
    HYPHEN_POSITIONS,
    MAX_DEPTH,
    SEGMENT_OFFSETS,
    SEGMENT_WIDTH,
    UUID_LENGTH,
)


class LoadStatus(str, Enum):
    """Lifecycle of one index instance."""

    EMPTY = "empty"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


def key_for(identifier: str, depth: int) -> str:
    """Literal 4-character segment of *identifier* used at *depth*.

    No case folding is applied; ``"ABCD"`` and ``"abcd"`` are different keys.
    """
    start = SEGMENT_OFFSETS[depth]
    return identifier[start:start + SEGMENT_WIDTH]


def has_uuid_shape(identifier: str) -> bool:
    """True if *identifier* is 36 characters with hyphens in the fixed spots."""
    return len(identifier) == UUID_LENGTH and all(
        identifier[i] == "-" for i in HYPHEN_POSITIONS
    )


class Record:
    """One stored identifier."""

    __slots__ = ("identifier",)

    def __init__(self, identifier: str):
        self.identifier = identifier

    def __repr__(self) -> str:
        return f"Record({self.identifier!r})"


class Leaf:
    """Slot holding exactly one record."""

    __slots__ = ("record",)

    def __init__(self, record: Record):
        self.record = record

    def __repr__(self) -> str:
        return f"Leaf({self.record.identifier!r})"


class Internal:
    """Slot delegating to a deeper node after a split."""

    __slots__ = ("node",)

    def __init__(self, node: TrieNode):
        self.node = node

    def __repr__(self) -> str:
        return f"Internal(depth={self.node.depth}, size={self.node.size})"


Slot = Leaf | Internal


class TrieCounters:
    """Counters shared by every node of one trie."""

    __slots__ = ("inserted", "splits", "duplicates", "max_depth", "deepest")

    def __init__(self):
        self.inserted = 0
        self.splits = 0
        self.duplicates = 0
        self.max_depth = 0
        self.deepest: TrieNode | None = None

    def as_dict(self) -> dict[str, int]:
        return {
            "inserted": self.inserted,
            "splits": self.splits,
            "duplicates": self.duplicates,
            "max_depth": self.max_depth,
        }


class TrieNode:
    """Single level of the trie, keyed by the segment at ``depth``."""

    __slots__ = ("depth", "slots", "size", "counters")

    def __init__(self, depth: int, counters: TrieCounters):
        if not 0 <= depth <= MAX_DEPTH:
            raise ValueError(f"trie depth {depth} outside 0..{MAX_DEPTH}")
        self.depth = depth
        self.slots: dict[str, Slot] = {}
        self.size = 0
        self.counters = counters
        if depth > counters.max_depth or counters.deepest is None:
            counters.max_depth = depth
            counters.deepest = self

    def insert(self, record: Record) -> tuple[Record, bool]:
        """Store *record* below this node.

        Returns the record now held for that identifier and whether it
        was newly added (``False`` means a duplicate was ignored).
        """
        key = key_for(record.identifier, self.depth)
        slot = self.slots.get(key)

        if slot is None:
            self.slots[key] = Leaf(record)
            self.size += 1
            self.counters.inserted += 1
            return record, True

        if isinstance(slot, Leaf):
            existing = slot.record
            if existing.identifier == record.identifier:
                self.counters.duplicates += 1
                return existing, False

            # Collision: build the child completely before publishing it so
            # a reader never observes a half-populated node.
            child = TrieNode(self.depth + 1, self.counters)
            child.slots[key_for(existing.identifier, child.depth)] = Leaf(existing)
            child.size = 1
            self.slots[key] = Internal(child)
            self.counters.splits += 1
            stored, added = child.insert(record)

        elif isinstance(slot, Internal):
            stored, added = slot.node.insert(record)

        else:
            raise TypeError(f"unexpected trie slot {slot!r}")

        if added:
            self.size += 1
        return stored, added

    def lookup(self, identifier: str) -> Record | None:
        node = self
        while True:
            slot = node.slots.get(key_for(identifier, node.depth))
            if isinstance(slot, Internal):
                node = slot.node
                continue
            if slot is None:
                return None
            if isinstance(slot, Leaf):
                # Matching segments only prove a shared prefix.
                if slot.record.identifier == identifier:
                    return slot.record
                return None
            raise TypeError(f"unexpected trie slot {slot!r}")


class PathStep:
    """One hop recorded by :meth:`TrieIndex.lookup_with_path`."""

    __slots__ = ("depth", "key", "slot", "full_match")

    def __init__(self, depth: int, key: str, slot: Slot | None, full_match: bool | None = None):
        self.depth = depth
        self.key = key
        self.slot = slot
        self.full_match = full_match  # None for intermediate hops

    def __repr__(self) -> str:
        tail = "" if self.full_match is None else f" full_match={self.full_match}"
        return f"<{self.depth}:{self.key} {self.slot!r}{tail}>"


class TrieIndex:
    """Membership index over canonical UUID strings.

    ``status`` and ``processed`` are maintained by the ingest pipeline;
    the index itself only stores and finds records.
    """

    def __init__(self):
        self.counters = TrieCounters()
        self.root = TrieNode(0, self.counters)
        self.status = LoadStatus.EMPTY
        self.processed = 0
        self.label: str | None = None

    def insert(self, identifier: str) -> Record:
        """Add *identifier*; repeated inserts return the existing record."""
        return self._insert(identifier)[0]

    def insert_new(self, identifier: str) -> bool:
        """Add *identifier*; True if it was not already present."""
        return self._insert(identifier)[1]

    def _insert(self, identifier: str) -> tuple[Record, bool]:
        if not has_uuid_shape(identifier):
            raise ValueError(f"not a canonical UUID: {identifier!r}")
        return self.root.insert(Record(identifier))

    def lookup(self, identifier: str) -> Record | None:
        return self.root.lookup(identifier)

    def lookup_with_path(self, identifier: str) -> list[PathStep]:
        """Trace every slot visited while looking up *identifier*."""
        path: list[PathStep] = []
        node = self.root
        while True:
            key = key_for(identifier, node.depth)
            slot = node.slots.get(key)
            if isinstance(slot, Internal):
                path.append(PathStep(node.depth, key, slot))
                node = slot.node
                continue
            full_match = isinstance(slot, Leaf) and slot.record.identifier == identifier
            path.append(PathStep(node.depth, key, slot, full_match))
            return path

    def stats(self) -> dict[str, int]:
        return self.counters.as_dict()

    def __contains__(self, identifier: str) -> bool:
        return self.lookup(identifier) is not None

    def __len__(self) -> int:
        return self.counters.inserted

    def __repr__(self) -> str:
        return f"<TrieIndex {self.status.value} n={len(self):,} splits={self.counters.splits:,}>"
