"""Identifier layout, batch sizes and display labels."""

from __future__ import annotations

import re

# Identifier layout

UUID_LENGTH = 36
HYPHEN_POSITIONS = (8, 13, 18, 23)

# Start offset of the 4-character segment used as trie key at each depth.
# The windows cover all 32 hex digits and never straddle a hyphen:
#   0    4    9    14   19   24  28  32
#   xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx
SEGMENT_OFFSETS: tuple[int, ...] = (0, 4, 9, 14, 19, 24, 28, 32)
SEGMENT_WIDTH = 4
MAX_DEPTH = len(SEGMENT_OFFSETS) - 1  # 7

# Cooperative scheduling

INGEST_BATCH_SIZE = 5000   # records between yields while loading
BULK_YIELD_EVERY = 1000    # lines between yields while filtering
QUERY_HISTORY_LIMIT = 1000
SETTLE_INTERVAL = 0.05     # seconds between re-checks of a pending query

# Input formats

FIELD_DELIMITER = ","
QUOTE_CHARS = "\"'"
BULK_MARKERS = "\"*"

_HEX = "[0-9a-f]"
UUID_PATTERN = f"{_HEX}{{8}}-{_HEX}{{4}}-{_HEX}{{4}}-{_HEX}{{4}}-{_HEX}{{12}}"
UUID_RE = re.compile(f"^{UUID_PATTERN}$", re.IGNORECASE)

# Presentation labels: (match, no-match, pending)

PRESENCE_LABELS: tuple[str, str, str] = ("Present", "Not present", "(searching)")
IMPACT_LABELS: tuple[str, str, str] = ("affected", "unaffected", "(searching)")
