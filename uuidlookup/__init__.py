"""UUID Lookup: incremental trie index for large UUID lists."""

from uuidlookup.constants import IMPACT_LABELS, PRESENCE_LABELS, SEGMENT_OFFSETS
from uuidlookup.trie import LoadStatus, Record, TrieIndex, TrieNode
from uuidlookup.ingest import IngestError, IngestPipeline, LookupSession
from uuidlookup.query import IndexNotReady, QueryResult, QueryService, SearchOutcome, describe
from uuidlookup.bulk import BulkQueryStream, BulkStats, FilterMode
from uuidlookup.progress import LoadProgress

__all__ = [
    "IMPACT_LABELS",
    "PRESENCE_LABELS",
    "SEGMENT_OFFSETS",
    "BulkQueryStream",
    "BulkStats",
    "FilterMode",
    "IndexNotReady",
    "IngestError",
    "IngestPipeline",
    "LoadProgress",
    "LoadStatus",
    "LookupSession",
    "QueryResult",
    "QueryService",
    "Record",
    "SearchOutcome",
    "TrieIndex",
    "TrieNode",
    "describe",
]
