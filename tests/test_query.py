import asyncio

import pytest

from conftest import csv_lines, make_ids
from uuidlookup.constants import IMPACT_LABELS, PRESENCE_LABELS
from uuidlookup.ingest import IngestError, LookupSession
from uuidlookup.query import IndexNotReady, QueryService, SearchOutcome, describe
from uuidlookup.trie import LoadStatus

PRESENT = make_ids(20, seed=11)
ABSENT = make_ids(5, seed=12)


def test_indeterminate_before_any_load(queries):
    result = queries.search(PRESENT[0])
    assert result.outcome is SearchOutcome.INDETERMINATE
    assert result.is_pending
    with pytest.raises(IndexNotReady):
        queries.require_ready()


@pytest.mark.asyncio
async def test_match_and_no_match_once_ready(session, queries):
    await session.load(csv_lines(PRESENT))
    assert queries.search(PRESENT[3]).outcome is SearchOutcome.MATCH
    assert queries.search(PRESENT[3]).record.identifier == PRESENT[3]
    assert queries.search(ABSENT[0]).outcome is SearchOutcome.NO_MATCH
    assert queries.require_ready() is session.index


@pytest.mark.asyncio
async def test_failed_load_is_never_authoritative(session, queries):
    def lines():
        yield from csv_lines(PRESENT[:10])
        raise OSError("truncated")

    with pytest.raises(IngestError):
        await session.load(lines())

    assert session.status is LoadStatus.ERROR
    assert queries.search(PRESENT[0]).outcome is SearchOutcome.MATCH
    assert queries.search(PRESENT[15]).outcome is SearchOutcome.INDETERMINATE
    settled = await queries.settle(PRESENT[15], interval=0)
    assert settled.is_pending


@pytest.mark.asyncio
async def test_repeat_search_reuses_the_same_result(session, queries):
    first = queries.search(PRESENT[0])
    assert first.is_pending
    queries.search(ABSENT[0])

    await session.load(csv_lines(PRESENT))
    again = queries.search(PRESENT[0])

    assert again is first
    assert again.outcome is SearchOutcome.MATCH
    assert again.checks == 2
    assert [r.identifier for r in queries.history()] == [PRESENT[0], ABSENT[0]]
    assert len(queries) == 2


@pytest.mark.asyncio
async def test_poll_settles_pending_entries(session, queries):
    queries.search(PRESENT[0])
    queries.search(ABSENT[0])
    assert queries.poll() == 2

    await session.load(csv_lines(PRESENT))
    assert queries.poll() == 0
    outcomes = {r.identifier: r.outcome for r in queries.history()}
    assert outcomes == {PRESENT[0]: SearchOutcome.MATCH, ABSENT[0]: SearchOutcome.NO_MATCH}


@pytest.mark.asyncio
async def test_settle_waits_for_the_load_to_finish():
    session = LookupSession(batch_size=5)
    queries = QueryService(session)
    ids = make_ids(200, seed=5)

    load = asyncio.create_task(session.load(csv_lines(ids)))
    await asyncio.sleep(0)
    assert session.status is LoadStatus.LOADING

    late = await queries.settle(ids[-1], interval=0)
    missing = await queries.settle(ABSENT[0], interval=0)
    await load

    assert late.outcome is SearchOutcome.MATCH
    assert missing.outcome is SearchOutcome.NO_MATCH
    assert session.status is LoadStatus.READY


def test_history_is_bounded(session):
    queries = QueryService(session, history_limit=3)
    for u in ABSENT:
        queries.search(u)
    assert len(queries) == 3
    assert [r.identifier for r in queries.history()] == ABSENT[:1:-1]


def test_clear_is_idempotent(queries):
    queries.search(PRESENT[0])
    queries.clear()
    queries.clear()
    assert queries.history() == []


@pytest.mark.asyncio
async def test_refresh_reissues_against_new_index(session, queries):
    await session.load(csv_lines(PRESENT[:10]))
    old = queries.search(PRESENT[15])
    assert old.outcome is SearchOutcome.NO_MATCH
    queries.search(PRESENT[0])

    await session.load(csv_lines(PRESENT[10:]))
    refreshed = queries.refresh()

    assert [r.identifier for r in refreshed] == [PRESENT[15], PRESENT[0]]
    assert refreshed[0] is not old
    assert refreshed[0].outcome is SearchOutcome.MATCH
    assert refreshed[1].outcome is SearchOutcome.NO_MATCH
    assert [r.identifier for r in queries.history()] == [PRESENT[0], PRESENT[15]]


@pytest.mark.asyncio
async def test_labels_do_not_change_outcomes(session, queries):
    await session.load(csv_lines(PRESENT))
    hit = queries.search(PRESENT[0])
    miss = queries.search(ABSENT[0])

    assert describe(hit) == "Present"
    assert describe(miss) == "Not present"
    assert describe(hit, IMPACT_LABELS) == "affected"
    assert describe(miss.outcome, IMPACT_LABELS) == "unaffected"
    assert describe(SearchOutcome.INDETERMINATE, PRESENCE_LABELS) == "(searching)"
    assert hit.outcome is SearchOutcome.MATCH
    assert miss.outcome is SearchOutcome.NO_MATCH


@pytest.mark.asyncio
async def test_uppercase_query_does_not_match_lowercase_record(session, queries):
    await session.load(csv_lines(PRESENT))
    assert queries.search(PRESENT[0].upper()).outcome is SearchOutcome.NO_MATCH
