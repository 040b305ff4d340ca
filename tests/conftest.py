import random
import uuid

import pytest

from uuidlookup.ingest import LookupSession
from uuidlookup.query import QueryService


def make_ids(n, seed=0):
    rng = random.Random(seed)
    return [str(uuid.UUID(int=rng.getrandbits(128))) for _ in range(n)]


def csv_lines(ids, header="affected_uuid,name"):
    return [header] + [f'"{u}",row{i}' for i, u in enumerate(ids)]


@pytest.fixture
def session():
    return LookupSession(batch_size=50)


@pytest.fixture
def queries(session):
    return QueryService(session)
