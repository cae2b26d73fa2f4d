"""Test configuration and fixtures.

The seed dataset is a small CRM graph with known relationships:

- companies: Acme (2 contacts), Globex (1 contact), Initech (no contacts,
  2 opportunities)
- persons: Alice and Bob at Acme, Carol at Globex, Dave without a company
- opportunities across stages NEW, WON, PROPOSAL and one without a stage
- tasks and notes linked to Acme and Alice through target records, plus
  direct comments on both
"""

from pathlib import Path
from typing import Dict, List

import pytest

from crmgraph.engine import CRMGraph
from crmgraph.store.memory import InMemoryRecordStore
from crmgraph.store.sqlite import SQLiteRecordStore


def _ts(day: str, time: str = "10:00:00") -> str:
    return f"2026-{day}T{time}Z"


def seed_records() -> Dict[str, List[dict]]:
    """Raw records in the CRM's camelCase shape."""
    return {
        "company": [
            {
                "id": "c-acme",
                "name": "Acme",
                "domainName": {"primaryLinkUrl": "https://acme.com"},
                "employees": 120,
                "createdAt": _ts("01-01"),
            },
            {"id": "c-globex", "name": "Globex", "createdAt": _ts("01-02")},
            {"id": "c-initech", "name": "Initech", "createdAt": _ts("01-03")},
        ],
        "person": [
            {
                "id": "p-alice",
                "name": {"firstName": "Alice", "lastName": "Smith"},
                "emails": {"primaryEmail": "alice@acme.com"},
                "companyId": "c-acme",
                "jobTitle": "CTO",
                "createdAt": _ts("01-04"),
            },
            {
                "id": "p-bob",
                "name": {"firstName": "Bob", "lastName": "Jones"},
                "companyId": "c-acme",
                "createdAt": _ts("01-05"),
            },
            {
                "id": "p-carol",
                "name": {"firstName": "Carol", "lastName": "White"},
                "companyId": "c-globex",
                "createdAt": _ts("01-05", "11:00:00"),
            },
            {
                "id": "p-dave",
                "name": {"firstName": "Dave", "lastName": "Brown"},
                "emails": {"primaryEmail": "dave@example.com"},
                "createdAt": _ts("01-06"),
            },
        ],
        "opportunity": [
            {
                "id": "o-1",
                "name": "Acme renewal",
                "stage": "NEW",
                "amount": {"amountMicros": 50_000_000, "currencyCode": "USD"},
                "companyId": "c-acme",
                "pointOfContactId": "p-alice",
                "createdAt": _ts("01-10"),
            },
            {
                "id": "o-2",
                "name": "Initech pilot",
                "stage": "NEW",
                "amount": {"amountMicros": 25_000_000, "currencyCode": "USD"},
                "companyId": "c-initech",
                "pointOfContactId": "p-dave",
                "createdAt": _ts("01-09"),
            },
            {
                "id": "o-3",
                "name": "Initech expansion",
                "companyId": "c-initech",
                "createdAt": _ts("01-08"),
            },
            {
                "id": "o-4",
                "name": "Loose deal",
                "stage": "WON",
                "amount": {"amountMicros": 10_000_000, "currencyCode": "USD"},
                "createdAt": _ts("01-07"),
            },
            {
                "id": "o-5",
                "name": "Globex deal",
                "stage": "PROPOSAL",
                "amount": {"amountMicros": 1_500_000, "currencyCode": "USD"},
                "companyId": "c-globex",
                "pointOfContactId": "p-carol",
                "createdAt": _ts("01-06"),
            },
        ],
        "task": [
            {
                "id": "t-1",
                "title": "Call Alice",
                "status": "TODO",
                "assigneeId": "wm-1",
                "assignee": {"id": "wm-1", "name": {"firstName": "Wendy", "lastName": "Ma"}},
                "createdAt": _ts("02-01"),
            },
            {
                "id": "t-2",
                "title": "Send proposal",
                "status": "IN_PROGRESS",
                "assigneeId": "wm-2",
                "createdAt": _ts("02-03"),
            },
            {"id": "t-3", "title": "Follow up", "status": "DONE", "createdAt": _ts("02-05")},
            {
                "id": "t-4",
                "title": "Prepare demo",
                "status": "TODO",
                "assigneeId": "wm-1",
                "createdAt": _ts("02-04", "12:00:00"),
            },
        ],
        "note": [
            {
                "id": "n-1",
                "title": "Kickoff notes",
                "bodyV2": {"markdown": "# Kickoff\nScope agreed."},
                "authorId": "wm-1",
                "createdAt": _ts("02-02"),
            },
            {
                "id": "n-2",
                "title": "Pricing call",
                "body": "Asked for a discount.",
                "authorId": "wm-2",
                "createdAt": _ts("02-04", "12:00:00"),
            },
            {"id": "n-3", "title": "Old note", "authorId": "wm-1", "createdAt": _ts("01-15")},
        ],
        "comment": [
            {
                "id": "cm-1",
                "body": "Great call today",
                "authorId": "wm-1",
                "personId": "p-alice",
                "createdAt": _ts("02-06"),
            },
            {
                "id": "cm-2",
                "body": "Budget approved",
                "authorId": "wm-2",
                "companyId": "c-acme",
                "createdAt": _ts("01-20"),
            },
        ],
        "taskTarget": [
            {"id": "tt-1", "taskId": "t-1", "personId": "p-alice", "createdAt": _ts("02-01")},
            {"id": "tt-2", "taskId": "t-2", "companyId": "c-acme", "createdAt": _ts("02-03")},
            {"id": "tt-3", "taskId": "t-4", "companyId": "c-acme", "createdAt": _ts("02-04")},
        ],
        "noteTarget": [
            {"id": "nt-1", "noteId": "n-1", "companyId": "c-acme", "createdAt": _ts("02-02")},
            {"id": "nt-2", "noteId": "n-2", "personId": "p-alice", "createdAt": _ts("02-04")},
        ],
    }


def seed_store(store) -> None:
    """Write the seed dataset into any record store."""
    for record_type, items in seed_records().items():
        for item in items:
            store.create(record_type, item)


@pytest.fixture
def memory_store() -> InMemoryRecordStore:
    """Provide an in-memory store holding the seed dataset."""
    return InMemoryRecordStore(seed_records())


@pytest.fixture
def sqlite_store(tmp_path: Path):
    """Provide a SQLite store holding the seed dataset."""
    store = SQLiteRecordStore(tmp_path / "test_crm.sqlite")
    seed_store(store)
    yield store
    store.close()


@pytest.fixture(params=["memory", "sqlite"])
def store(request):
    """Seeded store, once per backend."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def graph(store) -> CRMGraph:
    """Engine over the seeded store; small pages exercise multi-page sweeps."""
    return CRMGraph(store, page_size=2, scan_limit=1000, fetch_workers=1)
