"""Record stores.

Provides the record access interface (Protocol), the predicate vocabulary and
two implementations: an in-memory reference store and a SQLite store.
"""

from crmgraph.store.base import (
    BaseRecordStore,
    RecordFilter,
    RecordStore,
    SearchPage,
)
from crmgraph.store.memory import InMemoryRecordStore
from crmgraph.store.registry import RecordStoreFactory, RecordStoreRegistry
from crmgraph.store.sqlite import SQLiteRecordStore

__all__ = [
    "BaseRecordStore",
    "RecordFilter",
    "RecordStore",
    "SearchPage",
    "InMemoryRecordStore",
    "SQLiteRecordStore",
    "RecordStoreFactory",
    "RecordStoreRegistry",
]
