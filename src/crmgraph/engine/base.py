"""Shared plumbing for aggregators.

Every aggregator is constructed with an explicit record store; there is no
process-wide client. Store calls go through the helpers here so that any
non-crmgraph failure of the store surfaces as UpstreamError.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, List, Optional, Tuple, TypeVar

from crmgraph.config import config
from crmgraph.engine.merge import fetch_all
from crmgraph.errors import CRMGraphError, NotFoundError, UpstreamError
from crmgraph.records.models import ActivityItem, RecordType
from crmgraph.records.normalize import normalize_record
from crmgraph.store.base import ALL, Raw, RecordFilter, RecordStore, SearchPage

logger = logging.getLogger(__name__)

T = TypeVar("T")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MICROSECOND = timedelta(microseconds=1)


def activity_order(item: ActivityItem) -> Tuple[int, str]:
    """Merge key: newest first, id ascending on identical timestamps."""
    created = item.created_at
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return (-((created - _EPOCH) // _MICROSECOND), item.id)


class Aggregator:
    """Base class holding the store and fetch settings."""

    def __init__(
        self,
        store: RecordStore,
        page_size: Optional[int] = None,
        scan_limit: Optional[int] = None,
        fetch_workers: Optional[int] = None,
    ):
        """Initialize the aggregator.

        Args:
            store: Record store implementing the RecordStore protocol. REQUIRED.
            page_size: Records per request for full sweeps (default: config)
            scan_limit: Max records per type for full sweeps (default: config)
            fetch_workers: Concurrency for independent fetches (default: config)
        """
        if store is None:
            raise TypeError(f"{type(self).__name__} requires a record store.")
        self.store = store
        self.page_size = page_size or config.page_size
        self.scan_limit = scan_limit or config.scan_limit
        self.fetch_workers = fetch_workers or config.fetch_workers

    def _call(self, operation: str, fn: Callable[..., T], *args: Any) -> T:
        try:
            return fn(*args)
        except CRMGraphError:
            raise
        except Exception as e:
            raise UpstreamError(f"Record store {operation} failed: {e}", operation) from e

    def _get(self, record_type: RecordType, record_id: str) -> Optional[Raw]:
        return self._call("get", self.store.get, record_type, record_id)

    def _require(self, record_type: RecordType, record_id: str) -> Raw:
        raw = self._get(record_type, record_id)
        if raw is None:
            raise NotFoundError.for_record(record_type.value, record_id)
        return raw

    def _normalize(self, record_type: RecordType, raw: Raw) -> Any:
        """Normalize a store record; malformed records raise ValidationError."""
        return normalize_record(record_type, raw)

    def _search(
        self,
        record_type: RecordType,
        predicate: RecordFilter = ALL,
        limit: int = 20,
        offset: int = 0,
    ) -> SearchPage:
        return self._call("search", self.store.search, record_type, predicate, limit, offset)

    def _count(self, record_type: RecordType, predicate: RecordFilter = ALL) -> int:
        return self._search(record_type, predicate, 0, 0).total_count

    def _update(self, record_type: RecordType, record_id: str, fields: Raw) -> Raw:
        return self._call("update", self.store.update, record_type, record_id, fields)

    def _create(self, record_type: RecordType, fields: Raw) -> Raw:
        return self._call("create", self.store.create, record_type, fields)

    def _fetch_all(
        self, record_type: RecordType, predicate: RecordFilter = ALL
    ) -> Tuple[List[Raw], bool]:
        """Fetch every matching record, bounded by ``scan_limit``."""
        records, truncated = fetch_all(
            lambda limit, offset: self._search(record_type, predicate, limit, offset),
            page_size=self.page_size,
            max_records=self.scan_limit,
        )
        if truncated:
            logger.warning(
                f"Sweep of {record_type.value} stopped at scan limit {self.scan_limit}"
            )
        return records, truncated
