"""In-memory record store (reference implementation).

Keeps raw records in per-type dicts. Used by the test suite and for
embedding the engine over data already held in memory. Returned records are
copies, so callers never mutate the store by accident.
"""

import copy
import logging
from typing import Dict, Iterable, Optional, Union

from crmgraph.errors import NotFoundError, ValidationError
from crmgraph.records.models import RecordType
from crmgraph.store.base import (
    ALL,
    BaseRecordStore,
    Raw,
    RecordFilter,
    SearchPage,
    check_window,
    coerce_record_type,
    order_records,
)

logger = logging.getLogger(__name__)


class InMemoryRecordStore(BaseRecordStore):
    """Record store backed by Python dicts."""

    store_name = "memory"

    def __init__(self, records: Optional[Dict[str, Iterable[Raw]]] = None):
        """Initialize the store.

        Args:
            records: Optional seed data keyed by record type value
                (e.g. ``{"person": [...], "company": [...]}``)
        """
        self._records: Dict[RecordType, Dict[str, Raw]] = {rt: {} for rt in RecordType}
        for record_type, items in (records or {}).items():
            for item in items:
                self.create(record_type, item)

    def get(self, record_type: Union[RecordType, str], record_id: str) -> Optional[Raw]:
        record = self._records[coerce_record_type(record_type)].get(record_id)
        return copy.deepcopy(record) if record is not None else None

    def search(
        self,
        record_type: Union[RecordType, str],
        predicate: RecordFilter = ALL,
        limit: int = 20,
        offset: int = 0,
    ) -> SearchPage:
        rtype = coerce_record_type(record_type)
        check_window(limit, offset)

        matched = [r for r in self._records[rtype].values() if predicate.matches(rtype, r)]
        ordered = order_records(matched)
        window = ordered[offset : offset + limit] if limit else []
        return SearchPage(items=copy.deepcopy(window), total_count=len(matched))

    def create(self, record_type: Union[RecordType, str], fields: Raw) -> Raw:
        rtype = coerce_record_type(record_type)
        record = self._stamp_new(copy.deepcopy(fields))
        if record["id"] in self._records[rtype]:
            raise ValidationError(
                f"{rtype.value} '{record['id']}' already exists", field="id"
            )
        self._records[rtype][record["id"]] = record
        logger.debug(f"Created {rtype.value} {record['id']}")
        return copy.deepcopy(record)

    def update(self, record_type: Union[RecordType, str], record_id: str, fields: Raw) -> Raw:
        rtype = coerce_record_type(record_type)
        current = self._records[rtype].get(record_id)
        if current is None:
            raise NotFoundError.for_record(rtype.value, record_id)
        updated = self._apply_update(current, copy.deepcopy(fields))
        self._records[rtype][record_id] = updated
        logger.debug(f"Updated {rtype.value} {record_id}: {sorted(fields)}")
        return copy.deepcopy(updated)
