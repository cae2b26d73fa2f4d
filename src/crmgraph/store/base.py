"""Record access interface.

Defines the Protocol every record store must implement, plus the predicate
vocabulary shared by all stores and the aggregation engine.

Contract (all stores):
- ``get`` returns the raw record or None
- ``search`` returns one page of raw records ordered by ``createdAt``
  descending then id ascending, together with the total number of matches
- ``limit=0`` is a pure count query
- ``create``/``update`` write exactly one record; ``update`` replaces only
  the supplied top-level fields and raises NotFoundError for unknown ids
- failures of the backing system surface as UpstreamError

Raw records are plain dicts in the CRM's camelCase nested shape.
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import (
    Any,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Mapping,
    Optional,
    Protocol,
    Union,
    runtime_checkable,
)

from crmgraph.errors import ValidationError
from crmgraph.records.models import RecordType

Raw = Dict[str, Any]

# Fields searched by free-text queries, per record type (dotted paths)
TEXT_QUERY_FIELDS: Dict[RecordType, List[str]] = {
    RecordType.PERSON: ["name.firstName", "name.lastName", "emails.primaryEmail"],
    RecordType.COMPANY: ["name", "domainName.primaryLinkUrl"],
    RecordType.OPPORTUNITY: ["name"],
    RecordType.TASK: ["title"],
    RecordType.NOTE: ["title"],
    RecordType.COMMENT: ["body"],
    RecordType.TASK_TARGET: [],
    RecordType.NOTE_TARGET: [],
}


# =============================================================================
# Timestamps and field access
# =============================================================================


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp into an aware UTC datetime.

    Naive values are taken to be UTC. Returns None for empty input.

    Raises:
        ValidationError: If the string is not ISO 8601
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"Invalid ISO 8601 timestamp: '{value}'", field="timestamp")
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """Canonical, lexicographically sortable UTC timestamp."""
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def get_path(raw: Mapping[str, Any], path: str) -> Any:
    """Read a dotted path (``name.firstName``) from a raw record."""
    value: Any = raw
    for part in path.split("."):
        if not isinstance(value, Mapping):
            return None
        value = value.get(part)
    return value


def check_window(limit: int, offset: int) -> None:
    """Reject negative pagination arguments."""
    if limit < 0:
        raise ValidationError(f"limit must be >= 0, got {limit}", field="limit")
    if offset < 0:
        raise ValidationError(f"offset must be >= 0, got {offset}", field="offset")


def coerce_record_type(record_type: Union[RecordType, str]) -> RecordType:
    try:
        return RecordType(record_type)
    except ValueError:
        raise ValidationError(f"Unknown record type: '{record_type}'", field="record_type")


# =============================================================================
# Predicates
# =============================================================================


@dataclass(frozen=True)
class RecordFilter:
    """Search predicate understood by every record store.

    All clauses are ANDed:
    - ids: record id in set
    - equals: field equals value; a value of None means "field not set"
    - any_of: field value in set
    - created_from / created_to: inclusive ``createdAt`` range
    - query: case-insensitive substring over the type's text fields
    """

    ids: Optional[FrozenSet[str]] = None
    equals: Mapping[str, Optional[str]] = field(default_factory=dict)
    any_of: Mapping[str, FrozenSet[str]] = field(default_factory=dict)
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None
    query: Optional[str] = None

    @classmethod
    def build(
        cls,
        ids: Optional[Iterable[str]] = None,
        equals: Optional[Mapping[str, Optional[str]]] = None,
        any_of: Optional[Mapping[str, Iterable[str]]] = None,
        created_from: Union[str, datetime, None] = None,
        created_to: Union[str, datetime, None] = None,
        query: Optional[str] = None,
    ) -> "RecordFilter":
        """Build a filter from loosely typed arguments."""
        return cls(
            ids=frozenset(ids) if ids is not None else None,
            equals=dict(equals or {}),
            any_of={k: frozenset(v) for k, v in (any_of or {}).items()},
            created_from=parse_timestamp(created_from),
            created_to=parse_timestamp(created_to),
            query=query or None,
        )

    def matches(self, record_type: RecordType, raw: Mapping[str, Any]) -> bool:
        """Evaluate the predicate against one raw record."""
        if self.ids is not None and raw.get("id") not in self.ids:
            return False

        for path, expected in self.equals.items():
            actual = get_path(raw, path)
            if expected is None:
                if actual not in (None, ""):
                    return False
            elif actual != expected:
                return False

        for path, allowed in self.any_of.items():
            if get_path(raw, path) not in allowed:
                return False

        if self.created_from is not None or self.created_to is not None:
            created = parse_timestamp(raw.get("createdAt"))
            if created is None:
                return False
            if self.created_from is not None and created < self.created_from:
                return False
            if self.created_to is not None and created > self.created_to:
                return False

        if self.query:
            needle = self.query.lower()
            haystack = [get_path(raw, p) for p in TEXT_QUERY_FIELDS[record_type]]
            if not any(isinstance(v, str) and needle in v.lower() for v in haystack):
                return False

        return True


ALL = RecordFilter()


@dataclass
class SearchPage:
    """One page of search results plus the total match count."""

    items: List[Raw] = field(default_factory=list)
    total_count: int = 0


def order_records(records: Iterable[Raw]) -> List[Raw]:
    """Order raw records by createdAt descending, id ascending on ties."""
    by_id = sorted(records, key=lambda r: str(r.get("id", "")))
    epoch = datetime.min.replace(tzinfo=timezone.utc)
    return sorted(
        by_id,
        key=lambda r: parse_timestamp(r.get("createdAt")) or epoch,
        reverse=True,
    )


# =============================================================================
# Store interface
# =============================================================================


@runtime_checkable
class RecordStore(Protocol):
    """Protocol defining the record access interface."""

    def get(self, record_type: Union[RecordType, str], record_id: str) -> Optional[Raw]:
        """Fetch one record by id, or None if it does not exist."""
        ...

    def search(
        self,
        record_type: Union[RecordType, str],
        predicate: RecordFilter = ALL,
        limit: int = 20,
        offset: int = 0,
    ) -> SearchPage:
        """Search records of one type."""
        ...

    def create(self, record_type: Union[RecordType, str], fields: Raw) -> Raw:
        """Create a record and return it as stored."""
        ...

    def update(self, record_type: Union[RecordType, str], record_id: str, fields: Raw) -> Raw:
        """Apply a partial update and return the updated record."""
        ...


class BaseRecordStore(ABC):
    """Abstract base class for record stores.

    Provides record stamping (id, timestamps) and argument checks shared by
    concrete stores.
    """

    store_name: str = "base"

    @abstractmethod
    def get(self, record_type: Union[RecordType, str], record_id: str) -> Optional[Raw]:
        pass

    @abstractmethod
    def search(
        self,
        record_type: Union[RecordType, str],
        predicate: RecordFilter = ALL,
        limit: int = 20,
        offset: int = 0,
    ) -> SearchPage:
        pass

    @abstractmethod
    def create(self, record_type: Union[RecordType, str], fields: Raw) -> Raw:
        pass

    @abstractmethod
    def update(self, record_type: Union[RecordType, str], record_id: str, fields: Raw) -> Raw:
        pass

    @staticmethod
    def _stamp_new(fields: Raw) -> Raw:
        """Copy fields and fill id and canonical timestamps for a new record."""
        record = dict(fields)
        record.setdefault("id", str(uuid.uuid4()))
        now = format_timestamp(utc_now())
        created = parse_timestamp(record.get("createdAt"))
        record["createdAt"] = format_timestamp(created) if created else now
        record["updatedAt"] = now
        return record

    @staticmethod
    def _apply_update(current: Raw, fields: Raw) -> Raw:
        """Merge a partial update; id and createdAt are immutable."""
        updated = dict(current)
        for key, value in fields.items():
            if key in ("id", "createdAt"):
                continue
            updated[key] = value
        updated["updatedAt"] = format_timestamp(utc_now())
        return updated
