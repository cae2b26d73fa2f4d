"""SQLite record store.

Stores every raw record as a JSON document in a single table keyed by
(record_type, record_id). Predicates compile to ``json_extract`` clauses, so
any reference field can be filtered on without a per-type schema.

Table:
- crm_records(record_type, record_id, data JSON, created_at, updated_at)

``created_at`` holds the canonical UTC timestamp (see ``format_timestamp``),
which sorts lexicographically; date ranges and ordering use it directly.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional, Tuple, Union

from crmgraph.errors import NotFoundError, UpstreamError, ValidationError
from crmgraph.records.models import RecordType
from crmgraph.store.base import (
    ALL,
    TEXT_QUERY_FIELDS,
    BaseRecordStore,
    Raw,
    RecordFilter,
    SearchPage,
    check_window,
    coerce_record_type,
    format_timestamp,
)

logger = logging.getLogger(__name__)


def _json_path(field_path: str) -> str:
    return "$." + field_path


def _placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))


class SQLiteRecordStore(BaseRecordStore):
    """Record store backed by one SQLite database file.

    Supports context manager protocol:
        with SQLiteRecordStore(db_path) as store:
            store.create("company", {...})
    """

    store_name = "sqlite"

    def __init__(self, db_path: Path):
        """Initialize the store and create tables if needed.

        Args:
            db_path: Path to the SQLite database file. REQUIRED.

        Raises:
            TypeError: If db_path is None
        """
        if db_path is None:
            raise TypeError("SQLiteRecordStore requires an explicit db_path.")
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_tables()

    def __enter__(self) -> "SQLiteRecordStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Checkpoint the database so no journal files remain."""
        try:
            conn = sqlite3.connect(self.db_path)
            conn.execute("PRAGMA journal_mode=DELETE")
            conn.close()
        except sqlite3.Error as e:
            logger.warning(f"Failed to checkpoint {self.db_path}: {e}")

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Open a connection that commits on success and always closes."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _init_tables(self) -> None:
        """Initialize tables (migrations)."""
        try:
            with self._connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS crm_records (
                        record_type TEXT NOT NULL,
                        record_id TEXT NOT NULL,
                        data TEXT NOT NULL,
                        created_at TEXT NOT NULL,
                        updated_at TEXT NOT NULL,
                        PRIMARY KEY (record_type, record_id)
                    )
                    """
                )

                # Timeline ordering: createdAt desc, id asc per type
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_crm_records_type_created
                    ON crm_records(record_type, created_at)
                    """
                )
        except sqlite3.Error as e:
            raise UpstreamError(f"Failed to initialize {self.db_path}: {e}", "init") from e

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, record_type: Union[RecordType, str], record_id: str) -> Optional[Raw]:
        rtype = coerce_record_type(record_type)
        try:
            with self._connection() as conn:
                row = conn.execute(
                    "SELECT data FROM crm_records WHERE record_type = ? AND record_id = ?",
                    (rtype.value, record_id),
                ).fetchone()
        except sqlite3.Error as e:
            raise UpstreamError(f"get {rtype.value} failed: {e}", "get") from e
        return json.loads(row["data"]) if row else None

    def search(
        self,
        record_type: Union[RecordType, str],
        predicate: RecordFilter = ALL,
        limit: int = 20,
        offset: int = 0,
    ) -> SearchPage:
        rtype = coerce_record_type(record_type)
        check_window(limit, offset)
        where, params = self._compile(rtype, predicate)

        try:
            with self._connection() as conn:
                total = conn.execute(
                    f"SELECT COUNT(*) FROM crm_records WHERE {where}", params
                ).fetchone()[0]
                rows: List[sqlite3.Row] = []
                if limit:
                    rows = conn.execute(
                        f"""
                        SELECT data FROM crm_records WHERE {where}
                        ORDER BY created_at DESC, record_id ASC
                        LIMIT ? OFFSET ?
                        """,
                        [*params, limit, offset],
                    ).fetchall()
        except sqlite3.Error as e:
            raise UpstreamError(f"search {rtype.value} failed: {e}", "search") from e

        return SearchPage(items=[json.loads(r["data"]) for r in rows], total_count=total)

    def _compile(self, rtype: RecordType, predicate: RecordFilter) -> Tuple[str, List[Any]]:
        """Compile a predicate into a WHERE clause and its parameters."""
        clauses: List[str] = ["record_type = ?"]
        params: List[Any] = [rtype.value]

        if predicate.ids is not None:
            if not predicate.ids:
                clauses.append("0")
            else:
                ids = sorted(predicate.ids)
                clauses.append(f"record_id IN ({_placeholders(len(ids))})")
                params.extend(ids)

        for path, expected in predicate.equals.items():
            if expected is None:
                clauses.append(
                    "(json_extract(data, ?) IS NULL OR json_extract(data, ?) = '')"
                )
                params.extend([_json_path(path), _json_path(path)])
            else:
                clauses.append("json_extract(data, ?) = ?")
                params.extend([_json_path(path), expected])

        for path, allowed in predicate.any_of.items():
            if not allowed:
                clauses.append("0")
                continue
            values = sorted(allowed)
            clauses.append(f"json_extract(data, ?) IN ({_placeholders(len(values))})")
            params.append(_json_path(path))
            params.extend(values)

        if predicate.created_from is not None:
            clauses.append("created_at >= ?")
            params.append(format_timestamp(predicate.created_from))
        if predicate.created_to is not None:
            clauses.append("created_at <= ?")
            params.append(format_timestamp(predicate.created_to))

        if predicate.query:
            fields = TEXT_QUERY_FIELDS[rtype]
            if not fields:
                clauses.append("0")
            else:
                ors = ["instr(lower(json_extract(data, ?)), ?) > 0" for _ in fields]
                clauses.append("(" + " OR ".join(ors) + ")")
                for path in fields:
                    params.extend([_json_path(path), predicate.query.lower()])

        return " AND ".join(clauses), params

    # =========================================================================
    # Writes
    # =========================================================================

    def create(self, record_type: Union[RecordType, str], fields: Raw) -> Raw:
        rtype = coerce_record_type(record_type)
        record = self._stamp_new(fields)
        try:
            with self._connection() as conn:
                conn.execute(
                    """
                    INSERT INTO crm_records (record_type, record_id, data, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        rtype.value,
                        record["id"],
                        json.dumps(record),
                        record["createdAt"],
                        record["updatedAt"],
                    ),
                )
        except sqlite3.IntegrityError as e:
            raise ValidationError(
                f"{rtype.value} '{record['id']}' already exists", field="id"
            ) from e
        except sqlite3.Error as e:
            raise UpstreamError(f"create {rtype.value} failed: {e}", "create") from e

        logger.debug(f"Created {rtype.value} {record['id']}")
        return record

    def update(self, record_type: Union[RecordType, str], record_id: str, fields: Raw) -> Raw:
        rtype = coerce_record_type(record_type)
        try:
            with self._connection() as conn:
                row = conn.execute(
                    "SELECT data FROM crm_records WHERE record_type = ? AND record_id = ?",
                    (rtype.value, record_id),
                ).fetchone()
                if row is None:
                    raise NotFoundError.for_record(rtype.value, record_id)

                updated = self._apply_update(json.loads(row["data"]), fields)
                conn.execute(
                    """
                    UPDATE crm_records SET data = ?, updated_at = ?
                    WHERE record_type = ? AND record_id = ?
                    """,
                    (json.dumps(updated), updated["updatedAt"], rtype.value, record_id),
                )
        except sqlite3.Error as e:
            raise UpstreamError(f"update {rtype.value} failed: {e}", "update") from e

        logger.debug(f"Updated {rtype.value} {record_id}: {sorted(fields)}")
        return updated
