"""
creatorsubs/core/sql_store.py

SQLAlchemy-backed record store.

Maintains the same contract as InMemoryRecordStore:
- Conditional create (primary key IntegrityError -> RecordConflictError)
- Compare-and-swap update/replace (UPDATE ... WHERE version = :expected)
- Filtered, ordered queries
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence
import uuid

from sqlalchemy import select, insert, update, delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from creatorsubs.core.database import COLLECTION_TABLES, get_engine
from creatorsubs.core.errors import RecordStoreError
from creatorsubs.core.store import (
    RecordConflictError,
    RecordNotFoundError,
    Where,
    apply_filters,
)


def _column_clause(table, where: Where):
    col = table.c[where.field]
    if where.op == "==":
        return col.is_(None) if where.value is None else col == where.value
    if where.op == "!=":
        return col.is_not(None) if where.value is None else col != where.value
    if where.op == "<":
        return col < where.value
    if where.op == "<=":
        return col <= where.value
    if where.op == ">":
        return col > where.value
    if where.op == ">=":
        return col >= where.value
    if where.op == "in":
        return col.in_(list(where.value))
    raise ValueError(f"Operator {where.op} is not pushed down to SQL")


class SqlRecordStore:
    """
    SQL record store over the tables declared in core/database.py.

    ``contains`` filters target JSON array columns and are evaluated in
    Python after the SQL query; ``limit`` is then applied in Python as well.
    """

    def __init__(
        self,
        engine=None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._engine = engine or get_engine()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def now(self) -> datetime:
        return self._clock()

    def new_id(self) -> str:
        return uuid.uuid4().hex

    @contextmanager
    def _transaction(self):
        try:
            with self._engine.begin() as conn:
                yield conn
        except IntegrityError:
            raise
        except SQLAlchemyError as exc:
            raise RecordStoreError(f"Record store failure: {exc.__class__.__name__}") from exc

    @staticmethod
    def _table(collection: str):
        try:
            return COLLECTION_TABLES[collection]
        except KeyError:
            raise ValueError(f"Unknown collection: {collection}")

    @staticmethod
    def _values(table, data: Dict[str, Any]) -> Dict[str, Any]:
        unknown = [k for k in data if k not in table.c]
        if unknown:
            raise ValueError(f"Unknown fields for {table.name}: {', '.join(sorted(unknown))}")
        return dict(data)

    @staticmethod
    def _fetch(conn, table, record_id: str) -> Optional[Dict[str, Any]]:
        row = conn.execute(select(table).where(table.c.id == record_id)).first()
        return dict(row._mapping) if row else None

    def get(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        table = self._table(collection)
        with self._transaction() as conn:
            return self._fetch(conn, table, record_id)

    def query(
        self,
        collection: str,
        filters: Sequence[Where] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        table = self._table(collection)
        pushed = [f for f in filters if f.op != "contains"]
        deferred = [f for f in filters if f.op == "contains"]

        stmt = select(table)
        for f in pushed:
            stmt = stmt.where(_column_clause(table, f))
        if order_by:
            col = table.c[order_by]
            # id breaks ties for deterministic ordering
            stmt = stmt.order_by(col.desc() if descending else col.asc(), table.c.id)
        if limit is not None and not deferred:
            stmt = stmt.limit(limit)

        with self._transaction() as conn:
            records = [dict(row._mapping) for row in conn.execute(stmt)]

        if deferred:
            records = apply_filters(records, deferred)
            if limit is not None:
                records = records[:limit]
        return records

    def create(self, collection: str, data: Dict[str, Any], record_id: Optional[str] = None) -> Dict[str, Any]:
        table = self._table(collection)
        rid = record_id or data.get("id") or self.new_id()
        values = self._values(table, {**data, "id": rid, "version": 1})
        try:
            with self._transaction() as conn:
                conn.execute(insert(table).values(**values))
                return self._fetch(conn, table, rid)
        except IntegrityError as exc:
            raise RecordConflictError(f"{collection}/{rid} already exists") from exc

    def update(
        self,
        collection: str,
        record_id: str,
        changes: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Dict[str, Any]:
        table = self._table(collection)
        values = self._values(table, {k: v for k, v in changes.items() if k not in ("id", "version")})
        return self._write(collection, table, record_id, values, expected_version)

    def replace(
        self,
        collection: str,
        record_id: str,
        data: Dict[str, Any],
        expected_version: int,
    ) -> Dict[str, Any]:
        table = self._table(collection)
        supplied = self._values(table, {k: v for k, v in data.items() if k not in ("id", "version")})
        # Columns absent from the new document are cleared
        values = {c.name: supplied.get(c.name) for c in table.c if c.name not in ("id", "version")}
        return self._write(collection, table, record_id, values, expected_version)

    def _write(self, collection, table, record_id, values, expected_version):
        stmt = update(table).where(table.c.id == record_id)
        if expected_version is not None:
            stmt = stmt.where(table.c.version == expected_version)
        stmt = stmt.values(**values, version=table.c.version + 1)

        with self._transaction() as conn:
            result = conn.execute(stmt)
            if result.rowcount == 0:
                current = self._fetch(conn, table, record_id)
                if current is None:
                    raise RecordNotFoundError(f"{collection}/{record_id} not found")
                raise RecordConflictError(
                    f"{collection}/{record_id} version {current['version']} != expected {expected_version}"
                )
            return self._fetch(conn, table, record_id)

    def delete(self, collection: str, record_id: str) -> bool:
        table = self._table(collection)
        with self._transaction() as conn:
            result = conn.execute(delete(table).where(table.c.id == record_id))
            return result.rowcount > 0
