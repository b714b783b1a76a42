"""
creatorsubs/core/store.py

Keyed record store used by every engine component.

The store is a document-style collection abstraction: get by id, filtered
queries, create, update, replace, delete, plus a server timestamp. Every
record carries an integer ``version`` bumped on each write so callers can
make compare-and-swap writes. There is no multi-record transaction.

Two implementations share this contract:
- InMemoryRecordStore (this module): tests and local development.
- SqlRecordStore (core/sql_store.py): SQLAlchemy-backed persistence.
"""

import copy
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Sequence

# Collection names
PLANS = "plans"
PROMO_CODES = "promo_codes"
SUBSCRIPTIONS = "user_subscriptions"
USERS = "users"

OPERATORS = ("==", "!=", "<", "<=", ">", ">=", "in", "contains")


class RecordNotFoundError(LookupError):
    """Raised when a write targets a record id that does not exist."""


class RecordConflictError(Exception):
    """Raised when a conditional write loses: id taken or version moved."""


@dataclass(frozen=True)
class Where:
    """Single field predicate. ``contains`` tests membership in an array field."""
    field: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in OPERATORS:
            raise ValueError(f"Unsupported operator: {self.op}")

    def matches(self, record: Dict[str, Any]) -> bool:
        actual = record.get(self.field)
        if self.op == "==":
            return actual == self.value
        if self.op == "!=":
            return actual != self.value
        if self.op == "in":
            return actual in self.value
        if self.op == "contains":
            return actual is not None and self.value in actual
        if actual is None:
            return False
        if self.op == "<":
            return actual < self.value
        if self.op == "<=":
            return actual <= self.value
        if self.op == ">":
            return actual > self.value
        return actual >= self.value


def apply_filters(records: Iterable[Dict[str, Any]], filters: Sequence[Where]) -> List[Dict[str, Any]]:
    return [r for r in records if all(f.matches(r) for f in filters)]


def sort_records(records: List[Dict[str, Any]], order_by: Optional[str], descending: bool = False) -> List[Dict[str, Any]]:
    if not order_by:
        return records
    # Records missing the field sort after present ones in ascending order
    present = [r for r in records if r.get(order_by) is not None]
    missing = [r for r in records if r.get(order_by) is None]
    present.sort(key=lambda r: r[order_by], reverse=descending)
    return missing + present if descending else present + missing


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RecordStore(Protocol):
    """
    Protocol for record stores.

    Implementations must provide:
    - A server timestamp (now) and id generator (new_id)
    - Conditional create (fails if the id exists)
    - Version-checked update/replace (compare-and-swap)
    """

    def now(self) -> datetime:
        ...

    def new_id(self) -> str:
        ...

    def get(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        ...

    def query(
        self,
        collection: str,
        filters: Sequence[Where] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        ...

    def create(self, collection: str, data: Dict[str, Any], record_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Insert a new record.

        Raises:
            RecordConflictError: If a record with this id already exists
        """
        ...

    def update(
        self,
        collection: str,
        record_id: str,
        changes: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Merge fields into an existing record and return the merged record.

        Raises:
            RecordNotFoundError: If the record does not exist
            RecordConflictError: If expected_version is given and stale
        """
        ...

    def replace(
        self,
        collection: str,
        record_id: str,
        data: Dict[str, Any],
        expected_version: int,
    ) -> Dict[str, Any]:
        ...

    def delete(self, collection: str, record_id: str) -> bool:
        ...


class InMemoryRecordStore:
    """
    Thread-safe in-memory record store.

    Each primitive runs under one lock, which makes create and the
    version-checked writes atomic. Records are deep-copied in and out so
    callers never share mutable state with the store.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.RLock()
        self._clock = clock or utc_now
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex)

    def now(self) -> datetime:
        return self._clock()

    def new_id(self) -> str:
        return self._id_factory()

    def _collection(self, name: str) -> Dict[str, Dict[str, Any]]:
        return self._collections.setdefault(name, {})

    def get(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._collection(collection).get(record_id)
            return copy.deepcopy(record) if record is not None else None

    def query(
        self,
        collection: str,
        filters: Sequence[Where] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        with self._lock:
            matched = apply_filters(self._collection(collection).values(), filters)
            ordered = sort_records(matched, order_by, descending)
            if limit is not None:
                ordered = ordered[:limit]
            return copy.deepcopy(ordered)

    def create(self, collection: str, data: Dict[str, Any], record_id: Optional[str] = None) -> Dict[str, Any]:
        with self._lock:
            records = self._collection(collection)
            rid = record_id or data.get("id") or self.new_id()
            if rid in records:
                raise RecordConflictError(f"{collection}/{rid} already exists")
            record = {**copy.deepcopy(data), "id": rid, "version": 1}
            records[rid] = record
            return copy.deepcopy(record)

    def update(
        self,
        collection: str,
        record_id: str,
        changes: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Dict[str, Any]:
        with self._lock:
            current = self._require(collection, record_id, expected_version)
            merged = {**current, **copy.deepcopy(changes), "id": record_id, "version": current["version"] + 1}
            self._collection(collection)[record_id] = merged
            return copy.deepcopy(merged)

    def replace(
        self,
        collection: str,
        record_id: str,
        data: Dict[str, Any],
        expected_version: int,
    ) -> Dict[str, Any]:
        with self._lock:
            current = self._require(collection, record_id, expected_version)
            record = {**copy.deepcopy(data), "id": record_id, "version": current["version"] + 1}
            self._collection(collection)[record_id] = record
            return copy.deepcopy(record)

    def delete(self, collection: str, record_id: str) -> bool:
        with self._lock:
            return self._collection(collection).pop(record_id, None) is not None

    def _require(self, collection: str, record_id: str, expected_version: Optional[int]) -> Dict[str, Any]:
        current = self._collection(collection).get(record_id)
        if current is None:
            raise RecordNotFoundError(f"{collection}/{record_id} not found")
        if expected_version is not None and current["version"] != expected_version:
            raise RecordConflictError(
                f"{collection}/{record_id} version {current['version']} != expected {expected_version}"
            )
        return current

    def clear(self) -> None:
        """
        Drop all records.
        FOR TESTING ONLY.
        """
        with self._lock:
            self._collections.clear()

    def count(self, collection: str) -> int:
        with self._lock:
            return len(self._collection(collection))


def get_record_store(backend: Optional[str] = None) -> RecordStore:
    """
    Build the record store selected by configuration.

    - "memory": InMemoryRecordStore
    - "sql": SqlRecordStore bound to DATABASE_URL (tables created if missing)

    Called once when the app is constructed; the result is injected into
    every service rather than looked up globally.
    """
    from creatorsubs.core.config import settings

    choice = (backend or settings.RECORD_STORE).lower()
    if choice == "sql":
        from creatorsubs.core.sql_store import SqlRecordStore
        from creatorsubs.core.database import create_all_tables

        create_all_tables()
        return SqlRecordStore()
    if choice == "memory":
        return InMemoryRecordStore()
    raise ValueError(f"Unknown RECORD_STORE backend: {choice}")
