"""
Record stores - persistence boundary for screens.

Records live in named collections. Every mutation goes through a ChangeSet
that is checked in full under the store lock before anything is applied, so
a commit either lands completely or leaves the store untouched. Records carry
a version token; a mutation with a stale token fails with ConflictError.

Two implementations are provided: an in-memory store and a SQLite store with
one table per collection.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator, Mapping, Sequence
from contextlib import AbstractContextManager, ExitStack, contextmanager, nullcontext
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum
from pathlib import Path
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from trellis.errors import ConflictError, NotFoundError, StorageError, ValidationError
from trellis.runtime.logging import get_store_logger, log_with_context

logger = get_store_logger()

# Alias to prevent `list` resolving to RecordStore.list inside the class
_list = list

# =============================================================================
# Collection Schema
# =============================================================================


class ColumnType(StrEnum):
    """Column value types."""

    STR = "str"
    TEXT = "text"
    INT = "int"
    DECIMAL = "decimal"
    BOOL = "bool"
    DATE = "date"
    DATETIME = "datetime"
    JSON = "json"


def _accepts(column_type: ColumnType, value: Any) -> bool:
    """Whether a non-null value can be stored in a column of this type."""
    if column_type in (ColumnType.STR, ColumnType.TEXT):
        return isinstance(value, str)
    if column_type == ColumnType.BOOL:
        return isinstance(value, bool)
    if column_type == ColumnType.INT:
        return isinstance(value, int) and not isinstance(value, bool)
    if column_type == ColumnType.DECIMAL:
        return isinstance(value, int | float | Decimal) and not isinstance(value, bool)
    if column_type == ColumnType.DATETIME:
        return isinstance(value, datetime)
    if column_type == ColumnType.DATE:
        return isinstance(value, date) and not isinstance(value, datetime)
    # JSON: anything json can encode
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return False
    return True


class ColumnSpec(BaseModel):
    """
    A column of a collection.

    Examples:
        - ColumnSpec(name="name", required=True)
        - ColumnSpec(name="active", type=ColumnType.BOOL, default=True)
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Column name")
    type: ColumnType = Field(default=ColumnType.STR, description="Value type")
    required: bool = Field(default=False, description="Must be present and non-empty")
    default: Any | None = Field(default=None, description="Value used when absent on create")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.isidentifier() or v.startswith("_") or v in ("id", "version"):
            raise ValueError(f"Column name '{v}' must be a public identifier other than id/version")
        return v


class CollectionSpec(BaseModel):
    """
    Schema of a record collection.

    Example:
        CollectionSpec(
            name="task",
            columns=[
                ColumnSpec(name="name", required=True),
                ColumnSpec(name="active", type=ColumnType.BOOL, default=True),
            ],
        )
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Collection name")
    columns: tuple[ColumnSpec, ...] = Field(description="Columns in declaration order")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.isidentifier():
            raise ValueError(f"Collection name '{v}' must be an identifier")
        return v

    def column(self, name: str) -> ColumnSpec | None:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def check_known(self, fields: Mapping[str, Any]) -> None:
        for key in fields:
            if self.column(key) is None:
                raise ValidationError(
                    field=f"{self.name}.{key}",
                    rule="known",
                    message=f"Unknown field '{key}' for {self.name}",
                )

    def check_required(self, fields: Mapping[str, Any]) -> None:
        for column in self.columns:
            if not column.required:
                continue
            value = fields.get(column.name)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise ValidationError(
                    field=f"{self.name}.{column.name}",
                    rule="required",
                    message=f"The {column.name} field is required.",
                )

    def check_types(self, fields: Mapping[str, Any]) -> None:
        """Reject values whose Python type does not fit their column."""
        for key, value in fields.items():
            column = self.column(key)
            if column is None or value is None or _accepts(column.type, value):
                continue
            raise ValidationError(
                field=f"{self.name}.{key}",
                rule=column.type.value,
                message=f"The {key} field must be of type {column.type.value}.",
            )

    def with_defaults(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        """Fill absent columns with their defaults, in column order."""
        result: dict[str, Any] = {}
        for column in self.columns:
            if column.name in fields:
                result[column.name] = fields[column.name]
            else:
                result[column.name] = column.default
        return result


# =============================================================================
# Records
# =============================================================================


class Record(BaseModel):
    """
    A stored entity instance.

    The id is assigned at creation and never changes; version starts at 1
    and increases by one on every update.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Opaque, stable identifier")
    collection: str = Field(description="Collection the record belongs to")
    fields: dict[str, Any] = Field(default_factory=dict, description="Field values")
    version: int = Field(default=1, description="Version token for conflict detection")

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)

    def __getitem__(self, name: str) -> Any:
        return self.fields[name]

    def to_dict(self) -> dict[str, Any]:
        """Flatten into a JSON-ready dict (id and version alongside the fields)."""
        data = self.model_dump(mode="json")
        return {"id": data["id"], "version": data["version"], **data["fields"]}


class RecordSet:
    """
    Lazy, finite, restartable view over records matching a filter.

    Nothing is read until iteration; every iteration re-reads the store, so
    the same RecordSet reflects mutations committed in between.
    """

    def __init__(self, store: RecordStore, filters: Mapping[str, Any] | None = None):
        self._store = store
        self._filters = dict(filters or {})

    def __iter__(self) -> Iterator[Record]:
        return iter(self._store._select(self._filters))

    def __len__(self) -> int:
        return len(self._store._select(self._filters))

    def all(self) -> _list[Record]:
        return _list(self)

    def first(self) -> Record | None:
        for record in self:
            return record
        return None

    def __repr__(self) -> str:
        return f"RecordSet({self._store.name!r}, filters={self._filters!r})"


# =============================================================================
# Change Sets
# =============================================================================


class OperationKind(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass
class StagedOperation:
    """One pending mutation."""

    kind: OperationKind
    record_id: str
    fields: dict[str, Any] = field(default_factory=dict)
    expected_version: int | None = None


class ChangeSet:
    """
    Staged mutations against one store, applied together by ``commit``.

    Ids for created records are assigned when staged, so handlers can refer
    to them before commit.
    """

    def __init__(self, store: RecordStore):
        self.store = store
        self.operations: _list[StagedOperation] = []
        self._plan: _list[tuple[StagedOperation, Record | None]] | None = None

    def create(self, fields: Mapping[str, Any]) -> str:
        record_id = self.store.new_id()
        self.operations.append(StagedOperation(OperationKind.CREATE, record_id, dict(fields)))
        return record_id

    def update(
        self, record_id: str, fields: Mapping[str, Any], expected_version: int | None = None
    ) -> None:
        self.operations.append(
            StagedOperation(OperationKind.UPDATE, record_id, dict(fields), expected_version)
        )

    def delete(self, record_id: str, expected_version: int | None = None) -> None:
        self.operations.append(
            StagedOperation(OperationKind.DELETE, record_id, expected_version=expected_version)
        )

    def __len__(self) -> int:
        return len(self.operations)

    def __repr__(self) -> str:
        kinds = ", ".join(f"{op.kind}:{op.record_id}" for op in self.operations)
        return f"ChangeSet({self.store.name!r}, [{kinds}])"


# =============================================================================
# Store Base
# =============================================================================


class RecordStore(ABC):
    """
    Persistence for one collection.

    Subclasses implement ``_fetch``, ``_select`` and ``_write``; checking,
    locking and version handling live here. Stores whose writes can be rolled
    back set ``transactional`` and provide ``transaction()``; stores sharing a
    ``transaction_key`` are written inside one transaction by ``commit_all``.
    """

    transactional: bool = False

    def __init__(self, spec: CollectionSpec):
        self.spec = spec
        # Held only while a change set is checked and written
        self.lock = threading.RLock()

    @property
    def name(self) -> str:
        return self.spec.name

    def new_id(self) -> str:
        return uuid4().hex

    # -- backend primitives -------------------------------------------------

    @abstractmethod
    def _fetch(self, record_id: str) -> Record | None:
        """Read one record, or None."""

    @abstractmethod
    def _select(self, filters: Mapping[str, Any]) -> _list[Record]:
        """Read all records matching equality filters, in creation order."""

    @abstractmethod
    def _write(self, conn: Any, plan: Sequence[tuple[StagedOperation, Record | None]]) -> None:
        """Persist a checked plan using the handle yielded by ``transaction()``."""

    @property
    def transaction_key(self) -> object:
        return self

    def transaction(self) -> AbstractContextManager[Any]:
        """Open a write transaction; commits on exit, rolls back on error."""
        return nullcontext()

    def close(self) -> None:
        """Release backend resources."""

    # -- reads ----------------------------------------------------------------

    def find(self, record_id: str) -> Record | None:
        return self._fetch(record_id)

    def get(self, record_id: str) -> Record:
        record = self._fetch(record_id)
        if record is None:
            raise NotFoundError(self.name, record_id)
        return record

    def list(self, filters: Mapping[str, Any] | None = None) -> RecordSet:
        if filters:
            unknown = [k for k in filters if k != "id" and self.spec.column(k) is None]
            if unknown:
                raise ValueError(f"Unknown filter fields for {self.name}: {', '.join(unknown)}")
        return RecordSet(self, filters)

    def count(self) -> int:
        return len(self._select({}))

    # -- writes ---------------------------------------------------------------

    def changes(self) -> ChangeSet:
        return ChangeSet(self)

    def create(self, fields: Mapping[str, Any]) -> Record:
        changeset = self.changes()
        changeset.create(fields)
        record = self.commit(changeset)[0]
        assert record is not None
        return record

    def update(
        self, record_id: str, fields: Mapping[str, Any], expected_version: int | None = None
    ) -> Record:
        changeset = self.changes()
        changeset.update(record_id, fields, expected_version)
        record = self.commit(changeset)[0]
        assert record is not None
        return record

    def delete(self, record_id: str, expected_version: int | None = None) -> None:
        """
        Delete a record.

        Not idempotent: deleting an id that is already gone raises NotFoundError.
        """
        changeset = self.changes()
        changeset.delete(record_id, expected_version)
        self.commit(changeset)

    def commit(self, changeset: ChangeSet) -> _list[Record | None]:
        """Check then apply a change set; returns the resulting record per operation."""
        if changeset.store is not self:
            raise ValueError(f"Change set belongs to '{changeset.store.name}', not '{self.name}'")
        return commit_all([changeset])

    def prepare(self, changeset: ChangeSet) -> None:
        """
        Check every staged operation against current state.

        Must be called with the lock held. Raises without side effects on the
        first operation that cannot be applied.
        """
        if changeset.store is not self:
            raise ValueError(f"Change set belongs to '{changeset.store.name}', not '{self.name}'")

        overlay: dict[str, Record | None] = {}
        plan: _list[tuple[StagedOperation, Record | None]] = []

        def current(record_id: str) -> Record | None:
            if record_id in overlay:
                return overlay[record_id]
            return self._fetch(record_id)

        for op in changeset.operations:
            if op.kind == OperationKind.CREATE:
                self.spec.check_known(op.fields)
                values = self.spec.with_defaults(op.fields)
                self.spec.check_types(values)
                self.spec.check_required(values)
                if current(op.record_id) is not None:
                    raise ValueError(f"Duplicate record id '{op.record_id}' in {self.name}")
                result: Record | None = Record(
                    id=op.record_id, collection=self.name, fields=values, version=1
                )
            else:
                existing = current(op.record_id)
                if existing is None:
                    raise NotFoundError(self.name, op.record_id)
                if op.expected_version is not None and op.expected_version != existing.version:
                    raise ConflictError(
                        self.name, op.record_id, op.expected_version, existing.version
                    )
                if op.kind == OperationKind.UPDATE:
                    self.spec.check_known(op.fields)
                    self.spec.check_types(op.fields)
                    values = {**existing.fields, **op.fields}
                    self.spec.check_required(values)
                    result = existing.model_copy(
                        update={"fields": values, "version": existing.version + 1}
                    )
                else:
                    result = None

            overlay[op.record_id] = result
            plan.append((op, result))

        changeset._plan = plan

    def apply(self, changeset: ChangeSet, conn: Any = None) -> _list[Record | None]:
        """
        Write a prepared change set. Must be called with the lock held.

        ``conn`` is the handle of an open ``transaction()``; the write is
        durable only once that transaction commits.
        """
        if changeset._plan is None:
            raise RuntimeError("Change set must be prepared before it is applied")
        plan = changeset._plan
        self._write(conn, plan)
        changeset._plan = None
        return [result for _, result in plan]


def commit_all(changesets: Iterable[ChangeSet]) -> _list[Record | None]:
    """
    Commit change sets spanning several stores as one unit.

    Locks are taken in store-name order and every change set is checked
    before anything is written. Transactional stores are then written inside
    one transaction per ``transaction_key``; the remaining stores are written
    only after those transactions have committed. Empty change sets are
    skipped.

    Raises:
        ValidationError, NotFoundError, ConflictError: A change set failed its checks
        StorageError: The backend failed; no transaction was committed
    """
    pending = [cs for cs in changesets if len(cs)]
    stores = sorted({id(cs.store): cs.store for cs in pending}.values(), key=lambda s: s.name)
    results: dict[int, _list[Record | None]] = {}
    with ExitStack() as locks:
        for store in stores:
            locks.enter_context(store.lock)
        for changeset in pending:
            changeset.store.prepare(changeset)

        with ExitStack() as transactions:
            handles: dict[int, Any] = {}
            for changeset in pending:
                store = changeset.store
                if not store.transactional:
                    continue
                key = id(store.transaction_key)
                if key not in handles:
                    handles[key] = transactions.enter_context(store.transaction())
                results[id(changeset)] = store.apply(changeset, handles[key])

        for changeset in pending:
            if not changeset.store.transactional:
                results[id(changeset)] = changeset.store.apply(changeset)

    for changeset in pending:
        log_with_context(
            logger,
            logging.INFO,
            f"Committed {len(changeset)} change(s) to {changeset.store.name}",
            collection=changeset.store.name,
            operations=[f"{op.kind}:{op.record_id}" for op in changeset.operations],
        )
    return [record for changeset in pending for record in results[id(changeset)]]


# =============================================================================
# Memory Store
# =============================================================================


class MemoryRecordStore(RecordStore):
    """In-process store; records are kept in creation order."""

    def __init__(self, spec: CollectionSpec):
        super().__init__(spec)
        self._records: dict[str, Record] = {}

    def _fetch(self, record_id: str) -> Record | None:
        return self._records.get(record_id)

    def _select(self, filters: Mapping[str, Any]) -> _list[Record]:
        with self.lock:
            records = _list(self._records.values())
        if not filters:
            return records
        return [r for r in records if _matches(r, filters)]

    def _write(self, conn: Any, plan: Sequence[tuple[StagedOperation, Record | None]]) -> None:
        for op, result in plan:
            if result is None:
                del self._records[op.record_id]
            else:
                self._records[op.record_id] = result

    def close(self) -> None:
        self._records.clear()


def _matches(record: Record, filters: Mapping[str, Any]) -> bool:
    for key, expected in filters.items():
        actual = record.id if key == "id" else record.fields.get(key)
        if actual != expected:
            return False
    return True


# =============================================================================
# SQLite Store
# =============================================================================


def quote_identifier(name: str) -> str:
    """Double-quote an SQL identifier."""
    return '"' + name.replace('"', '""') + '"'


def _column_type_to_sqlite(column_type: ColumnType) -> str:
    """Map column types to SQLite types."""
    mapping: dict[ColumnType, str] = {
        ColumnType.INT: "INTEGER",
        ColumnType.DECIMAL: "REAL",
        ColumnType.BOOL: "INTEGER",  # SQLite uses 0/1 for bool
    }
    return mapping.get(column_type, "TEXT")


def _python_to_sqlite(value: Any) -> Any:
    """Convert Python value to SQLite-compatible value."""
    if value is None:
        return None
    elif isinstance(value, datetime | date):
        return value.isoformat()
    elif isinstance(value, Decimal):
        return float(value)
    elif isinstance(value, bool):
        return 1 if value else 0
    elif isinstance(value, dict | list):
        return json.dumps(value)
    else:
        return value


def _sqlite_to_python(value: Any, column: ColumnSpec | None) -> Any:
    """Convert SQLite value to Python type based on column type."""
    if value is None or column is None:
        return value
    if column.type == ColumnType.BOOL:
        return bool(value)
    elif column.type == ColumnType.DATETIME:
        return datetime.fromisoformat(value)
    elif column.type == ColumnType.DATE:
        return date.fromisoformat(value)
    elif column.type == ColumnType.DECIMAL:
        return Decimal(str(value))
    elif column.type == ColumnType.JSON:
        return json.loads(value)
    return value


class DatabaseManager:
    """
    Manages the SQLite database file and per-collection tables.
    """

    def __init__(self, db_path: str | Path = ".trellis/data.db"):
        """
        Initialize the database manager.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """
        Get a database connection; commits on success, rolls back on error.

        Yields:
            SQLite connection

        Raises:
            StorageError: On any sqlite3 error, after rolling back
        """
        try:
            conn = sqlite3.connect(str(self.db_path))
        except sqlite3.Error as e:
            raise StorageError(None, str(e)) from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error("SQLite error on %s: %s", self.db_path, e)
            raise StorageError(None, str(e)) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def create_table(self, spec: CollectionSpec) -> None:
        """Create the table for a collection if it doesn't exist."""
        columns = ['"id" TEXT PRIMARY KEY', '"_version" INTEGER NOT NULL DEFAULT 1']
        for column in spec.columns:
            columns.append(f"{quote_identifier(column.name)} {_column_type_to_sqlite(column.type)}")
        sql = f"CREATE TABLE IF NOT EXISTS {quote_identifier(spec.name)} ({', '.join(columns)})"
        with self.connection() as conn:
            conn.execute(sql)

    def table_exists(self, table_name: str) -> bool:
        with self.connection() as conn:
            cursor = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table_name,)
            )
            return cursor.fetchone() is not None


class SQLiteRecordStore(RecordStore):
    """
    SQLite-backed store for one collection.

    Stores on the same database share one transaction per commit.
    """

    transactional = True

    def __init__(self, db_manager: DatabaseManager, spec: CollectionSpec):
        super().__init__(spec)
        self.db = db_manager
        self.table = quote_identifier(spec.name)
        self.db.create_table(spec)

    def _row_to_record(self, row: sqlite3.Row) -> Record:
        data = dict(row)
        fields = {
            column.name: _sqlite_to_python(data.get(column.name), column)
            for column in self.spec.columns
        }
        return Record(id=data["id"], collection=self.name, fields=fields, version=data["_version"])

    def _fetch(self, record_id: str) -> Record | None:
        with self.db.connection() as conn:
            row = conn.execute(f'SELECT * FROM {self.table} WHERE "id" = ?', (record_id,)).fetchone()
        return self._row_to_record(row) if row else None

    def _select(self, filters: Mapping[str, Any]) -> _list[Record]:
        clauses = []
        params: _list[Any] = []
        for key, value in filters.items():
            if value is None:
                clauses.append(f"{quote_identifier(key)} IS NULL")
            else:
                clauses.append(f"{quote_identifier(key)} = ?")
                params.append(_python_to_sqlite(value))
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        with self.db.connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM {self.table}{where} ORDER BY rowid", params
            ).fetchall()
        return [self._row_to_record(row) for row in rows]

    @property
    def transaction_key(self) -> object:
        return self.db

    def transaction(self) -> AbstractContextManager[sqlite3.Connection]:
        return self.db.connection()

    def _write(
        self, conn: sqlite3.Connection, plan: Sequence[tuple[StagedOperation, Record | None]]
    ) -> None:
        for op, result in plan:
            if result is None:
                conn.execute(f'DELETE FROM {self.table} WHERE "id" = ?', (op.record_id,))
                continue
            names = _list(result.fields)
            values = [_python_to_sqlite(result.fields[n]) for n in names]
            if op.kind == OperationKind.CREATE:
                cols = ", ".join(['"id"', '"_version"', *(quote_identifier(n) for n in names)])
                marks = ", ".join("?" for _ in range(len(names) + 2))
                conn.execute(
                    f"INSERT INTO {self.table} ({cols}) VALUES ({marks})",
                    [result.id, result.version, *values],
                )
            else:
                assignments = ", ".join(
                    ['"_version" = ?', *(f"{quote_identifier(n)} = ?" for n in names)]
                )
                conn.execute(
                    f'UPDATE {self.table} SET {assignments} WHERE "id" = ?',
                    [result.version, *values, result.id],
                )


# =============================================================================
# Store Registry
# =============================================================================


class ReadOnlyStore:
    """Read facade over a store, handed to screen queries."""

    def __init__(self, store: RecordStore):
        self._store = store

    @property
    def name(self) -> str:
        return self._store.name

    def get(self, record_id: str) -> Record:
        return self._store.get(record_id)

    def find(self, record_id: str) -> Record | None:
        return self._store.find(record_id)

    def list(self, filters: Mapping[str, Any] | None = None) -> RecordSet:
        return self._store.list(filters)

    def count(self) -> int:
        return self._store.count()


class StoreView:
    """Read-only mapping of collection name to store."""

    def __init__(self, stores: Mapping[str, RecordStore]):
        self._stores = stores

    def __getitem__(self, name: str) -> ReadOnlyStore:
        return ReadOnlyStore(self._stores[name])

    def __contains__(self, name: object) -> bool:
        return name in self._stores

    def __iter__(self) -> Iterator[str]:
        return iter(self._stores)


class StoreRegistry:
    """
    Builds and holds the stores of a panel, keyed by collection name.
    """

    def __init__(self, backend: str = "memory", db_path: str | Path | None = None):
        """
        Initialize the registry.

        Args:
            backend: "memory" or "sqlite"
            db_path: SQLite database path (sqlite backend only)
        """
        if backend not in ("memory", "sqlite"):
            raise ValueError(f"Unknown storage backend: {backend}")
        self.backend = backend
        self._db = DatabaseManager(db_path or ".trellis/data.db") if backend == "sqlite" else None
        self._stores: dict[str, RecordStore] = {}

    def create_store(self, spec: CollectionSpec) -> RecordStore:
        """Create and register the store for a collection."""
        if spec.name in self._stores:
            raise ValueError(f"Store already registered for collection: {spec.name}")
        store: RecordStore
        if self._db is not None:
            store = SQLiteRecordStore(self._db, spec)
        else:
            store = MemoryRecordStore(spec)
        self._stores[spec.name] = store
        logger.debug("Created %s store for %s", self.backend, spec.name)
        return store

    def add(self, store: RecordStore) -> RecordStore:
        if store.name in self._stores:
            raise ValueError(f"Store already registered for collection: {store.name}")
        self._stores[store.name] = store
        return store

    def get(self, name: str) -> RecordStore | None:
        return self._stores.get(name)

    def __getitem__(self, name: str) -> RecordStore:
        try:
            return self._stores[name]
        except KeyError:
            raise KeyError(f"No store registered for collection: {name}") from None

    def __contains__(self, name: object) -> bool:
        return name in self._stores

    def names(self) -> _list[str]:
        return _list(self._stores)

    def view(self) -> StoreView:
        return StoreView(self._stores)

    def close_all(self) -> None:
        for store in self._stores.values():
            store.close()
        self._stores.clear()
