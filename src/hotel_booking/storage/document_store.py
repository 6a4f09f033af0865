"""SQLite-backed document store with merge writes, increments and transactions."""
from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence, TypeVar

ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"
SCHEMA_VERSION = 2

VALID_JOURNAL_MODES = frozenset({"delete", "truncate", "persist", "memory", "wal", "off"})
VALID_SYNCHRONOUS_MODES = frozenset({"off", "normal", "full", "extra"})

T = TypeVar("T")

logger = logging.getLogger(__name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).strftime(ISO_FORMAT)


def _json_dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), default=str)


class PersistenceError(RuntimeError):
    """Raised when the document store cannot complete a read or write."""


class DocumentExistsError(PersistenceError):
    """Raised when an insert-only write targets an existing document."""

    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"Document {collection}/{doc_id} already exists")
        self.collection = collection
        self.doc_id = doc_id


@dataclass(frozen=True)
class Increment:
    """Write sentinel that adds ``amount`` to the stored numeric field."""

    amount: int | float


class _ServerTimestamp:
    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


@dataclass(frozen=True)
class Document:
    """A stored document and its bookkeeping timestamps."""

    id: str
    data: dict[str, Any]
    created_at: str
    updated_at: str


def _resolve(updates: Mapping[str, Any], existing: Mapping[str, Any] | None, now: str, *, merge: bool) -> dict[str, Any]:
    base = (existing or {}) if merge else {}
    result: dict[str, Any] = dict(base) if merge else {}
    for key, value in updates.items():
        current = base.get(key)
        if isinstance(value, Increment):
            start = current if isinstance(current, (int, float)) and not isinstance(current, bool) else 0
            result[key] = start + value.amount
        elif value is SERVER_TIMESTAMP:
            result[key] = now
        elif isinstance(value, Mapping):
            nested_existing = current if isinstance(current, Mapping) else None
            result[key] = _resolve(value, nested_existing, now, merge=merge)
        else:
            result[key] = value
    return result


def _split_path(collection: str) -> str:
    path = collection.strip("/")
    if not path:
        raise ValueError("Collection path must not be empty")
    return path


class Transaction:
    """Reads and writes executed inside a single SQLite transaction.

    Only usable from within :meth:`SqliteDocumentStore.run_transaction`.
    """

    def __init__(self, conn: sqlite3.Connection, now: str) -> None:
        self._conn = conn
        self._now = now

    @property
    def now(self) -> str:
        """Server timestamp applied to ``SERVER_TIMESTAMP`` writes in this transaction."""
        return self._now

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        return _fetch_one(self._conn, _split_path(collection), doc_id)

    def set(self, collection: str, doc_id: str, data: Mapping[str, Any], *, merge: bool = False) -> None:
        _write(self._conn, _split_path(collection), doc_id, data, self._now, merge=merge)

    def create(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> None:
        _insert(self._conn, _split_path(collection), doc_id, data, self._now)


def _fetch_one(conn: sqlite3.Connection, collection: str, doc_id: str) -> dict[str, Any] | None:
    row = conn.execute(
        "SELECT data_json FROM documents WHERE collection=? AND doc_id=?",
        (collection, doc_id),
    ).fetchone()
    if not row:
        return None
    return json.loads(row[0])


def _fetch_many(
    conn: sqlite3.Connection,
    collection: str,
    *,
    order_by: str | None,
    descending: bool,
    limit: int | None,
) -> list[Document]:
    sql = "SELECT doc_id, data_json, created_at, updated_at FROM documents WHERE collection=?"
    params: list[Any] = [collection]
    if order_by:
        direction = "DESC" if descending else "ASC"
        sql += f" ORDER BY json_extract(data_json, ?) {direction}, doc_id {direction}"
        params.append(f"$.{order_by}")
    else:
        sql += " ORDER BY doc_id ASC"
    if limit is not None:
        sql += " LIMIT ?"
        params.append(int(limit))
    rows = conn.execute(sql, params).fetchall()
    return [
        Document(id=row[0], data=json.loads(row[1]), created_at=row[2], updated_at=row[3])
        for row in rows
    ]


def _write(
    conn: sqlite3.Connection,
    collection: str,
    doc_id: str,
    data: Mapping[str, Any],
    now: str,
    *,
    merge: bool,
) -> None:
    existing = _fetch_one(conn, collection, doc_id)
    resolved = _resolve(data, existing, now, merge=merge)
    conn.execute(
        """
        INSERT INTO documents(collection, doc_id, data_json, created_at, updated_at)
        VALUES(?, ?, ?, ?, ?)
        ON CONFLICT(collection, doc_id) DO UPDATE SET
            data_json=excluded.data_json,
            updated_at=excluded.updated_at
        """,
        (collection, doc_id, _json_dumps(resolved), now, now),
    )


def _insert(conn: sqlite3.Connection, collection: str, doc_id: str, data: Mapping[str, Any], now: str) -> None:
    resolved = _resolve(data, None, now, merge=False)
    try:
        conn.execute(
            """
            INSERT INTO documents(collection, doc_id, data_json, created_at, updated_at)
            VALUES(?, ?, ?, ?, ?)
            """,
            (collection, doc_id, _json_dumps(resolved), now, now),
        )
    except sqlite3.IntegrityError as exc:
        raise DocumentExistsError(collection, doc_id) from exc


class SqliteDocumentStore:
    """Thin async wrapper over sqlite3 exposing a document-store interface.

    Collections are slash-separated paths (``rooms/deluxe/availability``) and each
    document is a JSON object. Writes accept :class:`Increment` and
    ``SERVER_TIMESTAMP`` sentinels, resolved against the stored value at write time.
    """

    def __init__(
        self,
        db_path: Path,
        *,
        busy_timeout_ms: int = 2000,
        journal_mode: str | None = "wal",
        synchronous: str | None = "normal",
    ) -> None:
        self._path = db_path
        self._busy_timeout_ms = busy_timeout_ms
        self._journal_mode = self._normalize_journal_mode(journal_mode)
        self._synchronous = self._normalize_synchronous(synchronous)
        self._connection: sqlite3.Connection | None = None
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # lifecycle

    async def initialize(self) -> None:
        if self._connection is not None:
            return
        async with self._lock:
            if self._connection is None:
                conn = await asyncio.to_thread(self._open_connection)
                self._connection = conn

    async def close(self) -> None:
        if self._connection is None:
            return
        conn = self._connection
        self._connection = None
        await asyncio.to_thread(conn.close)

    async def __aenter__(self) -> "SqliteDocumentStore":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _open_connection(self) -> sqlite3.Connection:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self._path, check_same_thread=False)
        conn.execute(f"PRAGMA busy_timeout = {int(max(self._busy_timeout_ms, 0))};")
        if self._journal_mode:
            conn.execute(f"PRAGMA journal_mode = {self._journal_mode.upper()};")
        if self._synchronous:
            conn.execute(f"PRAGMA synchronous = {self._synchronous.upper()};")
        try:
            self._apply_migrations(conn)
        except sqlite3.OperationalError as exc:
            conn.close()
            logger.error(
                "SQLite migration failed (path=%s, timeout_ms=%s): %s",
                self._path,
                self._busy_timeout_ms,
                exc,
            )
            raise
        return conn

    @staticmethod
    def _normalize_journal_mode(value: str | None) -> str | None:
        if value is None:
            return None
        mode = value.strip().lower()
        if not mode:
            return None
        if mode not in VALID_JOURNAL_MODES:
            raise ValueError(
                f"Unsupported SQLite journal_mode '{value}'. Expected one of: {sorted(VALID_JOURNAL_MODES)}"
            )
        return mode

    @staticmethod
    def _normalize_synchronous(value: str | None) -> str | None:
        if value is None:
            return None
        mode = value.strip().lower()
        if not mode:
            return None
        if mode not in VALID_SYNCHRONOUS_MODES:
            raise ValueError(
                f"Unsupported SQLite synchronous mode '{value}'. Expected one of: {sorted(VALID_SYNCHRONOUS_MODES)}"
            )
        return mode

    def _apply_migrations(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS meta (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );
            """
        )
        current = self._get_schema_version(conn)
        if current >= SCHEMA_VERSION:
            return
        for version in range(current + 1, SCHEMA_VERSION + 1):
            script = MIGRATIONS.get(version)
            if not script:
                raise RuntimeError(f"Missing migration script for version {version}")
            conn.executescript(script)
            conn.execute(
                "INSERT INTO meta(key, value) VALUES('schema_version', ?)\n"
                "ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                (str(version),),
            )
        conn.commit()

    def _get_schema_version(self, conn: sqlite3.Connection) -> int:
        cursor = conn.execute("SELECT value FROM meta WHERE key='schema_version'")
        row = cursor.fetchone()
        if not row:
            return 0
        try:
            return int(row[0])
        except (TypeError, ValueError):
            return 0

    def _require_connection(self) -> sqlite3.Connection:
        if not self._connection:
            raise RuntimeError("Document store has not been initialised")
        return self._connection

    async def _run(self, op: Callable[[], T], *, action: str) -> T:
        async with self._lock:
            try:
                return await asyncio.to_thread(op)
            except DocumentExistsError:
                raise
            except sqlite3.Error as exc:
                logger.error("Document store %s failed: %s", action, exc)
                raise PersistenceError(f"Document store {action} failed: {exc}") from exc

    # ------------------------------------------------------------------
    # reads

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        path = _split_path(collection)

        def _op() -> dict[str, Any] | None:
            return _fetch_one(self._require_connection(), path, doc_id)

        return await self._run(_op, action=f"read of {path}/{doc_id}")

    async def list(
        self,
        collection: str,
        *,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Document]:
        path = _split_path(collection)

        def _op() -> list[Document]:
            return _fetch_many(
                self._require_connection(),
                path,
                order_by=order_by,
                descending=descending,
                limit=limit,
            )

        return await self._run(_op, action=f"query of {path}")

    # ------------------------------------------------------------------
    # writes

    async def set(
        self,
        collection: str,
        doc_id: str,
        data: Mapping[str, Any],
        *,
        merge: bool = False,
    ) -> None:
        path = _split_path(collection)

        def _op() -> None:
            conn = self._require_connection()
            with conn:
                conn.execute("BEGIN IMMEDIATE")
                _write(conn, path, doc_id, data, _utc_now(), merge=merge)

        await self._run(_op, action=f"write of {path}/{doc_id}")

    async def create(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> None:
        path = _split_path(collection)

        def _op() -> None:
            conn = self._require_connection()
            with conn:
                conn.execute("BEGIN IMMEDIATE")
                _insert(conn, path, doc_id, data, _utc_now())

        await self._run(_op, action=f"insert of {path}/{doc_id}")

    async def add(self, collection: str, data: Mapping[str, Any]) -> str:
        """Insert ``data`` under a generated identifier and return it."""
        doc_id = uuid.uuid4().hex
        await self.create(collection, doc_id, data)
        return doc_id

    async def run_transaction(self, operation: Callable[[Transaction], T]) -> T:
        """Run ``operation`` atomically; any exception rolls every write back."""

        def _op() -> T:
            conn = self._require_connection()
            with conn:
                conn.execute("BEGIN IMMEDIATE")
                return operation(Transaction(conn, _utc_now()))

        return await self._run(_op, action="transaction")


MIGRATIONS: dict[int, str] = {
    1: """
        CREATE TABLE IF NOT EXISTS documents (
            collection TEXT NOT NULL,
            doc_id TEXT NOT NULL,
            data_json TEXT NOT NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            PRIMARY KEY (collection, doc_id)
        );
    """,
    2: """
        CREATE INDEX IF NOT EXISTS idx_documents_collection_updated ON documents(collection, updated_at);
    """,
}
