from __future__ import annotations

import sqlite3

import pytest

from hotel_booking.storage import document_store
from hotel_booking.storage import (
    SERVER_TIMESTAMP,
    DocumentExistsError,
    Increment,
    SqliteDocumentStore,
)

_SYNCHRONOUS_MAP = {0: "off", 1: "normal", 2: "full", 3: "extra"}


@pytest.mark.asyncio
async def test_set_merge_keeps_untouched_fields(tmp_path) -> None:
    store = SqliteDocumentStore(tmp_path / "docs.sqlite")
    await store.initialize()

    await store.set("users", "u1", {"email": "a@example.com", "profile": {"name": "A", "city": "Pune"}})
    await store.set("users", "u1", {"role": "user", "profile": {"name": "Asha"}}, merge=True)

    assert await store.get("users", "u1") == {
        "email": "a@example.com",
        "role": "user",
        "profile": {"name": "Asha", "city": "Pune"},
    }

    await store.set("users", "u1", {"role": "admin"})
    assert await store.get("users", "u1") == {"role": "admin"}
    await store.close()


@pytest.mark.asyncio
async def test_increment_and_server_timestamp_resolve_on_write(tmp_path) -> None:
    async with SqliteDocumentStore(tmp_path / "docs.sqlite") as store:
        await store.set("users", "u1", {"bookings_count": Increment(1), "seen_at": SERVER_TIMESTAMP}, merge=True)
        await store.set("users", "u1", {"bookings_count": Increment(2)}, merge=True)
        data = await store.get("users", "u1")

    assert data is not None
    assert data["bookings_count"] == 3
    assert isinstance(data["seen_at"], str)
    assert data["seen_at"].endswith("Z")


@pytest.mark.asyncio
async def test_get_missing_document_returns_none(tmp_path) -> None:
    async with SqliteDocumentStore(tmp_path / "docs.sqlite") as store:
        assert await store.get("rooms", "nope") is None
        assert await store.list("rooms/nope/availability") == []


@pytest.mark.asyncio
async def test_list_orders_by_field_and_limits(tmp_path) -> None:
    async with SqliteDocumentStore(tmp_path / "docs.sqlite") as store:
        await store.set("gallery", "a", {"created_at": "2024-01-01T00:00:00.000000Z"})
        await store.set("gallery", "b", {"created_at": "2024-03-01T00:00:00.000000Z"})
        await store.set("gallery", "c", {"created_at": "2024-02-01T00:00:00.000000Z"})
        await store.set("other", "z", {"created_at": "2030-01-01T00:00:00.000000Z"})

        newest = await store.list("gallery", order_by="created_at", descending=True, limit=2)
        by_id = await store.list("gallery")

    assert [doc.id for doc in newest] == ["b", "c"]
    assert [doc.id for doc in by_id] == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_create_refuses_to_overwrite(tmp_path) -> None:
    async with SqliteDocumentStore(tmp_path / "docs.sqlite") as store:
        await store.create("booking_codes", "BK-AAAAAA", {"booking_id": "one"})
        with pytest.raises(DocumentExistsError) as excinfo:
            await store.create("booking_codes", "BK-AAAAAA", {"booking_id": "two"})
        assert excinfo.value.doc_id == "BK-AAAAAA"
        assert await store.get("booking_codes", "BK-AAAAAA") == {"booking_id": "one"}


@pytest.mark.asyncio
async def test_add_generates_distinct_ids(tmp_path) -> None:
    async with SqliteDocumentStore(tmp_path / "docs.sqlite") as store:
        first = await store.add("site_visits", {"path": "/"})
        second = await store.add("site_visits", {"path": "/"})
        assert first != second
        assert len(await store.list("site_visits")) == 2


@pytest.mark.asyncio
async def test_transaction_rolls_back_on_error(tmp_path) -> None:
    async with SqliteDocumentStore(tmp_path / "docs.sqlite") as store:
        await store.set("rooms/deluxe/availability", "2024-06-01", {"booked_count": 1})

        def _operation(txn) -> None:
            txn.set("rooms/deluxe/availability", "2024-06-01", {"booked_count": Increment(1)}, merge=True)
            txn.create("bookings", "b1", {"code": "BK-000001"})
            raise RuntimeError("abort")

        with pytest.raises(RuntimeError, match="abort"):
            await store.run_transaction(_operation)

        assert await store.get("rooms/deluxe/availability", "2024-06-01") == {"booked_count": 1}
        assert await store.get("bookings", "b1") is None


@pytest.mark.asyncio
async def test_transaction_commits_and_reads_its_own_writes(tmp_path) -> None:
    async with SqliteDocumentStore(tmp_path / "docs.sqlite") as store:

        def _operation(txn) -> int:
            txn.set("counters", "c", {"value": Increment(5), "at": SERVER_TIMESTAMP}, merge=True)
            current = txn.get("counters", "c")
            assert current is not None
            assert current["at"] == txn.now
            return current["value"]

        assert await store.run_transaction(_operation) == 5
        assert (await store.get("counters", "c"))["value"] == 5


@pytest.mark.asyncio
async def test_store_default_pragmas(tmp_path) -> None:
    db_path = tmp_path / "docs.sqlite"
    store = SqliteDocumentStore(db_path)
    await store.initialize()

    sync_mode = store._require_connection().execute("PRAGMA synchronous").fetchone()[0]
    assert _SYNCHRONOUS_MAP[int(sync_mode)] == "normal"
    await store.close()

    with sqlite3.connect(db_path) as conn:
        journal_mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
        version = conn.execute("SELECT value FROM meta WHERE key='schema_version'").fetchone()[0]
    assert journal_mode.lower() == "wal"
    assert version == "2"


@pytest.mark.asyncio
async def test_store_custom_pragmas(tmp_path) -> None:
    store = SqliteDocumentStore(tmp_path / "docs.sqlite", journal_mode="delete", synchronous="full")
    await store.initialize()
    conn = store._require_connection()
    assert conn.execute("PRAGMA journal_mode").fetchone()[0].lower() == "delete"
    assert _SYNCHRONOUS_MAP[int(conn.execute("PRAGMA synchronous").fetchone()[0])] == "full"
    await store.close()


def test_store_rejects_unknown_pragmas(tmp_path) -> None:
    with pytest.raises(ValueError):
        SqliteDocumentStore(tmp_path / "docs.sqlite", journal_mode="sometimes")
    with pytest.raises(ValueError):
        SqliteDocumentStore(tmp_path / "docs.sqlite", synchronous="maybe")


@pytest.mark.asyncio
async def test_store_requires_initialize(tmp_path) -> None:
    store = SqliteDocumentStore(tmp_path / "docs.sqlite")
    with pytest.raises(RuntimeError):
        await store.get("rooms", "deluxe")


@pytest.mark.asyncio
async def test_overwrite_increment_ignores_previous_value(tmp_path) -> None:
    async with SqliteDocumentStore(tmp_path / "docs.sqlite") as store:
        await store.set("counters", "c", {"n": 5, "label": "old"})
        await store.set("counters", "c", {"n": Increment(1)})
        assert await store.get("counters", "c") == {"n": 1}


@pytest.mark.asyncio
async def test_merge_increment_blocks_other_writers_until_commit(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    db_path = tmp_path / "docs.sqlite"
    store = SqliteDocumentStore(db_path)
    await store.initialize()
    await store.set("users", "u1", {"bookings_count": 1})

    real_fetch_one = document_store._fetch_one
    outcomes: list[str] = []

    def _fetch_with_competing_writer(conn, collection, doc_id):
        result = real_fetch_one(conn, collection, doc_id)
        if not outcomes:
            other = sqlite3.connect(db_path, timeout=0)
            try:
                other.execute(
                    "UPDATE documents SET data_json=? WHERE collection='users' AND doc_id='u1'",
                    ('{"bookings_count":2}',),
                )
                other.commit()
                outcomes.append("committed")
            except sqlite3.OperationalError:
                outcomes.append("locked")
            finally:
                other.close()
        return result

    monkeypatch.setattr(document_store, "_fetch_one", _fetch_with_competing_writer)
    await store.set("users", "u1", {"bookings_count": Increment(1)}, merge=True)
    monkeypatch.setattr(document_store, "_fetch_one", real_fetch_one)

    assert outcomes == ["locked"]
    assert await store.get("users", "u1") == {"bookings_count": 2}
    await store.close()
