from __future__ import annotations

import asyncio
from typing import Any

import httpx
import pytest

from hotel_booking.analytics import Visit, VisitTracker
from hotel_booking.session import UserSession
from hotel_booking.storage import PersistenceError, SqliteDocumentStore


class _DummyResponse:
    def __init__(self, payload: dict[str, Any], status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if 400 <= self.status_code:
            request = httpx.Request("GET", "https://example.test")
            response = httpx.Response(self.status_code, request=request)
            raise httpx.HTTPStatusError("error", request=request, response=response)

    def json(self) -> dict[str, Any]:
        return self._payload


class _DummyAsyncClient:
    def __init__(self, response: _DummyResponse) -> None:
        self._response = response
        self.get_urls: list[str] = []

    async def __aenter__(self) -> "_DummyAsyncClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def get(self, url: str) -> _DummyResponse:
        self.get_urls.append(url)
        return self._response


def _install(monkeypatch: pytest.MonkeyPatch, response: _DummyResponse) -> _DummyAsyncClient:
    client = _DummyAsyncClient(response)
    monkeypatch.setattr("hotel_booking.analytics.visits.httpx.AsyncClient", lambda *args, **kwargs: client)
    return client


@pytest.mark.asyncio
async def test_first_visit_per_session_is_logged_once(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    client = _install(monkeypatch, _DummyResponse({"ip": "203.0.113.7"}))
    async with SqliteDocumentStore(tmp_path / "hotel.sqlite3") as store:
        tracker = VisitTracker(store, ip_lookup_url="https://ip.test/?format=json")
        visit = Visit(session_key="tab-1", path="/rooms", user_agent="pytest", referrer="")
        session = UserSession(uid="uid-1", email="guest@example.com")

        visitor_id = await tracker.record_visit(visit, session=session)
        repeat = await tracker.record_visit(Visit(session_key="tab-1", path="/gallery"))
        documents = await store.list("site_visits")

    assert visitor_id
    assert repeat is None
    assert client.get_urls == ["https://ip.test/?format=json"]
    assert len(documents) == 1
    data = documents[0].data
    assert data["visitor_id"] == visitor_id
    assert data["ip"] == "203.0.113.7"
    assert data["path"] == "/rooms"
    assert data["user_id"] == "uid-1"
    assert data["referrer"] is None
    assert isinstance(data["timestamp"], str)


@pytest.mark.asyncio
async def test_visit_keeps_existing_visitor_id_and_ip(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    client = _install(monkeypatch, _DummyResponse({"ip": "198.51.100.1"}))
    async with SqliteDocumentStore(tmp_path / "hotel.sqlite3") as store:
        tracker = VisitTracker(store)
        visitor_id = await tracker.record_visit(
            Visit(session_key="tab-2", path="/", visitor_id="returning", ip="192.0.2.10")
        )
        documents = await store.list("site_visits")

    assert visitor_id == "returning"
    assert client.get_urls == []
    assert documents[0].data["ip"] == "192.0.2.10"
    assert documents[0].data["user_id"] is None


@pytest.mark.asyncio
async def test_ip_lookup_failure_falls_back_to_unknown(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    _install(monkeypatch, _DummyResponse({}, status_code=503))
    async with SqliteDocumentStore(tmp_path / "hotel.sqlite3") as store:
        tracker = VisitTracker(store)
        await tracker.record_visit(Visit(session_key="tab-3", path="/"))
        documents = await store.list("site_visits")

    assert documents[0].data["ip"] == "unknown"


@pytest.mark.asyncio
async def test_store_failure_is_swallowed_and_retried_next_time(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    _install(monkeypatch, _DummyResponse({"ip": "203.0.113.7"}))
    async with SqliteDocumentStore(tmp_path / "hotel.sqlite3") as store:
        tracker = VisitTracker(store)
        original_add = store.add

        async def _failing_add(*args: Any, **kwargs: Any) -> str:
            raise PersistenceError("locked")

        monkeypatch.setattr(store, "add", _failing_add)
        assert await tracker.record_visit(Visit(session_key="tab-4", path="/")) is None

        monkeypatch.setattr(store, "add", original_add)
        assert await tracker.record_visit(Visit(session_key="tab-4", path="/")) is not None


@pytest.mark.asyncio
async def test_overlapping_calls_for_one_session_log_once(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    _install(monkeypatch, _DummyResponse({"ip": "203.0.113.7"}))
    async with SqliteDocumentStore(tmp_path / "hotel.sqlite3") as store:
        tracker = VisitTracker(store)
        results = await asyncio.gather(
            tracker.record_visit(Visit(session_key="tab", path="/")),
            tracker.record_visit(Visit(session_key="tab", path="/rooms")),
        )
        documents = await store.list("site_visits")

    assert len(documents) == 1
    assert sum(result is not None for result in results) == 1


@pytest.mark.asyncio
async def test_tracked_sessions_are_bounded(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    _install(monkeypatch, _DummyResponse({"ip": "203.0.113.7"}))
    async with SqliteDocumentStore(tmp_path / "hotel.sqlite3") as store:
        tracker = VisitTracker(store, max_sessions=2)
        for key in ("tab-a", "tab-b", "tab-c"):
            assert await tracker.record_visit(Visit(session_key=key, path="/")) is not None

        assert await tracker.record_visit(Visit(session_key="tab-c", path="/")) is None
        # The oldest session was forgotten and is logged again.
        assert await tracker.record_visit(Visit(session_key="tab-a", path="/")) is not None
        assert len(await store.list("site_visits")) == 4


def test_tracker_rejects_non_positive_bound(tmp_path) -> None:
    with pytest.raises(ValueError):
        VisitTracker(SqliteDocumentStore(tmp_path / "hotel.sqlite3"), max_sessions=0)
