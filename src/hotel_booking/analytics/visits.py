"""Visitor beacon: one ``site_visits`` document per browser session."""
from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional

import httpx

from hotel_booking.config.settings import Settings
from hotel_booking.session import UserSession
from hotel_booking.storage.document_store import SERVER_TIMESTAMP, PersistenceError, SqliteDocumentStore

logger = logging.getLogger(__name__)

SITE_VISITS = "site_visits"
IP_LOOKUP_URL = "https://api.ipify.org?format=json"
UNKNOWN_IP = "unknown"
MAX_TRACKED_SESSIONS = 10_000


@dataclass(slots=True)
class Visit:
    """Client-reported details for a page view."""

    session_key: str
    path: str
    visitor_id: Optional[str] = None
    user_agent: Optional[str] = None
    platform: Optional[str] = None
    screen_resolution: Optional[str] = None
    referrer: Optional[str] = None
    ip: Optional[str] = None


class VisitTracker:
    """Logs the first visit of each browser session; never raises.

    Remembers at most ``max_sessions`` session keys, dropping the oldest first.
    """

    def __init__(
        self,
        store: SqliteDocumentStore,
        *,
        ip_lookup_url: str = IP_LOOKUP_URL,
        timeout: float = 5.0,
        max_sessions: int = MAX_TRACKED_SESSIONS,
    ) -> None:
        if max_sessions <= 0:
            raise ValueError("max_sessions must be positive")
        self.store = store
        self.ip_lookup_url = ip_lookup_url
        self.timeout = timeout
        self.max_sessions = max_sessions
        self._logged_sessions: OrderedDict[str, None] = OrderedDict()

    @classmethod
    def from_settings(cls, store: SqliteDocumentStore, settings: Settings) -> "VisitTracker":
        return cls(store, ip_lookup_url=settings.ip_lookup_url, timeout=settings.http_timeout_s)

    async def record_visit(self, visit: Visit, *, session: Optional[UserSession] = None) -> Optional[str]:
        """Store ``visit`` and return the visitor id, or ``None`` if nothing was logged."""
        key = visit.session_key
        if key in self._logged_sessions:
            return None
        # Claimed before any await so overlapping calls for one session log once.
        self._remember(key)

        ip = visit.ip or await self._lookup_ip()
        visitor_id = visit.visitor_id or str(uuid.uuid4())
        document = {
            "visitor_id": visitor_id,
            "ip": ip,
            "user_agent": visit.user_agent,
            "platform": visit.platform,
            "screen_resolution": visit.screen_resolution,
            "user_id": session.uid if session else None,
            "user_email": session.email if session else None,
            "timestamp": SERVER_TIMESTAMP,
            "path": visit.path,
            "referrer": visit.referrer or None,
        }
        try:
            await self.store.add(SITE_VISITS, document)
        except PersistenceError:
            logger.exception("Error logging visit for %s", visit.path)
            self._logged_sessions.pop(key, None)
            return None
        return visitor_id

    def _remember(self, key: str) -> None:
        self._logged_sessions[key] = None
        while len(self._logged_sessions) > self.max_sessions:
            self._logged_sessions.popitem(last=False)

    async def _lookup_ip(self) -> str:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.ip_lookup_url)
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Failed to fetch visitor IP: %s", exc)
            return UNKNOWN_IP
        ip = payload.get("ip") if isinstance(payload, dict) else None
        return str(ip) if ip else UNKNOWN_IP
