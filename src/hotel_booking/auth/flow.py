"""Sign-in / sign-up flow that keeps the ``users`` collection in sync."""
from __future__ import annotations

import logging
from typing import Optional

from hotel_booking.services.identity import IdentityClient
from hotel_booking.session import UserSession
from hotel_booking.storage.document_store import SERVER_TIMESTAMP, SqliteDocumentStore

logger = logging.getLogger(__name__)

USERS = "users"
DEFAULT_ROLE = "user"


class AuthFlow:
    """Wraps the identity client and mirrors profile data into the store."""

    def __init__(self, identity: IdentityClient, store: SqliteDocumentStore) -> None:
        self.identity = identity
        self.store = store

    async def sign_in(self, email: str, password: str) -> UserSession:
        return await self.identity.sign_in(email, password)

    async def sign_up(self, email: str, password: str, display_name: Optional[str] = None) -> UserSession:
        session = await self.identity.sign_up(email, password, display_name)
        await self.store.set(
            USERS,
            session.uid,
            {
                "email": email,
                "display_name": display_name,
                "created_at": SERVER_TIMESTAMP,
                "role": DEFAULT_ROLE,
            },
            merge=True,
        )
        return session

    async def sign_in_with_provider(
        self,
        provider_id: str,
        id_token: str,
        *,
        request_uri: str = "http://localhost",
    ) -> UserSession:
        session = await self.identity.sign_in_with_idp(provider_id, id_token, request_uri=request_uri)
        await self.store.set(
            USERS,
            session.uid,
            {
                "email": session.email,
                "display_name": session.display_name,
                "photo_url": session.photo_url,
                "last_login": SERVER_TIMESTAMP,
            },
            merge=True,
        )
        logger.debug("Synced profile for %s after %s sign-in", session.uid, provider_id)
        return session

    async def send_password_reset(self, email: str) -> str:
        await self.identity.send_password_reset(email)
        return "Password reset email sent! Check your inbox."
