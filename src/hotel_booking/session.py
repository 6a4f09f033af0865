"""Request-scoped identity passed explicitly into operations that need a user."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class UserSession:
    """Signed-in user as reported by the identity provider."""

    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    id_token: Optional[str] = None
    refresh_token: Optional[str] = None
    photo_url: Optional[str] = None
