"""Client for the managed identity provider's REST API (identity toolkit style)."""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Optional
from urllib.parse import urlencode

import httpx

from hotel_booking.config.settings import Settings
from hotel_booking.session import UserSession

logger = logging.getLogger(__name__)

IDENTITY_BASE_URL = "https://identitytoolkit.googleapis.com/v1"

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password."
_ERROR_MESSAGES: dict[str, str] = {
    "INVALID_LOGIN_CREDENTIALS": INVALID_CREDENTIALS_MESSAGE,
    "INVALID_PASSWORD": INVALID_CREDENTIALS_MESSAGE,
    "EMAIL_NOT_FOUND": INVALID_CREDENTIALS_MESSAGE,
    "EMAIL_EXISTS": "Email in use. Switch to Sign In?",
    "WEAK_PASSWORD": "Password should be at least 6 characters.",
    "INVALID_EMAIL": "Please enter a valid email address.",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many attempts. Please try again later.",
    "USER_DISABLED": "This account has been disabled.",
}


class AuthError(RuntimeError):
    """Raised when the identity provider rejects a request."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code


def friendly_message(code: str, fallback: Optional[str] = None) -> str:
    # Provider codes may carry detail after a colon: "WEAK_PASSWORD : Password should be ..."
    key = code.split(":", 1)[0].strip()
    return _ERROR_MESSAGES.get(key) or fallback or "Authentication failed."


class IdentityClient:
    """Email/password and federated sign-in against the identity REST API."""

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = IDENTITY_BASE_URL,
        timeout: float = 30.0,
    ) -> None:
        if not api_key:
            raise ValueError("Identity provider API key must be provided")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "IdentityClient":
        return cls(
            api_key=settings.identity_api_key or "",
            base_url=settings.identity_base_url,
            timeout=settings.http_timeout_s,
        )

    async def sign_in(self, email: str, password: str) -> UserSession:
        payload = await self._call(
            "accounts:signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        logger.info("Signed in user %s", payload.get("localId"))
        return self._session(payload)

    async def sign_up(self, email: str, password: str, display_name: Optional[str] = None) -> UserSession:
        """Create an account, set its display name and send the verification email."""
        payload = await self._call(
            "accounts:signUp",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        session = self._session(payload)
        if display_name:
            await self._call(
                "accounts:update",
                {"idToken": session.id_token, "displayName": display_name, "returnSecureToken": True},
            )
            session = replace(session, display_name=display_name)
        await self._call("accounts:sendOobCode", {"requestType": "VERIFY_EMAIL", "idToken": session.id_token})
        logger.info("Created account %s; verification email sent", session.uid)
        return session

    async def sign_in_with_idp(
        self,
        provider_id: str,
        id_token: str,
        *,
        request_uri: str = "http://localhost",
    ) -> UserSession:
        """Exchange a federated provider's ID token (e.g. ``google.com``) for a session."""
        payload = await self._call(
            "accounts:signInWithIdp",
            {
                "postBody": urlencode({"id_token": id_token, "providerId": provider_id}),
                "requestUri": request_uri,
                "returnSecureToken": True,
                "returnIdpCredential": True,
            },
        )
        logger.info("Signed in user %s via %s", payload.get("localId"), provider_id)
        return self._session(payload)

    async def send_password_reset(self, email: str) -> None:
        await self._call("accounts:sendOobCode", {"requestType": "PASSWORD_RESET", "email": email})
        logger.info("Password reset email requested")

    async def _call(self, method: str, body: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}/{method}"
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(url, params={"key": self.api_key}, json=body)
            except httpx.HTTPError as exc:
                logger.warning("Identity provider call %s failed: %s", method, exc)
                raise AuthError("NETWORK_ERROR", "Authentication failed.") from exc
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if response.status_code >= 400:
            error = payload.get("error") if isinstance(payload, dict) else None
            code = (error or {}).get("message") or f"HTTP_{response.status_code}"
            logger.warning("Identity provider rejected %s: %s", method, code)
            raise AuthError(code, friendly_message(code))
        return payload if isinstance(payload, dict) else {}

    @staticmethod
    def _session(payload: dict[str, Any]) -> UserSession:
        uid = payload.get("localId")
        if not uid:
            raise AuthError("MISSING_LOCAL_ID", "Authentication failed.")
        return UserSession(
            uid=uid,
            email=payload.get("email"),
            display_name=payload.get("displayName") or None,
            id_token=payload.get("idToken"),
            refresh_token=payload.get("refreshToken"),
            photo_url=payload.get("photoUrl"),
        )
