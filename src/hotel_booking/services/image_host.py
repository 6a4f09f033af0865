"""Client for the third-party image hosting API (ImgBB-compatible)."""
from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from hotel_booking.config.settings import Settings

logger = logging.getLogger(__name__)

UPLOAD_URL = "https://api.imgbb.com/1/upload"


class UploadError(RuntimeError):
    """Raised when the image host rejects an upload or cannot be reached."""

    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(f"Failed to upload screenshot: {message}")
        self.status = status


class ImageHostClient:
    """Uploads images and returns their public URL."""

    def __init__(
        self,
        *,
        api_key: str,
        upload_url: str = UPLOAD_URL,
        timeout: float = 30.0,
    ) -> None:
        if not api_key:
            raise ValueError("Image host API key must be provided")
        self.api_key = api_key
        self.upload_url = upload_url
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "ImageHostClient":
        return cls(**settings.image_host_options())

    async def upload(
        self,
        content: bytes,
        *,
        filename: str = "upload.jpg",
        content_type: str = "image/jpeg",
    ) -> str:
        if not content:
            raise UploadError("empty image")
        files = {"image": (filename, content, content_type)}
        logger.info("Uploading %s (%s bytes) to image host", filename, len(content))
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(self.upload_url, params={"key": self.api_key}, files=files)
            except httpx.HTTPError as exc:
                raise UploadError(str(exc) or exc.__class__.__name__) from exc
        payload = self._parse(response)
        if not payload.get("success"):
            error = payload.get("error") or {}
            message = error.get("message") if isinstance(error, dict) else None
            raise UploadError(message or "Unknown error", status=response.status_code)
        try:
            url = payload["data"]["url"]
        except (KeyError, TypeError) as exc:
            raise UploadError("response missing image URL", status=response.status_code) from exc
        logger.debug("Image host stored %s at %s", filename, url)
        return url

    @staticmethod
    def _parse(response: httpx.Response) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise UploadError(
                f"unexpected response ({response.status_code})", status=response.status_code
            ) from exc
        if not isinstance(payload, dict):
            raise UploadError("unexpected response payload", status=response.status_code)
        return payload
