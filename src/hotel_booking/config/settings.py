"""Runtime configuration for the booking backend.

Relies on pydantic-settings so that environment variables (prefixed with ``HOTEL_``)
can override defaults. See `.env.example` for common values.
"""
from __future__ import annotations

import logging
import shlex
from pathlib import Path
from typing import Annotated, Optional, Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Captures runtime configuration for the booking backend."""

    sqlite_path: Path = Field(
        default=Path("data/storage/hotel.sqlite3"),
        description="SQLite file that backs the document store",
    )
    sqlite_busy_timeout_ms: int = Field(
        default=2000, description="SQLite busy timeout (ms) while waiting on locks"
    )
    sqlite_journal_mode: Optional[str] = Field(default="wal")
    sqlite_synchronous: Optional[str] = Field(default="normal")

    image_host_url: str = Field(
        default="https://api.imgbb.com/1/upload",
        description="Upload endpoint of the image hosting API",
    )
    image_host_api_key: Optional[str] = Field(
        default=None, description="API key for the image hosting API"
    )

    identity_api_key: Optional[str] = Field(
        default=None, description="Web API key of the managed identity provider"
    )
    identity_base_url: str = Field(
        default="https://identitytoolkit.googleapis.com/v1",
        description="Base URL of the identity provider REST API",
    )

    ip_lookup_url: str = Field(
        default="https://api.ipify.org?format=json",
        description="Endpoint returning the caller IP as JSON for the visitor beacon",
    )
    http_timeout_s: float = Field(default=30.0, description="Timeout applied to outbound HTTP calls")

    default_room_stock: int = Field(
        default=10, description="Stock assumed for room types that do not declare one"
    )
    currency: str = Field(default="INR")
    booking_code_attempts: int = Field(
        default=5, description="How many booking codes to try before giving up on a collision"
    )
    room_catalog_path: Path = Field(
        default=Path("data/rooms/catalog.json"), description="Path to room type reference data"
    )

    log_level: str = Field(default="INFO")
    log_dir: Path = Field(default=Path("data/logs"))

    # Read as a shell-style string from the environment, e.g. HOTEL_BUILD_COMMAND="npm run build".
    build_command: Annotated[Tuple[str, ...], NoDecode] = Field(
        default=("npm", "run", "build"), description="Command executed by the build-debug script"
    )
    build_output_path: Path = Field(default=Path("debug_build_output.txt"))

    model_config = SettingsConfigDict(
        env_prefix="HOTEL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow",
    )

    @field_validator("sqlite_path", "room_catalog_path", "log_dir", "build_output_path", mode="before")
    def _expand_path(cls, value: str | Path) -> Path:
        if isinstance(value, Path):
            return value
        return Path(value).expanduser()

    @field_validator("default_room_stock")
    def _validate_stock(cls, value: int) -> int:
        if value < 0:
            raise ValueError("default_room_stock must not be negative")
        return value

    @field_validator("booking_code_attempts")
    def _validate_attempts(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("booking_code_attempts must be positive")
        return value

    @field_validator("build_command", mode="before")
    def _parse_build_command(cls, value: object) -> Tuple[str, ...]:
        if value is None or value == "":
            return ()
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value if str(item))
        if isinstance(value, str):
            return tuple(shlex.split(value))
        raise TypeError("build_command must be provided as a shell-style string or list")

    def ensure_directories(self) -> None:
        """Create directories that must exist at runtime."""
        self.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def store_options(self) -> dict[str, object]:
        return {
            "busy_timeout_ms": self.sqlite_busy_timeout_ms,
            "journal_mode": self.sqlite_journal_mode,
            "synchronous": self.sqlite_synchronous,
        }

    def image_host_options(self) -> dict[str, object]:
        if not self.image_host_api_key:
            logger.debug("Image host API key not configured; ImageHostClient will refuse to start")
        return {
            "api_key": self.image_host_api_key or "",
            "upload_url": self.image_host_url,
            "timeout": self.http_timeout_s,
        }
