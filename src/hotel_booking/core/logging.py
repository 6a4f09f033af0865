"""Logging helpers."""
from __future__ import annotations

import logging
from pathlib import Path

# httpx logs full request URLs at INFO, and the image host takes its key as a query param.
_QUIET_LOGGERS = ("httpx", "httpcore")


def configure_logging(level: str, log_dir: Path, *, filename: str = "booking.log") -> None:
    """Configure stream + file logging for scripts and the service entry points."""
    log_dir.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(log_dir / filename),
        ],
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
