"""Run the site build and keep its output for offline debugging."""
from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Sequence

logger = logging.getLogger(__name__)


def format_build_report(error: str | None, stdout: str, stderr: str) -> str:
    return f"Error: {error or 'None'}\n\nStderr:\n{stderr}\n\nStdout:\n{stdout}"


def run_build(command: Sequence[str], output_path: Path, *, cwd: Path | None = None) -> int:
    """Run ``command``, write the combined report to ``output_path`` and return the exit code."""
    if not command:
        raise ValueError("Build command must not be empty")
    logger.info("Running build: %s", " ".join(command))
    try:
        completed = subprocess.run(
            list(command),
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        report = format_build_report(str(exc), "", "")
        returncode = 127
    else:
        returncode = completed.returncode
        error = None
        if returncode != 0:
            error = f"Command failed: {' '.join(command)} (exit code {returncode})"
        report = format_build_report(error, completed.stdout, completed.stderr)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(report, encoding="utf-8")
    return returncode
