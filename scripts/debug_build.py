"""Run the site build and save stdout/stderr to a file for offline debugging."""
from __future__ import annotations

import argparse
import shlex
from pathlib import Path

from hotel_booking.config.settings import Settings
from hotel_booking.tools.debug_build import run_build


def main() -> None:
    settings = Settings()
    parser = argparse.ArgumentParser(description="Run the build and capture its output")
    parser.add_argument(
        "--command",
        help="Build command to run (defaults to HOTEL_BUILD_COMMAND / 'npm run build')",
    )
    parser.add_argument("--output", type=Path, default=settings.build_output_path)
    parser.add_argument("--cwd", type=Path, default=None, help="Directory to run the build in")
    args = parser.parse_args()

    command = tuple(shlex.split(args.command)) if args.command else settings.build_command
    run_build(command, args.output, cwd=args.cwd)
    print(f"Build finished, output saved to {args.output}")


if __name__ == "__main__":
    main()
