"""Utility CLI for listing gallery images and uploading new ones."""
from __future__ import annotations

import argparse
import asyncio
import mimetypes
from pathlib import Path

from hotel_booking.config.settings import Settings
from hotel_booking.core.logging import configure_logging
from hotel_booking.gallery import DEFAULT_CATEGORY, add_gallery_image, list_gallery
from hotel_booking.services.image_host import ImageHostClient
from hotel_booking.storage import SqliteDocumentStore


async def _run(args: argparse.Namespace, settings: Settings) -> None:
    store = SqliteDocumentStore(settings.sqlite_path, **settings.store_options())
    await store.initialize()
    try:
        if args.command == "list":
            for image in await list_gallery(store, limit=args.limit):
                print(f"{image.id:32} | {image.category:12} | {image.alt:24} | {image.src}")
        elif args.command == "add":
            image_host = ImageHostClient.from_settings(settings)
            path: Path = args.path
            content_type = mimetypes.guess_type(path.name)[0] or "image/jpeg"
            image = await add_gallery_image(
                store,
                image_host,
                path.read_bytes(),
                filename=path.name,
                content_type=content_type,
                category=args.category,
                alt=args.alt,
            )
            print(f"Added {image.id}: {image.src}")
    finally:
        await store.close()


def main() -> None:
    settings = Settings()
    parser = argparse.ArgumentParser(description="Manage gallery images")
    subparsers = parser.add_subparsers(dest="command", required=True)

    listing = subparsers.add_parser("list", help="List gallery images, newest first")
    listing.add_argument("--limit", type=int, default=None)

    add = subparsers.add_parser("add", help="Upload an image to the image host and add it to the gallery")
    add.add_argument("path", type=Path)
    add.add_argument("--category", default=DEFAULT_CATEGORY)
    add.add_argument("--alt", default=None)

    args = parser.parse_args()
    settings.ensure_directories()
    configure_logging(settings.log_level, settings.log_dir)
    asyncio.run(_run(args, settings))


if __name__ == "__main__":
    main()
