"""Gallery images shown on the public gallery page."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from hotel_booking.services.image_host import ImageHostClient
from hotel_booking.storage.document_store import SERVER_TIMESTAMP, SqliteDocumentStore

GALLERY = "gallery"
DEFAULT_CATEGORY = "Gallery"
DEFAULT_ALT = "Gallery Image"


@dataclass(frozen=True)
class GalleryImage:
    id: str
    src: str
    category: str = DEFAULT_CATEGORY
    alt: str = DEFAULT_ALT


async def list_gallery(store: SqliteDocumentStore, *, limit: Optional[int] = None) -> List[GalleryImage]:
    """Newest images first."""
    documents = await store.list(GALLERY, order_by="created_at", descending=True, limit=limit)
    return [
        GalleryImage(
            id=doc.id,
            src=doc.data.get("src", ""),
            category=doc.data.get("category") or DEFAULT_CATEGORY,
            alt=doc.data.get("alt") or DEFAULT_ALT,
        )
        for doc in documents
    ]


async def add_gallery_image(
    store: SqliteDocumentStore,
    image_host: ImageHostClient,
    content: bytes,
    *,
    filename: str,
    content_type: str = "image/jpeg",
    category: str = DEFAULT_CATEGORY,
    alt: Optional[str] = None,
) -> GalleryImage:
    src = await image_host.upload(content, filename=filename, content_type=content_type)
    doc_id = await store.add(
        GALLERY,
        {"src": src, "category": category, "alt": alt or DEFAULT_ALT, "created_at": SERVER_TIMESTAMP},
    )
    return GalleryImage(id=doc_id, src=src, category=category, alt=alt or DEFAULT_ALT)
