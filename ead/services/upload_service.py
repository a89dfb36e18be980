"""Upload policy — size limits and the pre-flight capacity check."""

import logging

from sqlalchemy.orm import Session

from ead.config import settings
from ead.errors import FileTooLarge, StorageQuotaExceeded
from ead.services.blob_store import BlobStore
from ead.services.catalog_service import blob_in_use

logger = logging.getLogger(__name__)

# purpose -> settings attribute holding the size limit
SIZE_LIMITS = {
    "video": "MAX_VIDEO_BYTES",
    "material": "MAX_MATERIAL_BYTES",
}


def size_limit(purpose: str) -> int:
    if purpose not in SIZE_LIMITS:
        raise ValueError(f"Unknown upload purpose: {purpose}")
    return getattr(settings, SIZE_LIMITS[purpose])


async def check_storage_space(store: BlobStore, file_size: int) -> bool:
    """True when the store can take the file and still keep the safety margin."""
    available = await store.available_bytes()
    return available > file_size + settings.STORAGE_SAFETY_MARGIN_BYTES


async def store_upload(store: BlobStore, data: bytes, purpose: str) -> str:
    """Validate and store an upload, returning its blob id.

    Raises FileTooLarge for the per-purpose policy limit and
    StorageQuotaExceeded when the environment has no room, either before
    writing or when the store itself fails.
    """
    size = len(data)
    limit = size_limit(purpose)
    if size > limit:
        logger.warning("rejected %s upload of %d bytes (limit %d)", purpose, size, limit)
        raise FileTooLarge(size, limit)

    if not await check_storage_space(store, size):
        available = await store.available_bytes()
        logger.warning("no space for %s upload of %d bytes (%d available)", purpose, size, available)
        raise StorageQuotaExceeded(size, available)

    try:
        return await store.put(data)
    except OSError as e:
        logger.error("blob store failed for %d bytes: %s", size, e)
        raise StorageQuotaExceeded(size) from e


async def release_blobs(db: Session, store: BlobStore, blob_ids: list[str]) -> None:
    """Remove the given blobs unless some record still references them."""
    for blob_id in set(blob_ids):
        if not blob_in_use(db, blob_id):
            await store.remove(blob_id)
