"""Blob store — content-addressed storage for lesson videos and materials."""

from __future__ import annotations

import hashlib
import logging
import shutil
from abc import ABC, abstractmethod
from functools import lru_cache
from pathlib import Path

import aiofiles
import aiofiles.os

from ead.config import settings

logger = logging.getLogger(__name__)


class BlobStore(ABC):
    @abstractmethod
    async def put(self, data: bytes) -> str:
        """Store bytes and return their blob id."""

    @abstractmethod
    async def get(self, blob_id: str) -> bytes | None:
        pass

    @abstractmethod
    async def remove(self, blob_id: str) -> None:
        pass

    @abstractmethod
    async def available_bytes(self) -> int:
        pass


class FileSystemBlobStore(BlobStore):
    """Blobs live under root/<id[:2]>/<id>, where id is the sha256 of the content.

    With a quota, available space is quota minus what the store already
    holds; without one it is the free space of the underlying disk.
    """

    def __init__(self, root: str | Path, quota_bytes: int | None = None):
        self.root = Path(root)
        self.quota_bytes = quota_bytes or None
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, blob_id: str) -> Path:
        if len(blob_id) != 64 or not all(c in "0123456789abcdef" for c in blob_id):
            raise ValueError(f"Invalid blob id: {blob_id!r}")
        return self.root / blob_id[:2] / blob_id

    async def put(self, data: bytes) -> str:
        blob_id = hashlib.sha256(data).hexdigest()
        path = self._path(blob_id)
        if path.exists():
            return blob_id
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".part")
        async with aiofiles.open(tmp, "wb") as f:
            await f.write(data)
        await aiofiles.os.replace(tmp, path)
        logger.info("stored blob %s (%d bytes)", blob_id, len(data))
        return blob_id

    async def get(self, blob_id: str) -> bytes | None:
        try:
            path = self._path(blob_id)
        except ValueError:
            return None
        if not path.exists():
            return None
        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    async def remove(self, blob_id: str) -> None:
        try:
            path = self._path(blob_id)
        except ValueError:
            return
        if path.exists():
            await aiofiles.os.remove(path)
            logger.info("removed blob %s", blob_id)

    def used_bytes(self) -> int:
        return sum(p.stat().st_size for p in self.root.glob("*/*") if p.is_file())

    async def available_bytes(self) -> int:
        if self.quota_bytes:
            return max(0, self.quota_bytes - self.used_bytes())
        return shutil.disk_usage(self.root).free


@lru_cache(maxsize=1)
def get_blob_store() -> BlobStore:
    """FastAPI dependency for the configured store."""
    return FileSystemBlobStore(settings.UPLOAD_DIR, quota_bytes=settings.BLOB_QUOTA_BYTES)
