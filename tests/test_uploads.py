"""Tests for the blob store and the upload size/quota policy."""

import asyncio
import hashlib
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from ead.config import settings
from ead.errors import FileTooLarge, InsufficientStorage, StorageQuotaExceeded
from ead.services import catalog_service
from ead.services.blob_store import FileSystemBlobStore
from ead.services.upload_service import check_storage_space, release_blobs, size_limit, store_upload


class BrokenStore(FileSystemBlobStore):
    """Reports plenty of room but fails on write, like a full disk."""

    async def available_bytes(self) -> int:
        return 10 ** 12

    async def put(self, data: bytes) -> str:
        raise OSError(28, "No space left on device")


@pytest.fixture
def small_limits(monkeypatch):
    monkeypatch.setattr(settings, "MAX_VIDEO_BYTES", 100)
    monkeypatch.setattr(settings, "MAX_MATERIAL_BYTES", 50)
    monkeypatch.setattr(settings, "STORAGE_SAFETY_MARGIN_BYTES", 10)


class TestBlobStore:
    """Content-addressed file storage."""

    def test_put_get_remove(self, tmp_path):
        store = FileSystemBlobStore(tmp_path)
        data = b"lesson video bytes"

        blob_id = asyncio.run(store.put(data))

        assert blob_id == hashlib.sha256(data).hexdigest()
        assert (tmp_path / blob_id[:2] / blob_id).exists()
        assert asyncio.run(store.get(blob_id)) == data

        asyncio.run(store.remove(blob_id))
        assert asyncio.run(store.get(blob_id)) is None

    def test_same_content_same_id(self, tmp_path):
        store = FileSystemBlobStore(tmp_path)
        assert asyncio.run(store.put(b"x")) == asyncio.run(store.put(b"x"))
        assert store.used_bytes() == 1

    def test_invalid_ids(self, tmp_path):
        store = FileSystemBlobStore(tmp_path)
        assert asyncio.run(store.get("../../etc/passwd")) is None
        asyncio.run(store.remove("not-a-blob"))

    def test_quota_accounting(self, tmp_path):
        store = FileSystemBlobStore(tmp_path, quota_bytes=100)
        asyncio.run(store.put(b"0123456789"))
        assert asyncio.run(store.available_bytes()) == 90


class TestUploadPolicy:
    """Size limits per purpose, then environment capacity."""

    def test_size_limits(self, small_limits):
        assert size_limit("video") == 100
        assert size_limit("material") == 50
        with pytest.raises(ValueError):
            size_limit("avatar")

    def test_accepts_within_limits(self, tmp_path, small_limits):
        store = FileSystemBlobStore(tmp_path)
        blob_id = asyncio.run(store_upload(store, b"v" * 100, "video"))
        assert asyncio.run(store.get(blob_id)) == b"v" * 100

    def test_file_too_large(self, tmp_path, small_limits):
        store = FileSystemBlobStore(tmp_path)
        with pytest.raises(FileTooLarge) as exc:
            asyncio.run(store_upload(store, b"m" * 51, "material"))
        assert exc.value.limit == 50
        assert store.used_bytes() == 0

    def test_quota_exceeded(self, tmp_path, small_limits):
        store = FileSystemBlobStore(tmp_path, quota_bytes=100)
        asyncio.run(store_upload(store, b"a" * 50, "video"))

        with pytest.raises(StorageQuotaExceeded) as exc:
            asyncio.run(store_upload(store, b"b" * 45, "video"))
        assert exc.value.available == 50

    def test_safety_margin(self, tmp_path, small_limits):
        store = FileSystemBlobStore(tmp_path, quota_bytes=100)
        assert asyncio.run(check_storage_space(store, 89))
        assert not asyncio.run(check_storage_space(store, 90))

    def test_write_failure_is_quota_error(self, tmp_path, small_limits):
        store = BrokenStore(tmp_path)
        with pytest.raises(StorageQuotaExceeded):
            asyncio.run(store_upload(store, b"x", "material"))

    def test_errors_share_a_base(self):
        assert issubclass(FileTooLarge, InsufficientStorage)
        assert issubclass(StorageQuotaExceeded, InsufficientStorage)
        assert not issubclass(FileTooLarge, StorageQuotaExceeded)


class TestReleaseBlobs:
    """Only unreferenced blobs are removed."""

    def test_keeps_referenced(self, db, tmp_path, make_course):
        store = FileSystemBlobStore(tmp_path)
        kept = asyncio.run(store.put(b"still used"))
        dropped = asyncio.run(store.put(b"orphan"))
        course = make_course()
        catalog_service.create_lesson(db, course.id, "Video", video_blob_id=kept)

        asyncio.run(release_blobs(db, store, [kept, dropped]))

        assert asyncio.run(store.get(kept)) == b"still used"
        assert asyncio.run(store.get(dropped)) is None
