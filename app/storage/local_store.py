"""
Local filesystem storage for development.
All keys are relative to STORAGE_LOCAL_ROOT; URLs are built from
STORAGE_PUBLIC_BASE_URL.
"""

import asyncio
from pathlib import Path
from typing import Optional

import structlog

from app.config import settings
from app.storage.base import StorageBackend, StorageError
from app.storage.paths import ensure_parent_dirs, object_key, safe_local_path

logger = structlog.get_logger(__name__)


class LocalStorage(StorageBackend):
    backend_name = "local"

    def __init__(self, root: Optional[str] = None, public_base_url: Optional[str] = None):
        self.root = Path(root or settings.STORAGE_LOCAL_ROOT)
        self.root.mkdir(parents=True, exist_ok=True)
        self.public_base_url = (public_base_url or settings.STORAGE_PUBLIC_BASE_URL).rstrip("/")

    async def store(self, data: bytes, folder: str, file_name: str, content_type: str) -> str:
        key = object_key(folder, file_name)
        try:
            full_path = ensure_parent_dirs(self.root, key)
            await asyncio.to_thread(full_path.write_bytes, data)
        except OSError as e:
            raise StorageError(self.backend_name, f"Failed to write {key}: {e}") from e
        logger.info("file_stored", backend=self.backend_name, key=key, size_bytes=len(data))
        return key

    async def get(self, key: str) -> bytes:
        full_path = safe_local_path(self.root, key)
        if not full_path.exists():
            raise StorageError(self.backend_name, f"Object not found: {key}")
        return await asyncio.to_thread(full_path.read_bytes)

    async def get_url(self, key: str) -> str:
        return f"{self.public_base_url}/{key}"

    async def delete(self, key: str) -> bool:
        full_path = safe_local_path(self.root, key)
        if full_path.exists():
            full_path.unlink()
            logger.info("file_deleted", backend=self.backend_name, key=key)
            return True
        return False

    async def exists(self, key: str) -> bool:
        return safe_local_path(self.root, key).exists()
