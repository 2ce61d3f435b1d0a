"""
Storage capability used for invoice source files.
"""

from abc import ABC, abstractmethod


class StorageError(Exception):
    def __init__(self, backend: str, message: str):
        self.backend = backend
        self.message = message
        super().__init__(f"[{backend}] {message}")


class StorageBackend(ABC):
    """Opaque key/value store for uploaded files."""

    backend_name: str = "base"

    @abstractmethod
    async def store(self, data: bytes, folder: str, file_name: str, content_type: str) -> str:
        """Persist bytes and return a new, durable storage key."""
        ...

    @abstractmethod
    async def get(self, key: str) -> bytes:
        ...

    @abstractmethod
    async def get_url(self, key: str) -> str:
        """URL the client can use to fetch the object."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        ...

    @abstractmethod
    async def exists(self, key: str) -> bool:
        ...
