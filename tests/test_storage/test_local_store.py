"""
Tests for key generation and the local filesystem backend.
"""

import pytest

from app.config import Settings
from app.storage.base import StorageError
from app.storage.factory import build_storage
from app.storage.local_store import LocalStorage
from app.storage.paths import object_key


class TestObjectKey:
    def test_shape(self):
        key = object_key("invoices", "Receipt.PDF")
        folder, name = key.split("/")
        assert folder == "invoices"
        assert name.endswith(".pdf")
        assert len(name) == 32 + len(".pdf")

    def test_unique(self):
        assert object_key("invoices", "a.png") != object_key("invoices", "a.png")

    def test_no_extension(self):
        assert "." not in object_key("/invoices/", "scan").split("/")[-1]


class TestLocalStorage:
    @pytest.fixture
    def store(self, tmp_path):
        return LocalStorage(root=str(tmp_path), public_base_url="http://files.test/files/")

    @pytest.mark.asyncio
    async def test_store_get_url_delete(self, store, tmp_path):
        key = await store.store(b"%PDF-1.7", "invoices", "bill.pdf", "application/pdf")

        assert (tmp_path / key).read_bytes() == b"%PDF-1.7"
        assert await store.exists(key)
        assert await store.get(key) == b"%PDF-1.7"
        assert await store.get_url(key) == f"http://files.test/files/{key}"

        assert await store.delete(key) is True
        assert not await store.exists(key)
        assert await store.delete(key) is False

    @pytest.mark.asyncio
    async def test_missing_object(self, store):
        with pytest.raises(StorageError):
            await store.get("invoices/nope.png")

    @pytest.mark.asyncio
    async def test_key_cannot_escape_root(self, store):
        with pytest.raises(ValueError):
            await store.get("../../etc/passwd")


class TestFactory:
    def test_local(self, tmp_path):
        backend = build_storage(Settings(STORAGE_BACKEND="local", STORAGE_LOCAL_ROOT=str(tmp_path)))
        assert backend.backend_name == "local"

    def test_unknown(self):
        with pytest.raises(ValueError):
            build_storage(Settings(STORAGE_BACKEND="ftp"))
