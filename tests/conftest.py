"""
Shared test fixtures.

Services are exercised against in-memory repositories and backends so the
suite needs no database, Redis, Tesseract or network access.
"""

import asyncio
import os
import tempfile
import uuid
from datetime import datetime, timezone
from typing import Optional

# Settings are read at import time; point them at harmless backends first
os.environ.setdefault("STORAGE_BACKEND", "local")
os.environ.setdefault("STORAGE_LOCAL_ROOT", tempfile.mkdtemp(prefix="ingestion-tests-"))
os.environ.setdefault("OCR_ENGINE", "stub")
os.environ.setdefault("LLM_PROVIDER", "stub")

import pytest  # noqa: E402

from app.engines.stub_engine import StubEngine  # noqa: E402
from app.llm.base import LlmProvider  # noqa: E402
from app.llm.stub_provider import StubProvider  # noqa: E402
from app.models.enums import CategoryType, ImportStatus, InvoiceStatus  # noqa: E402
from app.models.tables import Category, ImportBatch, Invoice  # noqa: E402
from app.pipeline.csv_import import CsvImportService  # noqa: E402
from app.pipeline.invoice_processing import InvoiceProcessingService, InvoiceUpload  # noqa: E402
from app.storage.base import StorageBackend, StorageError  # noqa: E402
from app.storage.paths import object_key  # noqa: E402

FIXED_NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
USER_ID = uuid.UUID("11111111-1111-1111-1111-111111111111")


# ── Fake repositories ───────────────────────────────────────

class FakeBatchRepository:
    def __init__(self):
        self.items: dict[uuid.UUID, ImportBatch] = {}
        self.save_count = 0

    async def add(self, batch):
        self.items[batch.id] = batch
        return batch

    async def save(self, batch):
        self.items[batch.id] = batch
        self.save_count += 1
        return batch

    async def get(self, batch_id, user_id=None):
        batch = self.items.get(batch_id)
        if batch is not None and user_id is not None and batch.user_id != user_id:
            return None
        return batch

    async def mark_failed(self, batch_id, message, now):
        batch = self.items[batch_id]
        batch.failed_records = max(batch.total_records - batch.successful_records, batch.failed_records)
        batch.status = ImportStatus.FAILED.value
        batch.append_error(message)
        batch.completed_at = now

    async def find_stale(self, cutoff):
        return [b for b in self.items.values()
                if b.status == ImportStatus.PROCESSING.value and b.created_at < cutoff]


class FakeTransactionRepository:
    def __init__(self):
        self.rows = []
        self.write_calls = 0

    async def add_all(self, transactions):
        self.write_calls += 1
        self.rows.extend(transactions)


class FakeInvoiceRepository:
    def __init__(self):
        self.items: dict[uuid.UUID, Invoice] = {}

    async def add(self, invoice):
        self.items[invoice.id] = invoice
        return invoice

    async def save(self, invoice):
        self.items[invoice.id] = invoice
        return invoice

    async def get(self, invoice_id, user_id=None):
        return self.items.get(invoice_id)

    async def mark_failed(self, invoice_id, now):
        invoice = self.items[invoice_id]
        invoice.status = InvoiceStatus.FAILED.value
        invoice.processed_at = now
        invoice.updated_at = now

    async def find_stale(self, cutoff):
        return [i for i in self.items.values()
                if i.status == InvoiceStatus.PROCESSING.value and i.created_at < cutoff]


class FakeCategoryRepository:
    def __init__(self, categories=None):
        self.categories = list(categories or [])

    async def available_categories(self, user_id, category_type):
        return [c for c in self.categories if c.type == category_type.value]


# ── Fake backends ───────────────────────────────────────────

class FakeStorage(StorageBackend):
    backend_name = "memory"

    def __init__(self, events: Optional[list] = None, fail: bool = False):
        self.objects: dict[str, bytes] = {}
        self.events = events if events is not None else []
        self.fail = fail

    async def store(self, data, folder, file_name, content_type):
        if self.fail:
            raise StorageError(self.backend_name, "bucket unavailable")
        key = object_key(folder, file_name)
        self.objects[key] = data
        self.events.append("store")
        return key

    async def get(self, key):
        return self.objects[key]

    async def get_url(self, key):
        return f"memory://{key}"

    async def delete(self, key):
        return self.objects.pop(key, None) is not None

    async def exists(self, key):
        return key in self.objects


class RecordingProvider(StubProvider):
    """Stub provider that logs when it was called relative to storage."""

    def __init__(self, response=None, events=None, **kwargs):
        super().__init__(response=response, **kwargs)
        self.events = events if events is not None else []

    async def _complete_invoice(self, image_bytes, content_type, prompt):
        self.events.append("llm")
        return await super()._complete_invoice(image_bytes, content_type, prompt)


class RawTextProvider(LlmProvider):
    """Returns a fixed raw string, for malformed-output tests."""

    provider_name = "raw"

    def __init__(self, text: str, **kwargs):
        super().__init__(**kwargs)
        self.text = text

    async def _complete_invoice(self, image_bytes, content_type, prompt):
        return self.text

    async def _complete_query(self, query):
        return self.text


class ExplodingProvider(LlmProvider):
    provider_name = "exploding"

    async def _complete_invoice(self, image_bytes, content_type, prompt):
        raise ConnectionError("provider unreachable")

    async def _complete_query(self, query):
        raise ConnectionError("provider unreachable")


class SlowProvider(LlmProvider):
    provider_name = "slow"

    async def _complete_invoice(self, image_bytes, content_type, prompt):
        await asyncio.sleep(5)
        return "{}"

    async def _complete_query(self, query):
        await asyncio.sleep(5)
        return ""


# ── Fixtures ────────────────────────────────────────────────

@pytest.fixture
def batch_repo():
    return FakeBatchRepository()


@pytest.fixture
def transaction_repo():
    return FakeTransactionRepository()


@pytest.fixture
def invoice_repo():
    return FakeInvoiceRepository()


@pytest.fixture
def csv_service(batch_repo, transaction_repo):
    return CsvImportService(batch_repo, transaction_repo, default_currency="USD", clock=lambda: FIXED_NOW)


@pytest.fixture
def expense_categories():
    food = Category(id=uuid.uuid4(), user_id=USER_ID, name="Food & Dining", type=CategoryType.EXPENSE.value)
    groceries = Category(id=uuid.uuid4(), user_id=USER_ID, name="Groceries",
                         type=CategoryType.EXPENSE.value, parent_id=food.id)
    travel = Category(id=uuid.uuid4(), user_id=None, name="Transportation", type=CategoryType.EXPENSE.value)
    salary = Category(id=uuid.uuid4(), user_id=USER_ID, name="Salary", type=CategoryType.INCOME.value)
    return {"food": food, "groceries": groceries, "travel": travel, "salary": salary}


@pytest.fixture
def events():
    return []


@pytest.fixture
def storage(events):
    return FakeStorage(events=events)


@pytest.fixture
def make_invoice_service(invoice_repo, batch_repo, storage, expense_categories, events):
    """Factory: build a service around a given provider/OCR text."""
    def _make(llm=None, ocr_text="ACME LTD\nTOTAL 42.00", storage_backend=None):
        return InvoiceProcessingService(
            invoices=invoice_repo,
            batches=batch_repo,
            categories=FakeCategoryRepository(expense_categories.values()),
            storage=storage_backend or storage,
            ocr=StubEngine(text=ocr_text),
            llm=llm or RecordingProvider(events=events),
            default_currency="USD",
            invoice_folder="invoices",
            clock=lambda: FIXED_NOW,
        )
    return _make


@pytest.fixture
def png_upload():
    return InvoiceUpload(file_name="receipt.png", content_type="image/png", content=b"\x89PNG fake image bytes")


@pytest.fixture
def sample_csv():
    return (
        "date,description,amount\n"
        "2024-01-01,Coffee,-4.50\n"
        "2024-01-02,Paycheck,2000.00\n"
        "not-a-date,Bad Row,10\n"
    ).encode("utf-8")
