"""
FastAPI dependency injection.
Provides DB sessions, process-wide backends (storage, OCR, LLM), services,
the caller's user id and API key validation.
"""

import uuid
from typing import AsyncIterator, Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.engines.base import TextExtractionEngine
from app.engines.factory import build_ocr_engine
from app.llm.base import LlmProvider
from app.llm.factory import build_llm_provider
from app.models.database import get_session
from app.pipeline.csv_import import CsvImportService
from app.pipeline.invoice_processing import InvoiceProcessingService
from app.repositories.categories import CategoryRepository
from app.repositories.import_batches import ImportBatchRepository
from app.repositories.invoices import InvoiceRepository
from app.repositories.transactions import TransactionRepository
from app.storage.base import StorageBackend
from app.storage.factory import build_storage


# ── Singleton instances ──────────────────────────────────────
_storage: Optional[StorageBackend] = None
_ocr_engine: Optional[TextExtractionEngine] = None
_llm_provider: Optional[LlmProvider] = None


def get_storage() -> StorageBackend:
    """Get or create the storage backend singleton."""
    global _storage
    if _storage is None:
        _storage = build_storage(settings)
    return _storage


def get_ocr_engine() -> TextExtractionEngine:
    global _ocr_engine
    if _ocr_engine is None:
        _ocr_engine = build_ocr_engine(settings)
    return _ocr_engine


def get_llm_provider() -> LlmProvider:
    global _llm_provider
    if _llm_provider is None:
        _llm_provider = build_llm_provider(settings)
    return _llm_provider


async def get_db() -> AsyncIterator[AsyncSession]:
    """Yield an async DB session."""
    async for session in get_session():
        yield session


# ── Services ─────────────────────────────────────────────────

def get_csv_import_service(session: AsyncSession = Depends(get_db)) -> CsvImportService:
    return CsvImportService(
        batches=ImportBatchRepository(session),
        transactions=TransactionRepository(session),
    )


def build_invoice_service(
    session: AsyncSession,
    storage: StorageBackend,
    ocr: TextExtractionEngine,
    llm: LlmProvider,
) -> InvoiceProcessingService:
    return InvoiceProcessingService(
        invoices=InvoiceRepository(session),
        batches=ImportBatchRepository(session),
        categories=CategoryRepository(session),
        storage=storage,
        ocr=ocr,
        llm=llm,
    )


def get_invoice_service(
    session: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
    ocr: TextExtractionEngine = Depends(get_ocr_engine),
    llm: LlmProvider = Depends(get_llm_provider),
) -> InvoiceProcessingService:
    return build_invoice_service(session, storage, ocr, llm)


def get_invoice_repository(session: AsyncSession = Depends(get_db)) -> InvoiceRepository:
    return InvoiceRepository(session)


def get_import_batch_repository(session: AsyncSession = Depends(get_db)) -> ImportBatchRepository:
    return ImportBatchRepository(session)


# ── Caller identity ──────────────────────────────────────────

async def get_user_id(
    x_user_id: str = Header(..., alias="X-User-Id"),
) -> uuid.UUID:
    """Authenticated user id, forwarded by the auth gateway."""
    try:
        return uuid.UUID(x_user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-User-Id must be a UUID",
        )


async def verify_api_key(
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
) -> Optional[str]:
    """
    Verify API key if configured.
    If API_KEY is not set, all requests are allowed (dev mode).
    """
    if settings.API_KEY is None:
        return None

    if x_api_key is None or x_api_key != settings.API_KEY:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )
    return x_api_key
