"""
Invoice upload pipeline.

receive_invoice (synchronous with the request):
  1. validate the upload
  2. create the ImportBatch + Invoice in PROCESSING and commit
  3. store the source file and commit the Attachment

process_invoice (inline or on the worker):
  4. OCR (degrades to empty text)
  5. LLM structured extraction
  6. map fields, resolve category, build line items
  7. audit data (OCR text, provider, timestamp)
  8. confidence gate: >= 0.70 COMPLETED, otherwise REVIEW_REQUIRED
  9. stamp processed_at, commit, finalise the batch

Any failure after step 2 forces the invoice and its batch to FAILED and is
re-raised as InvoiceProcessingError. The attachment is never removed.
"""

import asyncio
import time
import traceback
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Optional

import structlog

from app.config import settings
from app.engines.base import TextExtractionEngine, is_image, is_pdf
from app.llm.base import LlmProvider
from app.models.enums import CategoryType, ImportStatus, ImportType, InvoiceStatus
from app.models.tables import Attachment, ImportBatch, Invoice
from app.observability import metrics
from app.observability.logging import bound_context
from app.pipeline.batch import BatchAccumulator
from app.pipeline.invoice_mapper import map_analysis
from app.pipeline.renderer import count_pages, image_dimensions
from app.repositories.categories import CategoryRepository
from app.repositories.import_batches import ImportBatchRepository
from app.repositories.invoices import InvoiceRepository
from app.storage.base import StorageBackend

logger = structlog.get_logger(__name__)

# Fixed acceptance policy; not configurable
REVIEW_CONFIDENCE_THRESHOLD = Decimal("0.70")


class InvoiceValidationError(Exception):
    """Upload rejected before anything was persisted."""

    def __init__(self, message: str, error_code: str):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class InvoiceProcessingError(Exception):
    """A stage failed after the invoice was created; the invoice is FAILED."""

    def __init__(self, message: str, invoice_id: uuid.UUID, error_code: str = "ERR_PIPELINE"):
        self.message = message
        self.invoice_id = invoice_id
        self.error_code = error_code
        super().__init__(message)


@dataclass(frozen=True)
class InvoiceUpload:
    file_name: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_upload(upload: InvoiceUpload, max_bytes: Optional[int] = None) -> None:
    max_bytes = settings.max_upload_bytes if max_bytes is None else max_bytes
    if not upload.content:
        raise InvoiceValidationError("File is empty", "ERR_EMPTY_FILE")
    if not (is_image(upload.content_type) or is_pdf(upload.content_type)):
        raise InvoiceValidationError("Only image and PDF files are supported", "ERR_UNSUPPORTED_TYPE")
    if upload.size > max_bytes:
        raise InvoiceValidationError(
            f"File size exceeds {max_bytes // (1024 * 1024)}MB limit", "ERR_FILE_TOO_LARGE"
        )


def decide_status(confidence: Optional[Decimal]) -> InvoiceStatus:
    """Missing confidence counts as below threshold."""
    if confidence is not None and confidence >= REVIEW_CONFIDENCE_THRESHOLD:
        return InvoiceStatus.COMPLETED
    return InvoiceStatus.REVIEW_REQUIRED


class InvoiceProcessingService:
    def __init__(
        self,
        invoices: InvoiceRepository,
        batches: ImportBatchRepository,
        categories: CategoryRepository,
        storage: StorageBackend,
        ocr: TextExtractionEngine,
        llm: LlmProvider,
        default_currency: Optional[str] = None,
        invoice_folder: Optional[str] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.invoices = invoices
        self.batches = batches
        self.categories = categories
        self.storage = storage
        self.ocr = ocr
        self.llm = llm
        self.default_currency = default_currency or settings.DEFAULT_CURRENCY
        self.invoice_folder = invoice_folder or settings.INVOICE_FOLDER
        self.clock = clock

    async def upload_and_process_invoice(self, upload: InvoiceUpload, user_id: uuid.UUID) -> Invoice:
        invoice = await self.receive_invoice(upload, user_id)
        return await self.process_invoice(invoice, upload.content, upload.content_type)

    # ─── Steps 1-3 ────────────────────────────────────────────

    async def receive_invoice(self, upload: InvoiceUpload, user_id: uuid.UUID) -> Invoice:
        """Validate, create the PROCESSING invoice and durably store the source file."""
        try:
            validate_upload(upload)
        except InvoiceValidationError as e:
            metrics.invoices_rejected_total.labels(error_code=e.error_code).inc()
            logger.info("invoice_upload_rejected", file_name=upload.file_name,
                        content_type=upload.content_type, size_bytes=upload.size, error_code=e.error_code)
            raise

        now = self.clock()
        batch = ImportBatch(
            id=uuid.uuid4(),
            user_id=user_id,
            import_type=ImportType.INVOICE_DOCUMENT.value,
            file_name=upload.file_name,
            total_records=1,
            successful_records=0,
            failed_records=0,
            status=ImportStatus.PROCESSING.value,
            created_at=now,
        )
        invoice = Invoice(
            id=uuid.uuid4(),
            user_id=user_id,
            import_batch_id=batch.id,
            status=InvoiceStatus.PROCESSING.value,
            currency=self.default_currency,
            created_at=now,
            updated_at=now,
            line_items=[],
            attachment=None,
        )
        await self.batches.add(batch)
        await self.invoices.add(invoice)
        metrics.invoices_uploaded_total.labels(content_type=upload.content_type).inc()

        with bound_context(invoice_id=str(invoice.id), batch_id=str(batch.id)):
            logger.info("invoice_received", file_name=upload.file_name,
                        content_type=upload.content_type, size_bytes=upload.size)
            try:
                invoice.attachment = await self._store_attachment(invoice, upload)
                invoice.updated_at = self.clock()
                await self.invoices.save(invoice)
            except Exception as e:
                await self._fail(invoice, e, stage="store")
        return invoice

    async def _store_attachment(self, invoice: Invoice, upload: InvoiceUpload) -> Attachment:
        start = time.monotonic()
        key = await self.storage.store(upload.content, self.invoice_folder, upload.file_name, upload.content_type)
        url = await self.storage.get_url(key)
        page_count = await asyncio.to_thread(
            count_pages, upload.content, upload.content_type, settings.POPPLER_PATH
        )
        width, height = image_dimensions(upload.content, upload.content_type)
        self._observe("store", start)

        logger.info("invoice_attachment_stored", storage_key=key, page_count=page_count)
        return Attachment(
            id=uuid.uuid4(),
            invoice_id=invoice.id,
            file_name=upload.file_name,
            content_type=upload.content_type,
            file_size=upload.size,
            storage_key=key,
            storage_url=url,
            width=width,
            height=height,
            page_count=page_count,
            created_at=self.clock(),
        )

    # ─── Steps 4-9 ────────────────────────────────────────────

    async def process_invoice(self, invoice: Invoice, content: bytes, content_type: str) -> Invoice:
        """Run OCR + LLM extraction on a received invoice and finalise it."""
        with bound_context(invoice_id=str(invoice.id), batch_id=str(invoice.import_batch_id)):
            stage = "ocr"
            try:
                start = time.monotonic()
                ocr_text = await self.ocr.extract_text(content, content_type)
                self._observe(stage, start)

                stage = "llm"
                start = time.monotonic()
                result = await self.llm.analyze_invoice(content, ocr_text, content_type=content_type)
                self._observe(stage, start)

                stage = "map"
                categories = await self.categories.available_categories(invoice.user_id, CategoryType.EXPENSE)
                now = self.clock()
                map_analysis(
                    invoice,
                    result,
                    categories=categories,
                    provider_name=self.llm.provider_name,
                    ocr_text=ocr_text,
                    analyzed_at=now,
                    default_currency=self.default_currency,
                )

                status = decide_status(result.confidence)
                invoice.status = status.value
                invoice.processed_at = now
                invoice.updated_at = now

                stage = "persist"
                await self.invoices.save(invoice)
                await self._finalise_batch(invoice, failed_message=None)
            except Exception as e:
                await self._fail(invoice, e, stage=stage)

            metrics.invoices_processed_total.labels(status=invoice.status).inc()
            logger.info(
                "invoice_processed",
                status=invoice.status,
                confidence=str(result.confidence) if result.confidence is not None else None,
                provider=self.llm.provider_name,
                line_items=len(invoice.line_items),
                category_matched=invoice.category_id is not None,
            )
            return invoice

    async def _finalise_batch(self, invoice: Invoice, failed_message: Optional[str]) -> None:
        if invoice.import_batch_id is None:
            return
        batch = await self.batches.get(invoice.import_batch_id)
        if batch is None or batch.completed_at is not None:
            return
        accumulator = BatchAccumulator(total=1)
        if failed_message is None:
            accumulator.record_success()
        else:
            accumulator.record_failure(1, failed_message)
        accumulator.apply_to(batch, self.clock())
        await self.batches.save(batch)

    async def _fail(self, invoice: Invoice, error: Exception, stage: str) -> None:
        """Mark invoice + batch FAILED and raise InvoiceProcessingError."""
        error_msg = f"{type(error).__name__}: {error}"
        logger.error("invoice_processing_failed", stage=stage, error=error_msg,
                     traceback=traceback.format_exc())
        now = self.clock()
        invoice_id = invoice.id
        batch_id = invoice.import_batch_id

        await self.invoices.mark_failed(invoice_id, now)
        if batch_id is not None:
            await self.batches.mark_failed(batch_id, error_msg, now)
        metrics.invoices_processed_total.labels(status=InvoiceStatus.FAILED.value).inc()

        raise InvoiceProcessingError(
            f"Failed to process invoice: {error}", invoice_id,
            error_code=getattr(error, "error_code", "ERR_PIPELINE"),
        ) from error

    @staticmethod
    def _observe(stage: str, start: float) -> None:
        metrics.pipeline_stage_duration_seconds.labels(
            pipeline="invoice", stage=stage
        ).observe(time.monotonic() - start)
