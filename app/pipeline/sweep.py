"""
Stale-record sweep.

A crash between creation and finalisation leaves an ImportBatch or Invoice
in PROCESSING forever. Anything still PROCESSING after
STALE_PROCESSING_TIMEOUT_MINUTES is forced to FAILED. Attachments are
left alone so the source document stays retrievable.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog

from app.config import settings
from app.models.enums import ImportStatus, InvoiceStatus
from app.observability import metrics
from app.repositories.import_batches import ImportBatchRepository
from app.repositories.invoices import InvoiceRepository

logger = structlog.get_logger(__name__)


@dataclass
class SweepResult:
    batches_failed: int = 0
    invoices_failed: int = 0


async def sweep_stale_records(
    batches: ImportBatchRepository,
    invoices: InvoiceRepository,
    now: Optional[datetime] = None,
    timeout_minutes: Optional[int] = None,
) -> SweepResult:
    now = now or datetime.now(timezone.utc)
    timeout_minutes = timeout_minutes or settings.STALE_PROCESSING_TIMEOUT_MINUTES
    cutoff = now - timedelta(minutes=timeout_minutes)
    result = SweepResult()

    for invoice in await invoices.find_stale(cutoff):
        invoice.status = InvoiceStatus.FAILED.value
        invoice.processed_at = now
        invoice.updated_at = now
        await invoices.save(invoice)
        result.invoices_failed += 1
        logger.warning("stale_invoice_failed", invoice_id=str(invoice.id),
                       created_at=invoice.created_at.isoformat())

    message = f"Processing abandoned after {timeout_minutes} minutes"
    for batch in await batches.find_stale(cutoff):
        batch.failed_records = max(batch.total_records - batch.successful_records, 0)
        batch.status = ImportStatus.FAILED.value
        batch.append_error(message)
        batch.completed_at = now
        await batches.save(batch)
        result.batches_failed += 1
        logger.warning("stale_batch_failed", batch_id=str(batch.id),
                       created_at=batch.created_at.isoformat())

    metrics.stale_records_swept_total.labels(record_type="invoice").inc(result.invoices_failed)
    metrics.stale_records_swept_total.labels(record_type="import_batch").inc(result.batches_failed)
    logger.info("stale_sweep_complete", cutoff=cutoff.isoformat(),
                invoices_failed=result.invoices_failed, batches_failed=result.batches_failed)
    return result
