"""
RQ job functions for off-request invoice processing and the stale sweep.
These are the entry points that the worker calls.
"""

import asyncio
import uuid
from datetime import timedelta
from typing import Optional

import structlog
from redis import Redis
from rq import Queue
from rq.job import get_current_job

from app.config import settings
from app.models.enums import InvoiceStatus

logger = structlog.get_logger(__name__)


def get_queue() -> Queue:
    """Get the ingestion job queue."""
    conn = Redis.from_url(settings.REDIS_URL)
    return Queue(settings.QUEUE_NAME, connection=conn)


def enqueue_invoice_processing(invoice_id: str) -> str:
    """
    Enqueue OCR + LLM extraction for an invoice that was already received.
    Returns the job ID.
    """
    q = get_queue()
    job = q.enqueue(
        process_invoice_job,
        invoice_id,
        job_timeout=settings.JOB_TIMEOUT_SECONDS,
        result_ttl=86400,  # Keep results for 24 hours
        failure_ttl=604800,  # Keep failures for 7 days
    )
    logger.info("job_enqueued", invoice_id=invoice_id, job_id=job.id)
    return job.id


SWEEP_JOB_PREFIX = "stale-sweep-"


def _pending_sweep_ids(q: Queue, exclude: str = None) -> list[str]:
    """Sweep jobs already scheduled, queued or running, other than `exclude`."""
    job_ids = [
        *q.scheduled_job_registry.get_job_ids(),
        *q.job_ids,
        *q.started_job_registry.get_job_ids(),
    ]
    return [j for j in job_ids if j.startswith(SWEEP_JOB_PREFIX) and j != exclude]


def schedule_stale_sweep(queue: Queue = None, exclude: str = None) -> Optional[str]:
    """
    Schedule the next sweep run STALE_SWEEP_INTERVAL_MINUTES from now.
    Only one sweep chain exists per queue: if another sweep job is already
    pending, nothing is scheduled and None is returned.
    """
    q = queue or get_queue()
    pending = _pending_sweep_ids(q, exclude=exclude)
    if pending:
        logger.info("stale_sweep_already_scheduled", job_id=pending[0])
        return None
    job = q.enqueue_in(
        timedelta(minutes=settings.STALE_SWEEP_INTERVAL_MINUTES),
        sweep_stale_records_job,
        job_id=f"{SWEEP_JOB_PREFIX}{uuid.uuid4().hex}",
        job_timeout=settings.JOB_TIMEOUT_SECONDS,
    )
    logger.info("stale_sweep_scheduled", job_id=job.id,
                in_minutes=settings.STALE_SWEEP_INTERVAL_MINUTES)
    return job.id



def process_invoice_job(invoice_id: str) -> dict:
    """Run steps 4-9 of the invoice pipeline inside the RQ worker process."""
    logger.info("job_started", invoice_id=invoice_id)

    try:
        result = asyncio.run(_process_invoice_async(uuid.UUID(invoice_id)))
        logger.info("job_completed", invoice_id=invoice_id, status=result.get("status"))
        return result
    except Exception as e:
        logger.error("job_failed", invoice_id=invoice_id, error=str(e))
        raise


async def _process_invoice_async(invoice_id: uuid.UUID) -> dict:
    from app.dependencies import build_invoice_service, get_llm_provider, get_ocr_engine, get_storage
    from app.models.database import async_session_factory, close_db

    try:
        async with async_session_factory() as session:
            service = build_invoice_service(session, get_storage(), get_ocr_engine(), get_llm_provider())
            invoice = await service.invoices.get(invoice_id)
            if invoice is None:
                raise LookupError(f"Invoice {invoice_id} not found")
            if invoice.status != InvoiceStatus.PROCESSING.value:
                logger.info("job_skipped", invoice_id=str(invoice_id), status=invoice.status)
                return {"invoice_id": str(invoice_id), "status": invoice.status, "skipped": True}
            if invoice.attachment is None:
                raise LookupError(f"Invoice {invoice_id} has no stored attachment")

            content = await service.storage.get(invoice.attachment.storage_key)
            invoice = await service.process_invoice(invoice, content, invoice.attachment.content_type)
            return {"invoice_id": str(invoice_id), "status": invoice.status}
    finally:
        # Each asyncio.run gets a fresh loop; pooled connections can't outlive it
        await close_db()


def sweep_stale_records_job() -> dict:
    """Fail records stuck in PROCESSING, then schedule the next run."""
    try:
        result = asyncio.run(_sweep_async())
    finally:
        current = get_current_job()
        schedule_stale_sweep(exclude=current.id if current else None)
    return {"batches_failed": result.batches_failed, "invoices_failed": result.invoices_failed}


async def _sweep_async():
    from app.models.database import async_session_factory, close_db
    from app.pipeline.sweep import sweep_stale_records
    from app.repositories.import_batches import ImportBatchRepository
    from app.repositories.invoices import InvoiceRepository

    try:
        async with async_session_factory() as session:
            return await sweep_stale_records(ImportBatchRepository(session), InvoiceRepository(session))
    finally:
        await close_db()
