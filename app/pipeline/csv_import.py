"""
Bank statement CSV import.

One ImportBatch per file. Rows are parsed independently: a bad row is
counted and logged as "Row {n}: {message}" and the rest of the file still
imports. Parsed transactions are written in a single flush and committed
together with the finalised batch.
"""

import csv
import io
import time
import traceback
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

import structlog

from app.config import settings
from app.models.enums import ImportStatus, ImportType
from app.models.tables import ImportBatch, Transaction
from app.observability import metrics
from app.observability.logging import bound_context
from app.pipeline.batch import BatchAccumulator
from app.pipeline.column_resolver import resolve_columns
from app.pipeline.row_parser import parse_transaction_row
from app.repositories.import_batches import ImportBatchRepository
from app.repositories.transactions import TransactionRepository

logger = structlog.get_logger(__name__)

EMPTY_FILE_MESSAGE = "CSV file is empty"


class CsvImportError(Exception):
    """Raised when a failure escapes row processing. The batch is already FAILED."""

    def __init__(self, message: str, batch_id: uuid.UUID):
        self.message = message
        self.batch_id = batch_id
        super().__init__(message)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def decode_csv_bytes(content: bytes) -> str:
    """UTF-8 (BOM tolerated), falling back to Windows-1252 for older bank exports."""
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        return content.decode("cp1252")


def read_rows(content: bytes) -> list[list[str]]:
    """All non-blank rows, header included."""
    reader = csv.reader(io.StringIO(decode_csv_bytes(content), newline=""))
    return [row for row in reader if any(cell.strip() for cell in row)]


class CsvImportService:
    def __init__(
        self,
        batches: ImportBatchRepository,
        transactions: TransactionRepository,
        default_currency: Optional[str] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.batches = batches
        self.transactions = transactions
        self.default_currency = default_currency or settings.DEFAULT_CURRENCY
        self.clock = clock

    async def import_bank_transactions(
        self,
        file_name: str,
        content: bytes,
        user_id: uuid.UUID,
    ) -> ImportBatch:
        """
        Import a bank CSV export for a user.

        Always returns the finalised batch for row-level and empty-file
        failures. Anything else marks the batch FAILED and raises
        CsvImportError carrying the batch id.
        """
        batch = ImportBatch(
            id=uuid.uuid4(),
            user_id=user_id,
            import_type=ImportType.BANK_TRANSACTION.value,
            file_name=file_name,
            total_records=0,
            successful_records=0,
            failed_records=0,
            status=ImportStatus.PROCESSING.value,
            created_at=self.clock(),
        )
        await self.batches.add(batch)

        with bound_context(batch_id=str(batch.id)):
            logger.info("csv_import_started", file_name=file_name, size_bytes=len(content))
            start = time.monotonic()
            try:
                batch = await self._run(batch, content, user_id)
            except Exception as e:
                error_msg = str(e) or type(e).__name__
                logger.error("csv_import_failed", error=error_msg, traceback=traceback.format_exc())
                await self.batches.mark_failed(batch.id, error_msg, self.clock())
                metrics.csv_imports_total.labels(status=ImportStatus.FAILED.value).inc()
                raise CsvImportError(error_msg, batch.id) from e
            finally:
                metrics.pipeline_stage_duration_seconds.labels(
                    pipeline="csv", stage="import"
                ).observe(time.monotonic() - start)

            metrics.csv_imports_total.labels(status=batch.status).inc()
            logger.info(
                "csv_import_completed",
                status=batch.status,
                total=batch.total_records,
                successful=batch.successful_records,
                failed=batch.failed_records,
            )
            return batch

    async def _run(self, batch: ImportBatch, content: bytes, user_id: uuid.UUID) -> ImportBatch:
        accumulator = BatchAccumulator()
        rows = read_rows(content)

        if not rows:
            accumulator.abort(EMPTY_FILE_MESSAGE)
            logger.warning("csv_file_empty")
            accumulator.apply_to(batch, self.clock())
            return await self.batches.save(batch)

        header, data_rows = rows[0], rows[1:]
        columns = resolve_columns(header)
        logger.info(
            "csv_columns_resolved",
            header=header,
            date=columns.date,
            description=columns.description,
            amount=columns.amount,
            balance=columns.balance,
        )
        if columns.missing_required:
            logger.warning("csv_required_columns_missing", missing=columns.missing_required)

        accumulator.total = len(data_rows)
        parsed_transactions: list[Transaction] = []

        for row_number, row in enumerate(data_rows, start=1):
            try:
                parsed = parse_transaction_row(row, columns, self.default_currency)
                parsed_transactions.append(Transaction(
                    id=uuid.uuid4(),
                    user_id=user_id,
                    import_batch_id=batch.id,
                    transaction_date=parsed.transaction_date,
                    description=parsed.description,
                    amount=parsed.amount,
                    currency=parsed.currency,
                    type=parsed.type.value,
                    balance=parsed.balance,
                    is_reconciled=False,
                ))
                accumulator.record_success()
                if parsed.date_ambiguous:
                    logger.debug("csv_row_date_ambiguous", row=row_number)
            except Exception as e:
                accumulator.record_failure(row_number, str(e))
                logger.warning("csv_row_failed", row=row_number, error=str(e))

        metrics.csv_rows_total.labels(outcome="success").inc(accumulator.successful)
        metrics.csv_rows_total.labels(outcome="failed").inc(accumulator.failed)

        await self.transactions.add_all(parsed_transactions)
        accumulator.apply_to(batch, self.clock())
        return await self.batches.save(batch)
