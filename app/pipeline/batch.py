"""
Per-batch outcome accumulator shared by both ingestion pipelines.

Counters and error lines are collected in memory while items are processed
and written onto the ImportBatch row once, when the batch is finalised.
"""

from dataclasses import dataclass, field
from datetime import datetime

from app.models.enums import ImportStatus
from app.models.tables import ImportBatch


def resolve_batch_status(successful: int, failed: int) -> ImportStatus:
    """Final status as a pure function of the counters."""
    if failed == 0:
        return ImportStatus.COMPLETED
    if successful == 0:
        return ImportStatus.FAILED
    return ImportStatus.PARTIAL


@dataclass
class BatchAccumulator:
    total: int = 0
    successful: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)
    aborted: bool = False

    def record_success(self) -> None:
        self.successful += 1

    def record_failure(self, row_number: int, message: str) -> None:
        self.failed += 1
        self.errors.append(f"Row {row_number}: {message}")

    def abort(self, message: str) -> None:
        """Whole-batch failure (empty file, unreadable input). Status becomes FAILED."""
        self.aborted = True
        self.errors.append(message)

    @property
    def status(self) -> ImportStatus:
        if self.aborted:
            return ImportStatus.FAILED
        return resolve_batch_status(self.successful, self.failed)

    @property
    def error_log(self) -> str | None:
        return "\n".join(self.errors) if self.errors else None

    def apply_to(self, batch: ImportBatch, completed_at: datetime) -> ImportBatch:
        """Write counters, status, error log and completion time onto the batch."""
        batch.total_records = self.total
        batch.successful_records = self.successful
        batch.failed_records = self.failed
        batch.status = self.status.value
        for line in self.errors:
            batch.append_error(line)
        batch.completed_at = completed_at
        return batch
