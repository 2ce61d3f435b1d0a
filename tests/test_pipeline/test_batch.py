"""
Tests for batch outcome bookkeeping.
"""

import uuid
from datetime import datetime, timezone

import pytest

from app.models.enums import ImportStatus
from app.models.tables import ImportBatch
from app.pipeline.batch import BatchAccumulator, resolve_batch_status


class TestResolveBatchStatus:
    @pytest.mark.parametrize("successful,failed,expected", [
        (3, 0, ImportStatus.COMPLETED),
        (0, 0, ImportStatus.COMPLETED),
        (2, 1, ImportStatus.PARTIAL),
        (0, 3, ImportStatus.FAILED),
    ])
    def test_status_from_counters(self, successful, failed, expected):
        assert resolve_batch_status(successful, failed) == expected


class TestBatchAccumulator:
    def test_failure_lines_are_numbered(self):
        acc = BatchAccumulator(total=3)
        acc.record_success()
        acc.record_failure(2, "Invalid amount: 'x'")
        acc.record_failure(3, "Date is empty")
        assert acc.error_log == "Row 2: Invalid amount: 'x'\nRow 3: Date is empty"
        assert acc.status == ImportStatus.PARTIAL

    def test_no_errors_means_no_log(self):
        assert BatchAccumulator().error_log is None

    def test_abort_forces_failed(self):
        acc = BatchAccumulator()
        acc.abort("CSV file is empty")
        assert acc.status == ImportStatus.FAILED
        assert acc.error_log == "CSV file is empty"

    def test_apply_to_batch(self):
        batch = ImportBatch(id=uuid.uuid4(), status=ImportStatus.PROCESSING.value, error_log=None)
        done = datetime(2024, 1, 1, tzinfo=timezone.utc)
        acc = BatchAccumulator(total=2)
        acc.record_success()
        acc.record_failure(2, "bad")

        acc.apply_to(batch, done)

        assert batch.total_records == 2
        assert batch.successful_records == 1
        assert batch.failed_records == 1
        assert batch.status == "PARTIAL"
        assert batch.error_log == "Row 2: bad"
        assert batch.completed_at == done
