"""
Response schema for the bank CSV import endpoints.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.models.tables import ImportBatch


class ImportBatchResponse(BaseModel):
    """Counts and error log for one import attempt."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    batch_id: str
    import_type: str
    file_name: str
    status: str
    total_records: int
    successful_records: int
    failed_records: int
    error_log: Optional[str] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_batch(cls, batch: ImportBatch) -> "ImportBatchResponse":
        return cls(
            batch_id=str(batch.id),
            import_type=batch.import_type,
            file_name=batch.file_name,
            status=batch.status,
            total_records=batch.total_records,
            successful_records=batch.successful_records,
            failed_records=batch.failed_records,
            error_log=batch.error_log,
            created_at=batch.created_at,
            completed_at=batch.completed_at,
        )
