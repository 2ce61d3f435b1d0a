"""
ImportBatch persistence.
"""

import uuid
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import ImportStatus
from app.models.tables import ImportBatch

logger = structlog.get_logger(__name__)


class ImportBatchRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, batch: ImportBatch) -> ImportBatch:
        """Insert and commit immediately so the batch is trackable before any work."""
        self.session.add(batch)
        await self.session.commit()
        return batch

    async def save(self, batch: ImportBatch) -> ImportBatch:
        """Commit the batch together with anything else pending in the session."""
        self.session.add(batch)
        await self.session.commit()
        return batch

    async def get(self, batch_id: uuid.UUID, user_id: Optional[uuid.UUID] = None) -> Optional[ImportBatch]:
        stmt = select(ImportBatch).where(ImportBatch.id == batch_id)
        if user_id is not None:
            stmt = stmt.where(ImportBatch.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def mark_failed(self, batch_id: uuid.UUID, message: str, now: datetime) -> None:
        """
        Discard the in-flight unit of work and record the batch as FAILED.
        Never raises: a failure here is logged so the original error can propagate.
        """
        try:
            await self.session.rollback()
            batch = await self.get(batch_id)
            if batch is None:
                logger.error("failed_to_mark_failure", batch_id=str(batch_id), reason="not_found")
                return
            # Records never classified count as failed
            batch.failed_records = max(batch.total_records - batch.successful_records, batch.failed_records)
            batch.status = ImportStatus.FAILED.value
            batch.append_error(message)
            batch.completed_at = now
            await self.session.commit()
        except Exception as e:
            logger.error("failed_to_mark_failure", batch_id=str(batch_id), error=str(e))

    async def find_stale(self, cutoff: datetime) -> list[ImportBatch]:
        """Batches still PROCESSING that were created before cutoff."""
        result = await self.session.execute(
            select(ImportBatch)
            .where(ImportBatch.status == ImportStatus.PROCESSING.value)
            .where(ImportBatch.created_at < cutoff)
            .order_by(ImportBatch.created_at)
        )
        return list(result.scalars().all())
