"""
Invoice aggregate persistence (invoice + line items + attachment).
"""

import uuid
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.enums import InvoiceStatus
from app.models.tables import Invoice

logger = structlog.get_logger(__name__)


class InvoiceRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, invoice: Invoice) -> Invoice:
        self.session.add(invoice)
        await self.session.commit()
        return invoice

    async def save(self, invoice: Invoice) -> Invoice:
        self.session.add(invoice)
        await self.session.commit()
        return invoice

    async def get(self, invoice_id: uuid.UUID, user_id: Optional[uuid.UUID] = None) -> Optional[Invoice]:
        stmt = (
            select(Invoice)
            .options(selectinload(Invoice.line_items), selectinload(Invoice.attachment))
            .where(Invoice.id == invoice_id)
            .execution_options(populate_existing=True)
        )
        if user_id is not None:
            stmt = stmt.where(Invoice.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def mark_failed(self, invoice_id: uuid.UUID, now: datetime) -> None:
        """
        Roll back any partially mapped extraction data, then set FAILED.
        The attachment row was committed earlier and is untouched.
        """
        try:
            await self.session.rollback()
            await self.session.execute(
                update(Invoice)
                .where(Invoice.id == invoice_id)
                .values(status=InvoiceStatus.FAILED.value, processed_at=now, updated_at=now)
            )
            await self.session.commit()
        except Exception as e:
            logger.error("failed_to_mark_failure", invoice_id=str(invoice_id), error=str(e))

    async def find_stale(self, cutoff: datetime) -> list[Invoice]:
        result = await self.session.execute(
            select(Invoice)
            .where(Invoice.status == InvoiceStatus.PROCESSING.value)
            .where(Invoice.created_at < cutoff)
            .order_by(Invoice.created_at)
        )
        return list(result.scalars().all())
