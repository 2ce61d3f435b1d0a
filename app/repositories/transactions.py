"""
Transaction persistence.
"""

from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.tables import Transaction


class TransactionRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add_all(self, transactions: Sequence[Transaction]) -> None:
        """Stage all rows in one flush; visibility comes with the batch commit."""
        if not transactions:
            return
        self.session.add_all(list(transactions))
        await self.session.flush()
