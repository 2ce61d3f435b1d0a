"""
Read-only category lookup used for name matching during invoice mapping.
"""

import uuid

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import CategoryType
from app.models.tables import Category


class CategoryRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def available_categories(self, user_id: uuid.UUID, category_type: CategoryType) -> list[Category]:
        """User's own categories plus system defaults (user_id IS NULL)."""
        result = await self.session.execute(
            select(Category)
            .where(or_(Category.user_id == user_id, Category.user_id.is_(None)))
            .where(Category.type == category_type.value)
            .order_by(Category.user_id.is_(None), Category.name)
        )
        return list(result.scalars().all())
