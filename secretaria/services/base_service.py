# secretaria/services/base_service.py
"""Base service with common read and soft-delete operations."""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from typing import Type, Any, Dict, Optional, TypeVar, Generic

from ..utils.pagination import PageParams, page_response

# Define generic type
T = TypeVar('T')

class BaseService(Generic[T]):
    def __init__(self, model: Type[T], db: AsyncSession):
        self.model = model
        self.db = db

    def _apply_filters(self, stmt, include_deleted: bool = False, **filters):
        # Add soft delete filter if model has is_deleted field
        if hasattr(self.model, 'is_deleted') and not include_deleted:
            stmt = stmt.where(self.model.is_deleted == False)

        for key, value in filters.items():
            if hasattr(self.model, key) and value is not None:
                stmt = stmt.where(getattr(self.model, key) == value)
        return stmt

    async def get(self, id: Any, include_deleted: bool = False) -> Optional[T]:
        stmt = self._apply_filters(select(self.model).where(self.model.id == id), include_deleted)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_paginated(
        self,
        params: PageParams,
        include_deleted: bool = False,
        order_by: str = "id",
        sort: str = "asc",
        **filters
    ) -> Dict[str, Any]:
        """Get one page of results with optional soft delete filtering"""
        count_stmt = self._apply_filters(
            select(func.count()).select_from(self.model), include_deleted, **filters
        )
        count_result = await self.db.execute(count_stmt)
        total = count_result.scalar() or 0

        stmt = self._apply_filters(select(self.model), include_deleted, **filters)
        if order_by and hasattr(self.model, order_by):
            order_field = getattr(self.model, order_by)
            stmt = stmt.order_by(order_field.desc() if sort.lower() == "desc" else order_field.asc())

        result = await self.db.execute(stmt.offset(params.offset).limit(params.size))
        return page_response(result.scalars().all(), params, total)

    async def soft_delete(self, id: Any) -> bool:
        obj = await self.get(id)
        if not obj:
            return False
        obj.is_deleted = True
        await self.db.commit()
        return True
