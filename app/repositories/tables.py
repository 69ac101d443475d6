"""Table directory queries"""

from typing import Iterable, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.table import Table, TableStatus


class TableRepository:
    """Read-mostly access to the physical table registry"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, table_id: int) -> Optional[Table]:
        result = await self.db.execute(select(Table).where(Table.id == table_id))
        return result.scalar_one_or_none()

    async def get_many(self, table_ids: Iterable[int], for_update: bool = False) -> List[Table]:
        ids = sorted(set(table_ids))
        if not ids:
            return []
        query = select(Table).where(Table.id.in_(ids)).order_by(Table.id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list(self, include_inactive: bool = False, location: Optional[str] = None) -> List[Table]:
        query = select(Table)
        if not include_inactive:
            query = query.where(Table.is_active == True)
        if location:
            query = query.where(func.lower(Table.location) == location.strip().lower())
        result = await self.db.execute(query.order_by(Table.table_number))
        return list(result.scalars().all())

    async def candidates(self, min_capacity: int = 1) -> List[Table]:
        """Active tables that could seat a party on their own"""
        result = await self.db.execute(
            select(Table)
            .where(Table.is_active == True, Table.capacity >= min_capacity)
            .order_by(Table.table_number)
        )
        return list(result.scalars().all())

    async def get_by_number(self, table_number: int) -> Optional[Table]:
        result = await self.db.execute(select(Table).where(Table.table_number == table_number))
        return result.scalar_one_or_none()

    async def total_capacity(self) -> int:
        result = await self.db.execute(
            select(func.coalesce(func.sum(Table.capacity), 0)).where(Table.is_active == True)
        )
        return int(result.scalar() or 0)

    async def occupied(self) -> List[Table]:
        result = await self.db.execute(
            select(Table).where(Table.is_active == True, Table.status == TableStatus.OCCUPIED)
        )
        return list(result.scalars().all())

    def add(self, table: Table) -> Table:
        self.db.add(table)
        return table
