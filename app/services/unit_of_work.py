"""Transaction boundary shared by the reservation services"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit import AuditLog
from app.repositories import TableRepository, CustomerRepository, ReservationRepository


class UnitOfWork:
    """Wraps one AsyncSession; everything done through it commits or rolls back together.

    Used as ``async with uow:``; leaving the block with an exception rolls
    back, leaving it normally does nothing, so callers commit explicitly.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.tables = TableRepository(db)
        self.customers = CustomerRepository(db)
        self.reservations = ReservationRepository(db)

    async def __aenter__(self) -> "UnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            await self.rollback()

    async def flush(self) -> None:
        await self.db.flush()

    async def commit(self) -> None:
        await self.db.commit()

    async def rollback(self) -> None:
        await self.db.rollback()

    def record(
        self,
        action: str,
        resource_type: str,
        resource_id: int,
        actor_id: Optional[int] = None,
        actor_type: Optional[str] = None,
        data: Optional[dict] = None,
        at=None,
    ) -> AuditLog:
        """Stage an audit entry in the current transaction"""
        entry = AuditLog(
            actor_id=actor_id,
            actor_type=actor_type or ("user" if actor_id is not None else "system"),
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            data_json=data or {},
            created_at=at,
        )
        self.db.add(entry)
        return entry
