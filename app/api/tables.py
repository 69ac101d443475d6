"""Dining table API endpoints"""

from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from app.database import get_db
from app.errors import NotFoundError, ValidationError
from app.models.table import Table
from app.models.user import User, UserRole
from app.repositories import TableRepository
from app.schemas.table import TableCreate, TableUpdate, TableStatusUpdate, TableResponse
from app.api.auth import require_role

router = APIRouter()
logger = structlog.get_logger()


async def _get_table(tables: TableRepository, table_id: int) -> Table:
    table = await tables.get(table_id)
    if not table:
        raise NotFoundError("Table not found")
    return table


@router.get("", response_model=List[TableResponse])
async def list_tables(
    location: Optional[str] = None,
    include_inactive: bool = False,
    db: AsyncSession = Depends(get_db),
):
    """List tables, optionally for one area"""
    return await TableRepository(db).list(include_inactive=include_inactive, location=location)


@router.get("/{table_id}", response_model=TableResponse)
async def get_table(
    table_id: int,
    db: AsyncSession = Depends(get_db),
):
    return await _get_table(TableRepository(db), table_id)


@router.post("", response_model=TableResponse, status_code=201)
async def create_table(
    table_data: TableCreate,
    current_user: User = Depends(require_role(UserRole.MANAGER)),
    db: AsyncSession = Depends(get_db),
):
    """Add a table to the floor plan"""
    tables = TableRepository(db)
    if await tables.get_by_number(table_data.table_number):
        raise ValidationError(
            f"Table number {table_data.table_number} already exists",
            code="INVALID_TABLE",
        )

    table = tables.add(Table(**table_data.model_dump()))
    await db.commit()
    await db.refresh(table)

    logger.info("Table created", table_id=table.id, table_number=table.table_number, user_id=current_user.id)
    return table


@router.put("/{table_id}", response_model=TableResponse)
async def update_table(
    table_id: int,
    table_data: TableUpdate,
    current_user: User = Depends(require_role(UserRole.MANAGER)),
    db: AsyncSession = Depends(get_db),
):
    table = await _get_table(TableRepository(db), table_id)

    for field, value in table_data.model_dump(exclude_unset=True).items():
        setattr(table, field, value)

    await db.commit()
    await db.refresh(table)

    logger.info("Table updated", table_id=table.id, user_id=current_user.id)
    return table


@router.put("/{table_id}/status", response_model=TableResponse)
async def update_table_status(
    table_id: int,
    status_data: TableStatusUpdate,
    current_user: User = Depends(require_role(UserRole.STAFF)),
    db: AsyncSession = Depends(get_db),
):
    """Floor staff mark a table free, occupied or held"""
    table = await _get_table(TableRepository(db), table_id)
    if not table.is_active:
        raise ValidationError("Table is not in service", code="TABLE_INACTIVE")

    table.status = status_data.status
    await db.commit()
    await db.refresh(table)

    logger.info("Table status changed", table_id=table.id, status=table.status.value, user_id=current_user.id)
    return table
