"""Table schemas"""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field

from app.models.table import Table, TableStatus


class TableCreate(BaseModel):
    """Create table request"""
    table_number: int = Field(ge=1)
    table_name: Optional[str] = Field(default=None, max_length=50)
    capacity: int = Field(ge=1)
    location: Optional[str] = Field(default=None, max_length=100)
    is_active: bool = True


class TableUpdate(BaseModel):
    """Update table request"""
    table_name: Optional[str] = Field(default=None, max_length=50)
    capacity: Optional[int] = Field(default=None, ge=1)
    location: Optional[str] = Field(default=None, max_length=100)
    is_active: Optional[bool] = None


class TableStatusUpdate(BaseModel):
    """Floor status change"""
    status: TableStatus


class TableResponse(BaseModel):
    """Table response"""
    id: int
    table_number: int
    table_name: Optional[str]
    capacity: int
    location: Optional[str]
    status: TableStatus
    is_active: bool
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class TableSuggestion(BaseModel):
    """A table that can seat the requested party"""
    table_id: int
    table_number: int
    table_name: str
    capacity: int
    location: str = ""

    @classmethod
    def from_table(cls, table: Table) -> "TableSuggestion":
        return cls(
            table_id=table.id,
            table_number=table.table_number,
            table_name=table.display_name,
            capacity=table.capacity,
            location=table.location or "",
        )


class TableSuggestionList(BaseModel):
    """Suggestion response; an empty list means no slot"""
    available: bool
    tables: List[TableSuggestion] = []
    message: Optional[str] = None
