"""Reservation schemas"""

from datetime import date as day_type, datetime
from typing import Dict, Optional, List
from pydantic import BaseModel, EmailStr, Field

from app.models.reservation import ReservationStatus
from app.schemas.table import TableSuggestion


class ReservationCreate(BaseModel):
    """Create reservation request"""
    customer_id: Optional[int] = None
    customer_name: Optional[str] = Field(default=None, max_length=50)
    customer_phone: Optional[str] = Field(default=None, max_length=20, pattern=r"^\+?[0-9]{9,15}$")
    customer_email: Optional[EmailStr] = None
    number_of_guests: int
    reservation_time: datetime
    notes: Optional[str] = Field(default=None, max_length=500)
    preferred_area: Optional[str] = Field(default=None, max_length=50)
    table_ids: Optional[List[int]] = None  # Tables picked from suggest-tables


class ReservationCancel(BaseModel):
    """Cancel reservation request"""
    cancel_reason: Optional[str] = Field(default=None, max_length=500)


class CustomerCancelRequest(BaseModel):
    """Customer self-service cancellation"""
    phone: str
    cancel_reason: Optional[str] = Field(default=None, max_length=500)


class ReservationDetail(BaseModel):
    """Reservation response"""
    id: int
    reservation_number: str
    customer_id: Optional[int]
    customer_name: str
    customer_phone: Optional[str]
    customer_email: Optional[str]
    number_of_guests: int
    reservation_time: datetime
    ends_at: datetime
    duration_minutes: int
    status: ReservationStatus
    notes: Optional[str]
    preferred_area: Optional[str]
    cancel_reason: Optional[str]
    tables: List[TableSuggestion] = []
    created_by: Optional[int]
    confirmed_by: Optional[int]
    cancelled_by: Optional[int]
    arrived_by: Optional[int]
    confirmed_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    arrived_at: Optional[datetime]
    order_id: Optional[int]
    created_at: datetime
    updated_at: datetime


class ReservationListItem(BaseModel):
    """Reservation row in list views"""
    id: int
    reservation_number: str
    customer_id: Optional[int]
    customer_name: str
    customer_phone: Optional[str]
    number_of_guests: int
    reservation_time: datetime
    status: ReservationStatus
    table_count: int
    table_names: str
    created_at: datetime


class ReservationListResponse(BaseModel):
    """Paginated reservation list"""
    items: List[ReservationListItem]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_previous: bool
    has_next: bool


class ReservationQuery(BaseModel):
    """Filters for the staff reservation list"""
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None
    status: Optional[ReservationStatus] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)
    sort_by: str = Field(default="reservation_time", pattern="^(reservation_time|created_at)$")
    descending: bool = False


class ArrivalResponse(BaseModel):
    """Result of checking a party in"""
    reservation_id: int
    order_id: int
    message: str = "Guests arrived. An order was opened for their tables."


class CapacityResponse(BaseModel):
    """Advisory fullness of the restaurant"""
    capacity_percent: float  # 0..1
    percent: float  # 0..100, rounded
    is_near_full: bool
    message: str


class DashboardResponse(BaseModel):
    """Daily reservation statistics"""
    date: day_type
    total_reservations: int
    pending_count: int
    confirmed_count: int
    arrived_count: int
    cancelled_count: int
    no_show_count: int
    by_hour: Dict[int, int]
    current_capacity_percent: float
    upcoming_reservations: List[ReservationListItem]
    overdue_reservations: List[ReservationListItem]


class TableSlot(BaseModel):
    """One table during one timeline slot"""
    table_id: int
    table_name: str
    reservation_id: Optional[int] = None
    reservation_number: Optional[str] = None
    customer_name: Optional[str] = None
    status: str = "Available"  # Available, Pending, Confirmed, Arrived, InOrder


class TimeSlot(BaseModel):
    start_time: datetime
    end_time: datetime
    tables: List[TableSlot] = []


class TimelineResponse(BaseModel):
    """Per-table occupancy across the day"""
    date: day_type
    time_slots: List[TimeSlot] = []
