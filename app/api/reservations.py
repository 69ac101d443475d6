"""Reservation API endpoints"""

import re
from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.clock import Clock, get_clock
from app.config import Settings, get_settings
from app.database import get_db
from app.errors import ValidationError
from app.models.reservation import ReservationStatus
from app.models.user import User, UserRole
from app.schemas.reservation import (
    ReservationCreate,
    ReservationCancel,
    CustomerCancelRequest,
    ReservationDetail,
    ReservationListItem,
    ReservationListResponse,
    ReservationQuery,
    ArrivalResponse,
    CapacityResponse,
    DashboardResponse,
    TimelineResponse,
)
from app.schemas.table import TableSuggestionList
from app.services.arrival import OrderCreator, get_order_creator
from app.services.locking import KeyedLockRegistry, get_lock_registry
from app.services.notifications import NotificationSink, get_notifier
from app.services.reservation_queries import ReservationQueries
from app.services.reservations import ReservationService
from app.api.auth import get_optional_user, require_role

router = APIRouter()

PHONE_PATTERN = re.compile(r"^\+?[0-9]{9,15}$")


def get_reservation_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    notifier: NotificationSink = Depends(get_notifier),
    order_creator: OrderCreator = Depends(get_order_creator),
    locks: KeyedLockRegistry = Depends(get_lock_registry),
    config: Settings = Depends(get_settings),
) -> ReservationService:
    return ReservationService(
        db,
        clock=clock,
        notifier=notifier,
        order_creator=order_creator,
        locks=locks,
        config=config,
    )


def get_reservation_queries(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    config: Settings = Depends(get_settings),
) -> ReservationQueries:
    return ReservationQueries(db, clock=clock, config=config)


@router.post("", response_model=ReservationDetail, status_code=201)
async def create_reservation(
    reservation_data: ReservationCreate,
    current_user: Optional[User] = Depends(get_optional_user),
    service: ReservationService = Depends(get_reservation_service),
    queries: ReservationQueries = Depends(get_reservation_queries),
):
    """Book a table; guests may book without an account"""
    reservation = await service.create(
        reservation_data,
        user_id=current_user.id if current_user else None,
    )
    return await queries.detail(reservation)


@router.get("/suggest-tables", response_model=TableSuggestionList)
async def suggest_tables(
    number_of_guests: int = Query(..., alias="numberOfGuests"),
    reservation_time: datetime = Query(..., alias="reservationTime"),
    preferred_area: Optional[str] = Query(None, alias="preferredArea"),
    service: ReservationService = Depends(get_reservation_service),
):
    """Tables free for the whole service window, best fit first"""
    service.validate_guests(number_of_guests)
    suggestions = await service.suggest_tables(number_of_guests, reservation_time, preferred_area)
    if not suggestions:
        return TableSuggestionList(
            available=False,
            message="No table is free at this time. Please try another time.",
        )
    return TableSuggestionList(available=True, tables=suggestions)


@router.get("/capacity", response_model=CapacityResponse)
async def get_capacity(
    service: ReservationService = Depends(get_reservation_service),
    config: Settings = Depends(get_settings),
):
    """How full the restaurant is right now"""
    value = await service.current_capacity_percent()
    near_full = value >= config.capacity_warning_threshold
    return CapacityResponse(
        capacity_percent=round(value, 4),
        percent=round(value * 100, 1),
        is_near_full=near_full,
        message=(
            "The restaurant is busy. Booking ahead is recommended."
            if near_full
            else "Tables are available."
        ),
    )


@router.get("/my-reservations", response_model=List[ReservationListItem])
async def my_reservations(
    phone: str = Query(...),
    queries: ReservationQueries = Depends(get_reservation_queries),
):
    """A customer's reservations, newest first"""
    if not PHONE_PATTERN.match(phone.strip()):
        raise ValidationError("Invalid phone number", code="INVALID_PHONE")
    return await queries.customer_reservations(phone)


@router.get("/by-number/{reservation_number}", response_model=ReservationDetail)
async def get_reservation_by_number(
    reservation_number: str,
    service: ReservationService = Depends(get_reservation_service),
    queries: ReservationQueries = Depends(get_reservation_queries),
):
    reservation = await service.get_by_number(reservation_number)
    return await queries.detail(reservation)


@router.post("/by-number/{reservation_number}/cancel", response_model=ReservationDetail)
async def customer_cancel_reservation(
    reservation_number: str,
    request: CustomerCancelRequest,
    service: ReservationService = Depends(get_reservation_service),
    queries: ReservationQueries = Depends(get_reservation_queries),
):
    """Self-service cancellation, checked against the booking phone"""
    reservation = await service.customer_cancel(
        reservation_number, request.phone, request.cancel_reason
    )
    return await queries.detail(reservation)


@router.get("", response_model=ReservationListResponse)
async def list_reservations(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status: Optional[ReservationStatus] = None,
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
    customer_name: Optional[str] = None,
    customer_phone: Optional[str] = None,
    sort_by: str = Query("reservation_time", pattern="^(reservation_time|created_at)$"),
    descending: bool = False,
    current_user: User = Depends(require_role(UserRole.STAFF)),
    queries: ReservationQueries = Depends(get_reservation_queries),
):
    """List reservations with filters and pagination"""
    return await queries.search(ReservationQuery(
        from_date=from_date,
        to_date=to_date,
        status=status,
        customer_name=customer_name,
        customer_phone=customer_phone,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        descending=descending,
    ))


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    day: Optional[date] = Query(None, alias="date"),
    current_user: User = Depends(require_role(UserRole.STAFF)),
    clock: Clock = Depends(get_clock),
    queries: ReservationQueries = Depends(get_reservation_queries),
):
    """Daily statistics; defaults to today"""
    return await queries.dashboard(day or clock.now().date())


@router.get("/timeline", response_model=TimelineResponse)
async def get_timeline(
    day: Optional[date] = Query(None, alias="date"),
    current_user: User = Depends(require_role(UserRole.STAFF)),
    clock: Clock = Depends(get_clock),
    queries: ReservationQueries = Depends(get_reservation_queries),
):
    """Per-table occupancy for one day"""
    return await queries.timeline(day or clock.now().date())


@router.get("/{reservation_id}", response_model=ReservationDetail)
async def get_reservation(
    reservation_id: int,
    service: ReservationService = Depends(get_reservation_service),
    queries: ReservationQueries = Depends(get_reservation_queries),
):
    reservation = await service.get(reservation_id)
    return await queries.detail(reservation)


@router.put("/{reservation_id}/confirm", response_model=ReservationDetail)
async def confirm_reservation(
    reservation_id: int,
    current_user: User = Depends(require_role(UserRole.STAFF)),
    service: ReservationService = Depends(get_reservation_service),
    queries: ReservationQueries = Depends(get_reservation_queries),
):
    reservation = await service.confirm(reservation_id, current_user.id)
    return await queries.detail(reservation)


@router.delete("/{reservation_id}", response_model=ReservationDetail)
async def cancel_reservation(
    reservation_id: int,
    cancel_data: Optional[ReservationCancel] = Body(default=None),
    current_user: User = Depends(require_role(UserRole.STAFF)),
    service: ReservationService = Depends(get_reservation_service),
    queries: ReservationQueries = Depends(get_reservation_queries),
):
    """Cancel a reservation; its tables are released immediately"""
    reason = cancel_data.cancel_reason if cancel_data else None
    reservation = await service.cancel(reservation_id, current_user.id, reason)
    return await queries.detail(reservation)


@router.post("/{reservation_id}/arrive", response_model=ArrivalResponse)
async def arrive_reservation(
    reservation_id: int,
    current_user: User = Depends(require_role(UserRole.STAFF)),
    service: ReservationService = Depends(get_reservation_service),
):
    """Check the party in and open an order for its tables"""
    order_id = await service.arrive(reservation_id, current_user.id)
    return ArrivalResponse(reservation_id=reservation_id, order_id=order_id)


@router.put("/{reservation_id}/no-show", response_model=ReservationDetail)
async def mark_no_show(
    reservation_id: int,
    current_user: User = Depends(require_role(UserRole.STAFF)),
    service: ReservationService = Depends(get_reservation_service),
    queries: ReservationQueries = Depends(get_reservation_queries),
):
    reservation = await service.mark_no_show(reservation_id, current_user.id)
    return await queries.detail(reservation)
