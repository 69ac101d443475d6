"""Pydantic schemas for request/response validation"""

from app.schemas.auth import (
    Token,
    TokenPayload,
    RefreshRequest,
    UserCreate,
    UserResponse,
)
from app.schemas.table import (
    TableCreate,
    TableUpdate,
    TableStatusUpdate,
    TableResponse,
    TableSuggestion,
    TableSuggestionList,
)
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

__all__ = [
    "Token",
    "TokenPayload",
    "RefreshRequest",
    "UserCreate",
    "UserResponse",
    "TableCreate",
    "TableUpdate",
    "TableStatusUpdate",
    "TableResponse",
    "TableSuggestion",
    "TableSuggestionList",
    "ReservationCreate",
    "ReservationCancel",
    "CustomerCancelRequest",
    "ReservationDetail",
    "ReservationListItem",
    "ReservationListResponse",
    "ReservationQuery",
    "ArrivalResponse",
    "CapacityResponse",
    "DashboardResponse",
    "TimelineResponse",
]
