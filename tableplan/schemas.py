from pydantic import BaseModel, Field
from datetime import date, date as date_type, datetime
from typing import Optional, List, Dict

from .errors import ValidationError, NotFoundError


class TableBase(BaseModel):
    table_number: str
    zone: str
    capacity: int


class Table(TableBase):
    id: int
    is_active: bool

    class Config:
        from_attributes = True


class TableConflict(BaseModel):
    booking_id: int
    start_time: str
    end_time: str
    customer_name: str


class OperationResult(BaseModel):
    """Outcome of a write: success, a conflict, or an error"""
    success: bool
    message: str = ""
    conflict: Optional[TableConflict] = None
    error: Optional[str] = None
    error_code: Optional[str] = None  # validation, not_found, storage
    booking_id: Optional[int] = None

    @property
    def is_conflict(self) -> bool:
        return self.conflict is not None

    @classmethod
    def failed(cls, exc: Exception, booking_id: Optional[int] = None,
               message: Optional[str] = None) -> "OperationResult":
        if isinstance(exc, NotFoundError):
            code = "not_found"
        elif isinstance(exc, ValidationError):
            code = "validation"
        else:
            code = "storage"
        return cls(
            success=False,
            message=message or str(exc),
            error=str(exc),
            error_code=code,
            booking_id=booking_id,
        )


class Booking(BaseModel):
    id: int
    booking_date: date
    start_time: str
    end_time: Optional[str] = None
    guests: int
    status: str
    dining_status: str
    source: str
    notes: Optional[str] = None
    special_requests: Optional[str] = None
    customer_name: str
    primary_table_id: Optional[int] = None
    tables: List[Table] = []
    created_at: datetime

    class Config:
        from_attributes = True


class BookingCreate(BaseModel):
    name: str
    phone: str
    email: str
    date: str  # YYYY-MM-DD
    time: str  # HH:MM
    guests: int
    special_requests: Optional[str] = None
    table_ids: List[int] = []


class BookingResponse(BaseModel):
    success: bool
    message: str
    booking: Optional[Booking] = None
    conflict: Optional[TableConflict] = None


class TableAssignmentRequest(BaseModel):
    table_ids: List[int] = []
    date: date
    start_time: str
    end_time: Optional[str] = None


class ExtendRequest(BaseModel):
    table_id: int
    date: date
    start_time: str
    new_end_time: str


class WalkInRequest(BaseModel):
    table_id: int
    date: Optional[date_type] = None  # field name shadows the date type
    guests: int = 2
    duration_minutes: Optional[int] = None
    customer_name: str = "Walk-in Customer"
    phone: Optional[str] = None


class DiningStatusUpdate(BaseModel):
    dining_status: str


class StatusUpdate(BaseModel):
    status: str


class TimeSlot(BaseModel):
    time: str
    available: bool
    remaining_guests: int
    remaining_tables: int


class ReservedTable(BaseModel):
    table_id: int
    table_number: str
    zone: str
    booking_id: int
    start_time: str
    end_time: str
    customer_name: str


class TableStatusResponse(BaseModel):
    date: date
    free: Dict[str, List[Table]] = Field(default_factory=dict)
    reserved: Dict[str, List[ReservedTable]] = Field(default_factory=dict)
    free_count: int = 0
    reserved_count: int = 0
