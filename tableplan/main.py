from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from datetime import date, datetime
from typing import List, Optional
import logging

from .database import get_db
from .errors import ValidationError, NotFoundError
from .init_db import init_database
from .models import Table, ZONES
from .schemas import (
    Table as TableSchema, TableConflict, OperationResult, Booking as BookingSchema,
    BookingCreate, BookingResponse, TableAssignmentRequest, ExtendRequest,
    WalkInRequest, DiningStatusUpdate, StatusUpdate, TimeSlot, TableStatusResponse,
)
from .services import (
    ConflictDetector, AvailabilityService, SlotService, AssignmentService,
    ExtensionService, WalkInService, BookingService,
)
from .services.conflict_service import sort_tables

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Table Scheduling Engine",
    description="Table availability, conflict detection and assignment for a restaurant floor",
    version="1.0.0"
)

ERROR_STATUS = {"validation": 400, "not_found": 404, "storage": 503}


@app.on_event("startup")
async def startup_event():
    """Initialize database on startup"""
    init_database()


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Storage error on {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"detail": "Storage unavailable, please retry"})


def _respond(result: OperationResult) -> OperationResult:
    """Map an operation outcome onto an HTTP status"""
    if result.success:
        return result
    if result.conflict is not None:
        raise HTTPException(status_code=409, detail=result.model_dump())
    raise HTTPException(status_code=ERROR_STATUS.get(result.error_code, 400), detail=result.model_dump())


@app.get("/api/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}


@app.get("/api/tables", response_model=List[TableSchema])
def get_tables(zone: Optional[str] = None, db: Session = Depends(get_db)):
    """Get active tables, optionally filtered by zone"""
    if zone is not None and zone not in ZONES:
        raise HTTPException(status_code=400, detail=f"Unknown zone. Use one of: {', '.join(ZONES)}")
    query = db.query(Table).filter(Table.is_active == True)
    if zone:
        query = query.filter(Table.zone == zone)
    return sort_tables(query.all())


@app.get("/api/tables/available", response_model=List[TableSchema])
def get_available_tables(
    date: date,
    start: str,
    end: Optional[str] = None,
    min_capacity: int = 1,
    zone: Optional[str] = None,
    exclude_booking_id: Optional[int] = None,
    db: Session = Depends(get_db)
):
    """Tables with no booking overlapping [start, end) on the date"""
    return ConflictDetector(db).get_available_tables(
        date, start, end, min_capacity=min_capacity, zone=zone,
        exclude_booking_id=exclude_booking_id,
    )


@app.get("/api/tables/status", response_model=TableStatusResponse)
def get_table_status(
    date: date,
    start: Optional[str] = None,
    end: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Free and reserved tables for a day, grouped by zone"""
    return AvailabilityService(db).get_table_status(date, datetime.now(), start, end)


@app.get("/api/tables/{table_id}/conflict", response_model=Optional[TableConflict])
def get_conflict(
    table_id: int,
    date: date,
    start: str,
    end: Optional[str] = None,
    exclude_booking_id: Optional[int] = None,
    db: Session = Depends(get_db)
):
    """First booking on the table overlapping [start, end), or null"""
    if db.get(Table, table_id) is None:
        raise HTTPException(status_code=404, detail="Table not found")
    return ConflictDetector(db).find_conflict(table_id, date, start, end, exclude_booking_id)


@app.get("/api/tables/{table_id}/is-available")
def is_available(
    table_id: int,
    date: date,
    start: str,
    end: Optional[str] = None,
    exclude_booking_id: Optional[int] = None,
    db: Session = Depends(get_db)
):
    if db.get(Table, table_id) is None:
        raise HTTPException(status_code=404, detail="Table not found")
    available = ConflictDetector(db).is_available(table_id, date, start, end, exclude_booking_id)
    return {"table_id": table_id, "available": available}


@app.get("/api/slots", response_model=List[TimeSlot])
def get_slots(date: date, guests: int = 1, db: Session = Depends(get_db)):
    """Bookable start times for a date with the remaining capacity of each"""
    return SlotService(db).get_available_slots(date, guests, datetime.now())


@app.post("/api/bookings", response_model=BookingResponse, status_code=201)
def create_booking(booking_data: BookingCreate, db: Session = Depends(get_db)):
    """Create a booking through the slot-validated flow"""
    success, message, booking, conflict = BookingService(db).create_booking(booking_data)
    if conflict is not None:
        raise HTTPException(
            status_code=409,
            detail={"message": message, "conflict": conflict.model_dump()},
        )
    if not success:
        raise HTTPException(status_code=400, detail=message)
    return BookingResponse(
        success=True,
        message=message,
        booking=BookingSchema.model_validate(booking),
    )


@app.get("/api/bookings/{booking_id}/tables", response_model=List[TableSchema])
def get_assigned_tables(booking_id: int, db: Session = Depends(get_db)):
    return AssignmentService(db).get_assigned_tables(booking_id)


@app.put("/api/bookings/{booking_id}/tables", response_model=OperationResult)
def assign_tables(booking_id: int, request: TableAssignmentRequest, db: Session = Depends(get_db)):
    """Replace the tables held by a booking; an empty list clears them"""
    result = AssignmentService(db).assign_tables(
        booking_id, request.table_ids, request.date, request.start_time, request.end_time
    )
    return _respond(result)


@app.delete("/api/bookings/{booking_id}/tables", response_model=OperationResult)
def release_all_tables(booking_id: int, db: Session = Depends(get_db)):
    return _respond(AssignmentService(db).release_all_tables(booking_id))


@app.delete("/api/bookings/{booking_id}/tables/{table_id}", response_model=OperationResult)
def release_table(booking_id: int, table_id: int, db: Session = Depends(get_db)):
    return _respond(AssignmentService(db).release_table(booking_id, table_id))


@app.post("/api/bookings/{booking_id}/extend", response_model=OperationResult)
def extend_booking(booking_id: int, request: ExtendRequest, db: Session = Depends(get_db)):
    """Push the end time later if the booking's tables stay free"""
    result = ExtensionService(db).extend(
        booking_id, request.table_id, request.date, request.start_time, request.new_end_time
    )
    return _respond(result)


@app.patch("/api/bookings/{booking_id}/dining-status", response_model=OperationResult)
def update_dining_status(booking_id: int, update: DiningStatusUpdate, db: Session = Depends(get_db)):
    return _respond(BookingService(db).update_dining_status(booking_id, update.dining_status))


@app.patch("/api/bookings/{booking_id}/status", response_model=OperationResult)
def update_status(booking_id: int, update: StatusUpdate, db: Session = Depends(get_db)):
    return _respond(BookingService(db).update_status(booking_id, update.status))


@app.post("/api/walk-ins", response_model=BookingSchema, status_code=201)
def seat_walk_in(request: WalkInRequest, db: Session = Depends(get_db)):
    """Seat a walk-in party at a table the floor view shows as free"""
    booking = WalkInService(db).quick_seat(
        request.table_id,
        booking_date=request.date,
        guests=request.guests,
        duration_minutes=request.duration_minutes,
        customer_name=request.customer_name,
        phone=request.phone,
    )
    return BookingSchema.model_validate(booking)


@app.post("/api/admin/auto-complete")
def auto_complete(db: Session = Depends(get_db)):
    """Mark open bookings from past days as completed"""
    updated = BookingService(db).auto_complete_past()
    return {"success": True, "message": f"Auto-completed {updated} bookings", "updated": updated}
