from datetime import date
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import List, Optional, Sequence
import logging

from ..config import settings
from ..errors import ValidationError, NotFoundError
from ..models import Table, Booking, BookingTable
from ..schemas import OperationResult, TableConflict
from .. import timeutils
from .conflict_service import ConflictDetector, validate_interval

logger = logging.getLogger(__name__)


def conflict_message(table: Table, conflict: TableConflict) -> str:
    return (
        f"Table {table.table_number} is already reserved from {conflict.start_time} "
        f"to {conflict.end_time} by {conflict.customer_name}."
    )


def lock_tables(db: Session, table_ids: Sequence[int]) -> List[Table]:
    """
    Load the requested tables with a row lock, in request order.

    The lock is held until the surrounding transaction ends, so two sessions
    claiming the same table are serialized.
    """
    if not table_ids:
        return []
    rows = db.query(Table).filter(Table.id.in_(list(table_ids))).with_for_update().all()
    by_id = {t.id: t for t in rows}

    missing = [str(tid) for tid in table_ids if tid not in by_id]
    if missing:
        raise NotFoundError(f"Unknown table id(s): {', '.join(missing)}")
    inactive = [by_id[tid].table_number for tid in table_ids if not by_id[tid].is_active]
    if inactive:
        raise ValidationError(f"Inactive table(s) cannot be assigned: {', '.join(inactive)}")
    return [by_id[tid] for tid in table_ids]


def get_booking(db: Session, booking_id: int) -> Booking:
    booking = db.get(Booking, booking_id)
    if booking is None:
        raise NotFoundError(f"Booking {booking_id} not found")
    return booking


def check_booking_window(booking: Booking, booking_date: date, start: str):
    """The interval being checked must start where the stored booking starts"""
    if booking_date != booking.booking_date:
        raise ValidationError(
            f"Booking {booking.id} is on {booking.booking_date}, not {booking_date}"
        )
    if timeutils.normalize_time(start) != timeutils.normalize_time(booking.start_time):
        raise ValidationError(
            f"Booking {booking.id} starts at {timeutils.normalize_time(booking.start_time)}, not {start}"
        )


class AssignmentService:
    """Assigns, replaces and releases the tables held by a booking"""

    def __init__(self, db: Session, default_minutes: Optional[int] = None):
        self.db = db
        self.default_minutes = default_minutes or settings.default_duration_minutes
        self.detector = ConflictDetector(db, self.default_minutes)

    def get_assigned_tables(self, booking_id: int) -> List[Table]:
        booking = get_booking(self.db, booking_id)
        return booking.tables

    def assign_tables(self, booking_id: int, table_ids: Sequence[int], booking_date: date,
                      start: str, end: Optional[str] = None) -> OperationResult:
        """
        Replace the booking's tables with table_ids, all or nothing.

        The previous assignment is cleared first so the booking never
        conflicts with itself; on any conflict or failure the whole
        transaction rolls back and the previous assignment is kept.
        The date and start must match the stored booking; the stored end time
        becomes the effective end of [start, end).
        An empty table_ids clears the assignment.
        """
        table_ids = list(table_ids or [])
        try:
            validate_interval(start, end)
            if len(set(table_ids)) != len(table_ids):
                raise ValidationError("The same table was requested more than once")
        except ValidationError as e:
            return OperationResult.failed(e, booking_id)

        effective_end = timeutils.effective_end(start, end, self.default_minutes)

        try:
            booking = get_booking(self.db, booking_id)
            check_booking_window(booking, booking_date, start)
            tables = lock_tables(self.db, table_ids)

            booking.assignments.clear()
            booking.end_time = effective_end
            self.db.flush()

            for table in tables:
                conflict = self.detector.find_conflict(
                    table.id, booking_date, start, end, exclude_booking_id=booking_id
                )
                if conflict:
                    message = conflict_message(table, conflict)
                    self.db.rollback()
                    logger.warning(f"Assignment for booking {booking_id} rejected: {message}")
                    return OperationResult(
                        success=False, message=message, conflict=conflict, booking_id=booking_id
                    )

            for position, table in enumerate(tables):
                booking.assignments.append(BookingTable(table_id=table.id, position=position))

            self.db.commit()
        except ValidationError as e:
            self.db.rollback()
            return OperationResult.failed(e, booking_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error assigning tables to booking {booking_id}: {str(e)}")
            return OperationResult.failed(e, booking_id, "Failed to assign tables")

        if not tables:
            logger.info(f"Cleared table assignment for booking {booking_id}")
            return OperationResult(success=True, message="Table assignment cleared", booking_id=booking_id)

        numbers = ", ".join(t.table_number for t in tables)
        logger.info(f"Assigned table(s) {numbers} to booking {booking_id} until {effective_end}")
        return OperationResult(
            success=True,
            message=f"Assigned table(s) {numbers} until {effective_end}",
            booking_id=booking_id,
        )

    def release_all_tables(self, booking_id: int) -> OperationResult:
        """Drop every table from the booking; no validation needed"""
        try:
            booking = get_booking(self.db, booking_id)
            booking.assignments.clear()
            self.db.commit()
        except NotFoundError as e:
            return OperationResult.failed(e, booking_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error releasing tables of booking {booking_id}: {str(e)}")
            return OperationResult.failed(e, booking_id, "Failed to release tables")

        logger.info(f"Released all tables of booking {booking_id}")
        return OperationResult(success=True, message="All tables released", booking_id=booking_id)

    def release_table(self, booking_id: int, table_id: Optional[int] = None) -> OperationResult:
        """Release one table, or all of them when table_id is None"""
        if table_id is None:
            return self.release_all_tables(booking_id)

        try:
            booking = get_booking(self.db, booking_id)
            assignment = next((a for a in booking.assignments if a.table_id == table_id), None)
            if assignment is None:
                raise NotFoundError(f"Table {table_id} is not assigned to booking {booking_id}")
            booking.assignments.remove(assignment)
            self.db.commit()
        except NotFoundError as e:
            return OperationResult.failed(e, booking_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error releasing table {table_id} of booking {booking_id}: {str(e)}")
            return OperationResult.failed(e, booking_id, "Failed to release table")

        logger.info(f"Released table {table_id} of booking {booking_id}")
        return OperationResult(success=True, message="Table released", booking_id=booking_id)
