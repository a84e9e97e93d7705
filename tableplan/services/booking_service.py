from datetime import date, datetime
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Optional, Tuple
import logging
import re

from ..config import settings
from ..errors import ValidationError, NotFoundError
from ..models import (
    Booking, BookingTable, Customer, BOOKING_STATUSES, DINING_STATUSES, TERMINAL_STATUSES,
)
from ..schemas import BookingCreate, OperationResult, TableConflict
from .. import timeutils
from .assignment_service import conflict_message, get_booking, lock_tables
from .conflict_service import ConflictDetector, first_overlap
from .slot_service import SlotService

logger = logging.getLogger(__name__)

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def parse_date(value: str) -> date:
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise ValidationError("Date is required in YYYY-MM-DD format")
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"Invalid date '{value}'")


def find_or_create_customer(db: Session, name: str, phone: str,
                            email: Optional[str] = None) -> Customer:
    """Look a customer up by phone, creating one on first contact"""
    customer = db.query(Customer).filter(Customer.phone == phone).first()
    if customer:
        return customer
    customer = Customer(name=name, phone=phone, email=email)
    db.add(customer)
    db.flush()
    logger.info(f"Created new customer {customer.id}")
    return customer


class BookingService:
    def __init__(self, db: Session):
        self.db = db
        self.detector = ConflictDetector(db)
        self.slots = SlotService(db)

    def validate_booking(self, data: BookingCreate):
        """Field checks for the slot-validated flow; returns the parsed date"""
        if not data.name or not data.name.strip():
            raise ValidationError("Name is required")
        if not data.phone or not data.phone.strip():
            raise ValidationError("Phone is required")
        booking_date = parse_date(data.date)
        if not timeutils.is_valid_time(data.time):
            raise ValidationError("Time is required in HH:MM format")
        if data.guests < 1 or data.guests > settings.max_guests_per_booking:
            raise ValidationError(
                f"Guests must be a number between 1 and {settings.max_guests_per_booking}"
            )
        if not data.email or not _EMAIL_RE.match(data.email):
            raise ValidationError("Valid email is required")
        if len(set(data.table_ids)) != len(data.table_ids):
            raise ValidationError("The same table was requested more than once")
        return booking_date

    def create_booking(self, data: BookingCreate, now: Optional[datetime] = None
                       ) -> Tuple[bool, str, Optional[Booking], Optional[TableConflict]]:
        """
        Create a booking against the generated slots for its day.

        The slot's aggregate capacity must allow the party and, when tables
        are requested, each of them must be free for the booking's effective
        interval. Both checks and the writes share one transaction.
        """
        try:
            booking_date = self.validate_booking(data)
        except ValidationError as e:
            return False, str(e), None, None

        start = timeutils.normalize_time(data.time)
        slot = next(
            (s for s in self.slots.get_available_slots(booking_date, data.guests, now) if s.time == start),
            None,
        )
        if slot is None:
            return False, f"We are not taking bookings on {booking_date} at {start}.", None, None
        if not slot.available:
            return False, f"Sorry, {start} is fully booked for a party of {data.guests}.", None, None

        try:
            customer = find_or_create_customer(
                self.db,
                data.name.strip()[:100],
                data.phone.strip()[:30],
                data.email.strip()[:255],
            )
            booking = Booking(
                customer_id=customer.id,
                booking_date=booking_date,
                start_time=start,
                guests=data.guests,
                source="website",
                status="new",
                dining_status="pending",
                special_requests=(data.special_requests or "").strip()[:500] or None,
            )
            self.db.add(booking)
            self.db.flush()

            if data.table_ids:
                tables = lock_tables(self.db, data.table_ids)
                for table in tables:
                    conflict = self.detector.find_conflict(
                        table.id, booking_date, start, exclude_booking_id=booking.id
                    )
                    if conflict:
                        message = conflict_message(table, conflict)
                        self.db.rollback()
                        logger.warning(f"Booking on {booking_date} at {start} rejected: {message}")
                        return False, message, None, conflict
                for position, table in enumerate(tables):
                    booking.assignments.append(BookingTable(table_id=table.id, position=position))
                booking.end_time = timeutils.effective_end(
                    start, None, self.detector.default_minutes
                )
                booking.dining_status = "reserved"

            self.db.commit()
            self.db.refresh(booking)
        except ValidationError as e:
            self.db.rollback()
            return False, str(e), None, None
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creating booking: {str(e)}")
            raise

        logger.info(f"Booking {booking.id} created for {booking_date} at {start}")
        return True, "Booking created successfully", booking, None

    def _update_field(self, booking_id: int, field: str, value: str, allowed) -> OperationResult:
        if value not in allowed:
            message = f"Invalid {field.replace('_', ' ')} '{value}'. Choose one of: {', '.join(allowed)}"
            return OperationResult.failed(ValidationError(message), booking_id)
        try:
            booking = get_booking(self.db, booking_id)
            setattr(booking, field, value)
            self.db.commit()
        except NotFoundError as e:
            return OperationResult.failed(e, booking_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error updating {field} of booking {booking_id}: {str(e)}")
            return OperationResult.failed(e, booking_id, f"Failed to update {field}")
        logger.info(f"Booking {booking_id} {field} set to {value}")
        return OperationResult(success=True, message=f"Status updated to {value}", booking_id=booking_id)

    def update_dining_status(self, booking_id: int, dining_status: str) -> OperationResult:
        return self._update_field(booking_id, "dining_status", dining_status, DINING_STATUSES)

    def update_status(self, booking_id: int, status: str) -> OperationResult:
        """
        Lifecycle change; cancelled and no_show drop out of every overlap check.

        Bringing a terminal booking back fails while any of its tables is
        held by another booking over its interval.
        """
        if status in BOOKING_STATUSES and status not in TERMINAL_STATUSES:
            booking = self.db.get(Booking, booking_id)
            if booking is not None and booking.status in TERMINAL_STATUSES:
                for table in booking.tables:
                    conflict = first_overlap(
                        self.detector.bookings_for_table(table.id, booking.booking_date, booking_id),
                        booking.start_time,
                        timeutils.effective_end(booking.start_time, booking.end_time,
                                                self.detector.default_minutes),
                        default_minutes=self.detector.default_minutes,
                    )
                    if conflict:
                        message = conflict_message(table, conflict)
                        logger.warning(f"Reactivating booking {booking_id} rejected: {message}")
                        return OperationResult(
                            success=False, message=message, conflict=conflict, booking_id=booking_id
                        )
        return self._update_field(booking_id, "status", status, BOOKING_STATUSES)

    def auto_complete_past(self, today: Optional[date] = None) -> int:
        """Mark open bookings from before today as completed"""
        today = today or date.today()
        try:
            updated = self.db.query(Booking).filter(
                Booking.booking_date < today,
                Booking.status.in_(["new", "confirmed"]),
            ).update({Booking.status: "completed"}, synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error auto-completing bookings: {str(e)}")
            raise
        logger.info(f"Auto-completed {updated} bookings before {today}")
        return updated
