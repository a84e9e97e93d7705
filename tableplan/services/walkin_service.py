from datetime import date, datetime
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Optional
import logging

from ..config import settings
from ..errors import ValidationError
from ..models import Booking, BookingTable
from .. import timeutils
from .assignment_service import lock_tables
from .booking_service import find_or_create_customer

logger = logging.getLogger(__name__)

DEFAULT_WALK_IN_NAME = "Walk-in Customer"


class WalkInService:
    def __init__(self, db: Session):
        self.db = db

    def quick_seat(self, table_id: int, booking_date: Optional[date] = None,
                   guests: Optional[int] = None, duration_minutes: Optional[int] = None,
                   customer_name: str = DEFAULT_WALK_IN_NAME, phone: Optional[str] = None,
                   now: Optional[datetime] = None) -> Booking:
        """
        Seat a walk-in party at a table right now.

        Starts at the current time rounded down to the quarter hour and
        skips slot capacity and conflict checks: callers only offer tables
        the availability view already shows as free.
        """
        now = now or datetime.now()
        booking_date = booking_date or now.date()
        guests = settings.walk_in_guests if guests is None else guests
        duration_minutes = settings.walk_in_duration_minutes if duration_minutes is None else duration_minutes

        if guests < 1 or guests > settings.max_guests_per_booking:
            raise ValidationError(
                f"Guests must be a number between 1 and {settings.max_guests_per_booking}"
            )
        if duration_minutes <= 0:
            raise ValidationError("Duration must be a positive number of minutes")

        start = timeutils.round_down_to_quarter(now)
        end = timeutils.add_minutes(start, duration_minutes)
        name = (customer_name or "").strip() or DEFAULT_WALK_IN_NAME
        phone = (phone or "").strip()

        try:
            table = lock_tables(self.db, [table_id])[0]

            if phone:
                customer = find_or_create_customer(self.db, name, phone)
                if name != DEFAULT_WALK_IN_NAME and customer.name != name:
                    customer.name = name
            else:
                placeholder = f"walk-in-{int(now.timestamp() * 1000)}"
                customer = find_or_create_customer(self.db, name, placeholder)

            booking = Booking(
                customer_id=customer.id,
                booking_date=booking_date,
                start_time=start,
                end_time=end,
                guests=guests,
                source="walk-in",
                status="confirmed",
                dining_status="seated",
                notes="Walk-in customer",
            )
            booking.assignments.append(BookingTable(table_id=table.id, position=0))
            self.db.add(booking)
            self.db.commit()
            self.db.refresh(booking)
        except ValidationError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error seating walk-in at table {table_id}: {str(e)}")
            raise

        logger.info(f"{name} seated at table {table.table_number} from {start} to {end}")
        return booking
