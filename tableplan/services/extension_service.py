from datetime import date
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Optional
import logging

from ..config import settings
from ..errors import ValidationError
from ..schemas import OperationResult
from .. import timeutils
from .assignment_service import check_booking_window, get_booking, lock_tables
from .conflict_service import ConflictDetector, validate_interval

logger = logging.getLogger(__name__)


class ExtensionService:
    """Pushes a seated or reserved booking's end time later"""

    def __init__(self, db: Session, default_minutes: Optional[int] = None):
        self.db = db
        self.default_minutes = default_minutes or settings.default_duration_minutes
        self.detector = ConflictDetector(db, self.default_minutes)

    def extend(self, booking_id: int, table_id: int, booking_date: date,
               start: str, new_end: str) -> OperationResult:
        """
        Move the end of the booking to new_end, keeping start and tables.

        Every table the booking holds is checked over [start, new_end),
        ignoring the booking itself. On a conflict nothing is written.
        """
        try:
            validate_interval(start, new_end)
            booking = get_booking(self.db, booking_id)
            check_booking_window(booking, booking_date, start)
            start = timeutils.normalize_time(booking.start_time)

            assigned_ids = [a.table_id for a in booking.assignments]
            if table_id not in assigned_ids:
                raise ValidationError(f"Table {table_id} is not assigned to booking {booking_id}")

            _, current_end = timeutils.interval(start, booking.end_time, self.default_minutes)
            if timeutils.to_minutes(new_end) <= current_end:
                raise ValidationError(
                    f"New end time must be later than the current end time {timeutils.from_minutes(current_end)}"
                )

            tables = lock_tables(self.db, assigned_ids)
            for table in tables:
                conflict = self.detector.find_conflict(
                    table.id, booking.booking_date, start, new_end, exclude_booking_id=booking_id
                )
                if conflict:
                    message = (
                        f"Cannot extend. Table {table.table_number} is reserved again at "
                        f"{conflict.start_time} by {conflict.customer_name}."
                    )
                    self.db.rollback()
                    logger.warning(f"Extension of booking {booking_id} rejected: {message}")
                    return OperationResult(
                        success=False, message=message, conflict=conflict, booking_id=booking_id
                    )

            booking.end_time = timeutils.normalize_time(new_end)
            self.db.commit()
        except ValidationError as e:
            self.db.rollback()
            return OperationResult.failed(e, booking_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error extending booking {booking_id}: {str(e)}")
            return OperationResult.failed(e, booking_id, "Failed to extend booking")

        logger.info(f"Extended booking {booking_id} until {new_end}")
        return OperationResult(
            success=True,
            message=f"Booking extended until {timeutils.normalize_time(new_end)}",
            booking_id=booking_id,
        )
