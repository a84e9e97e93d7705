from datetime import date
from sqlalchemy.orm import Session, joinedload
from typing import Dict, Iterable, List, Optional
import logging

from ..config import settings
from ..errors import ValidationError
from ..models import Table, Booking, BookingTable, ZONES, TERMINAL_STATUSES
from ..schemas import TableConflict
from .. import timeutils

logger = logging.getLogger(__name__)


def validate_interval(start: str, end: Optional[str] = None):
    """Reject malformed or empty candidate intervals"""
    if not timeutils.is_valid_time(start):
        raise ValidationError(f"Invalid start time '{start}'. Use HH:MM")
    if end is None:
        return
    if not timeutils.is_valid_time(end):
        raise ValidationError(f"Invalid end time '{end}'. Use HH:MM")
    if timeutils.to_minutes(end) <= timeutils.to_minutes(start):
        raise ValidationError("End time must be after start time")


def first_overlap(bookings: Iterable[Booking], start: str, end: str,
                  exclude_booking_id: Optional[int] = None,
                  default_minutes: Optional[int] = None) -> Optional[TableConflict]:
    """Earliest booking whose effective interval overlaps [start, end)"""
    if default_minutes is None:
        default_minutes = settings.default_duration_minutes
    cand_start, cand_end = timeutils.interval(start, end, default_minutes)

    hits = []
    for booking in bookings:
        if exclude_booking_id is not None and booking.id == exclude_booking_id:
            continue
        if booking.status in TERMINAL_STATUSES:
            continue
        b_start, b_end = timeutils.interval(booking.start_time, booking.end_time, default_minutes)
        if timeutils.overlaps(cand_start, cand_end, b_start, b_end):
            hits.append((b_start, booking))

    if not hits:
        return None

    _, booking = min(hits, key=lambda hit: (hit[0], hit[1].id))
    return TableConflict(
        booking_id=booking.id,
        start_time=timeutils.normalize_time(booking.start_time),
        end_time=timeutils.effective_end(booking.start_time, booking.end_time, default_minutes),
        customer_name=booking.customer_name,
    )


class ConflictDetector:
    """Finds bookings that would collide with a candidate interval on a table"""

    def __init__(self, db: Session, default_minutes: Optional[int] = None):
        self.db = db
        self.default_minutes = default_minutes or settings.default_duration_minutes

    def bookings_for_table(self, table_id: int, booking_date: date,
                           exclude_booking_id: Optional[int] = None) -> List[Booking]:
        """Non-terminal bookings assigned to a table on a date"""
        query = self.db.query(Booking).join(BookingTable).options(
            joinedload(Booking.customer)
        ).filter(
            BookingTable.table_id == table_id,
            Booking.booking_date == booking_date,
            Booking.status.notin_(TERMINAL_STATUSES),
        )
        if exclude_booking_id is not None:
            query = query.filter(Booking.id != exclude_booking_id)
        return query.order_by(Booking.start_time).all()

    def bookings_by_table(self, booking_date: date) -> Dict[int, List[Booking]]:
        """All non-terminal bookings on a date, keyed by assigned table id"""
        rows = self.db.query(BookingTable.table_id, Booking).join(
            Booking, BookingTable.booking_id == Booking.id
        ).filter(
            Booking.booking_date == booking_date,
            Booking.status.notin_(TERMINAL_STATUSES),
        ).order_by(Booking.start_time).all()

        grouped: Dict[int, List[Booking]] = {}
        for table_id, booking in rows:
            grouped.setdefault(table_id, []).append(booking)
        return grouped

    def find_conflict(self, table_id: int, booking_date: date, start: str,
                      end: Optional[str] = None,
                      exclude_booking_id: Optional[int] = None) -> Optional[TableConflict]:
        """
        First active booking on the table whose interval overlaps [start, end).
        Returns None when the table is free for the whole interval.
        """
        validate_interval(start, end)
        end = timeutils.effective_end(start, end, self.default_minutes)
        bookings = self.bookings_for_table(table_id, booking_date, exclude_booking_id)
        return first_overlap(bookings, start, end, exclude_booking_id, self.default_minutes)

    def is_available(self, table_id: int, booking_date: date, start: str,
                     end: Optional[str] = None,
                     exclude_booking_id: Optional[int] = None) -> bool:
        return self.find_conflict(table_id, booking_date, start, end, exclude_booking_id) is None

    def get_available_tables(self, booking_date: date, start: str, end: Optional[str] = None,
                             min_capacity: int = 1, zone: Optional[str] = None,
                             exclude_booking_id: Optional[int] = None) -> List[Table]:
        """Active tables big enough for the party with no booking overlapping [start, end)"""
        validate_interval(start, end)
        if min_capacity < 1:
            raise ValidationError("Minimum capacity must be at least 1")
        if zone is not None and zone not in ZONES:
            raise ValidationError(f"Unknown zone '{zone}'. Choose one of: {', '.join(ZONES)}")

        end = timeutils.effective_end(start, end, self.default_minutes)

        query = self.db.query(Table).filter(
            Table.is_active == True,
            Table.capacity >= min_capacity,
        )
        if zone:
            query = query.filter(Table.zone == zone)
        tables = sort_tables(query.all())

        booked = self.bookings_by_table(booking_date)
        return [
            table for table in tables
            if first_overlap(booked.get(table.id, []), start, end,
                             exclude_booking_id, self.default_minutes) is None
        ]


def table_sort_key(table: Table):
    """Zone order first, then table number numerically where possible"""
    zone_rank = ZONES.index(table.zone) if table.zone in ZONES else len(ZONES)
    digits = "".join(c for c in table.table_number if c.isdigit())
    return (zone_rank, int(digits) if digits else 0, table.table_number)


def sort_tables(tables: Iterable[Table]) -> List[Table]:
    return sorted(tables, key=table_sort_key)
