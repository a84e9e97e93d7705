"""
Free/occupied view of the floor for a single day.

The computation itself is a pure function of the table inventory, the day's
bookings and an explicit "now"; the service class only loads those from the
database and groups the result by zone for display.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from sqlalchemy.orm import Session
from typing import Dict, List, Mapping, Optional, Sequence
import logging

from ..config import settings
from ..errors import ValidationError
from ..models import Table, Booking, ZONES, TERMINAL_STATUSES
from ..schemas import ReservedTable, TableStatusResponse, Table as TableSchema
from .. import timeutils
from .conflict_service import ConflictDetector, sort_tables, validate_interval

logger = logging.getLogger(__name__)

OPTIMISTIC = "optimistic"
STRICT = "strict"
FUTURE_DAY_POLICIES = (OPTIMISTIC, STRICT)


@dataclass
class ReservedEntry:
    table: Table
    booking: Booking
    start: int
    end: int


@dataclass
class Availability:
    free: List[Table] = field(default_factory=list)
    reserved: List[ReservedEntry] = field(default_factory=list)


def compute_availability(tables: Sequence[Table],
                         bookings_by_table: Mapping[int, Sequence[Booking]],
                         on_date: date,
                         now: datetime,
                         policy: str = OPTIMISTIC,
                         window: Optional[tuple] = None,
                         default_minutes: Optional[int] = None) -> Availability:
    """
    Partition active tables into free and reserved for on_date.

    Past days: everything has ended, every table is free.
    Today: a table is occupied only while one of its bookings covers now;
    bookings that already ended are dropped.
    Future days: with the optimistic policy every table stays free and booked
    tables are also listed as reserved; the strict policy checks the
    bookings against window (or the whole day when no window is given).
    """
    if policy not in FUTURE_DAY_POLICIES:
        raise ValidationError(f"Unknown future-day policy '{policy}'")
    if default_minutes is None:
        default_minutes = settings.default_duration_minutes

    active = sort_tables(t for t in tables if t.is_active)
    today = now.date()
    result = Availability()

    if on_date < today:
        result.free = active
        return result

    window_min = None
    if window is not None:
        window_min = timeutils.interval(window[0], window[1], default_minutes)

    now_min = timeutils.minutes_of(now)

    for table in active:
        entries = []
        for booking in bookings_by_table.get(table.id, []):
            if booking.status in TERMINAL_STATUSES or booking.booking_date != on_date:
                continue
            start, end = timeutils.interval(booking.start_time, booking.end_time, default_minutes)
            entries.append(ReservedEntry(table=table, booking=booking, start=start, end=end))
        entries.sort(key=lambda e: (e.start, e.booking.id))

        if on_date == today:
            entries = [e for e in entries if e.end > now_min]
            occupied = any(timeutils.covers(e.start, e.end, now_min) for e in entries)
            if policy == STRICT and window_min is not None:
                occupied = occupied or any(
                    timeutils.overlaps(e.start, e.end, *window_min) for e in entries
                )
        elif policy == OPTIMISTIC:
            occupied = False
        elif window_min is not None:
            occupied = any(timeutils.overlaps(e.start, e.end, *window_min) for e in entries)
        else:
            occupied = bool(entries)

        result.reserved.extend(entries)
        if not occupied:
            result.free.append(table)

    return result


def group_by_zone(items, zone_of) -> Dict[str, list]:
    grouped: Dict[str, list] = {zone: [] for zone in ZONES}
    for item in items:
        grouped.setdefault(zone_of(item), []).append(item)
    return grouped


class AvailabilityService:
    def __init__(self, db: Session, policy: Optional[str] = None):
        self.db = db
        self.policy = policy or settings.future_day_policy
        self.detector = ConflictDetector(db)

    def compute(self, on_date: date, now: Optional[datetime] = None,
                start: Optional[str] = None, end: Optional[str] = None) -> Availability:
        now = now or datetime.now()
        window = None
        if start is not None:
            validate_interval(start, end)
            window = (start, end)

        tables = self.db.query(Table).filter(Table.is_active == True).all()
        bookings = self.detector.bookings_by_table(on_date)
        return compute_availability(
            tables, bookings, on_date, now,
            policy=self.policy, window=window,
            default_minutes=self.detector.default_minutes,
        )

    def get_table_status(self, on_date: date, now: Optional[datetime] = None,
                         start: Optional[str] = None,
                         end: Optional[str] = None) -> TableStatusResponse:
        """Free and reserved tables for a day, grouped by zone"""
        availability = self.compute(on_date, now, start, end)

        reserved = [
            ReservedTable(
                table_id=e.table.id,
                table_number=e.table.table_number,
                zone=e.table.zone,
                booking_id=e.booking.id,
                start_time=timeutils.from_minutes(e.start),
                end_time=timeutils.from_minutes(e.end),
                customer_name=e.booking.customer_name,
            )
            for e in availability.reserved
        ]
        free = [TableSchema.model_validate(t) for t in availability.free]

        logger.debug(f"Table status for {on_date}: {len(free)} free, {len(reserved)} reserved")
        return TableStatusResponse(
            date=on_date,
            free=group_by_zone(free, lambda t: t.zone),
            reserved=group_by_zone(reserved, lambda r: r.zone),
            free_count=len(free),
            reserved_count=len(reserved),
        )
