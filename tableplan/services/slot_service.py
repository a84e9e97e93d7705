from datetime import date, datetime
from sqlalchemy.orm import Session
from typing import Iterable, List, Optional
import logging

from ..errors import ValidationError
from ..models import Booking, OperatingHours, CapacitySettings, BlockedDate, TERMINAL_STATUSES
from ..schemas import TimeSlot
from .. import timeutils

logger = logging.getLogger(__name__)


def day_of_week(on_date: date) -> int:
    """0 = Sunday ... 6 = Saturday"""
    return (on_date.weekday() + 1) % 7


def period_slots(start: Optional[str], end: Optional[str], slot_minutes: int) -> List[int]:
    """Slot start minutes from start to end, both inclusive"""
    if not start or not end:
        return []
    current = timeutils.to_minutes(start)
    last = timeutils.to_minutes(end)
    slots = []
    while current <= last:
        slots.append(current)
        current += slot_minutes
    return slots


def generate_slots(hours: Optional[OperatingHours],
                   slot_duration_minutes: int,
                   existing_bookings: Iterable[Booking],
                   capacity: Optional[CapacitySettings],
                   on_date: date,
                   requested_guests: int = 1,
                   now: Optional[datetime] = None) -> List[TimeSlot]:
    """
    Bookable start times for one day, each annotated with what is left of
    the per-slot guest and table ceilings.
    """
    if slot_duration_minutes is None or slot_duration_minutes <= 0:
        raise ValidationError("Slot duration must be a positive number of minutes")
    if requested_guests < 1:
        raise ValidationError("Guest count must be at least 1")
    if hours is None or hours.is_closed or capacity is None:
        return []

    times = sorted(set(
        period_slots(hours.lunch_start, hours.lunch_end, slot_duration_minutes)
        + period_slots(hours.dinner_start, hours.dinner_end, slot_duration_minutes)
    ))

    booked_guests = {}
    booked_count = {}
    for booking in existing_bookings:
        if booking.status in TERMINAL_STATUSES or booking.booking_date != on_date:
            continue
        key = timeutils.to_minutes(booking.start_time)
        booked_guests[key] = booked_guests.get(key, 0) + booking.guests
        booked_count[key] = booked_count.get(key, 0) + 1

    if now is not None and now.date() == on_date:
        now_min = timeutils.minutes_of(now)
        times = [t for t in times if t > now_min]

    slots = []
    for minute in times:
        remaining_guests = capacity.max_guests_per_slot - booked_guests.get(minute, 0)
        remaining_tables = capacity.max_tables_per_slot - booked_count.get(minute, 0)
        slots.append(TimeSlot(
            time=timeutils.from_minutes(minute),
            available=remaining_guests >= requested_guests and remaining_tables > 0,
            remaining_guests=remaining_guests,
            remaining_tables=remaining_tables,
        ))
    return slots


class SlotService:
    def __init__(self, db: Session):
        self.db = db

    def get_capacity_settings(self) -> Optional[CapacitySettings]:
        return self.db.query(CapacitySettings).order_by(CapacitySettings.id).first()

    def get_day_hours(self, on_date: date) -> Optional[OperatingHours]:
        return self.db.query(OperatingHours).filter(
            OperatingHours.day_of_week == day_of_week(on_date)
        ).first()

    def is_date_blocked(self, on_date: date) -> bool:
        return self.db.query(BlockedDate).filter(
            BlockedDate.blocked_date == on_date
        ).first() is not None

    def is_date_open(self, on_date: date) -> bool:
        if self.is_date_blocked(on_date):
            return False
        hours = self.get_day_hours(on_date)
        return bool(hours and not hours.is_closed)

    def get_available_slots(self, on_date: date, requested_guests: int = 1,
                            now: Optional[datetime] = None) -> List[TimeSlot]:
        """Slots for a date; blocked or closed days have none"""
        now = now or datetime.now()
        capacity = self.get_capacity_settings()
        if capacity is None or not self.is_date_open(on_date):
            return []

        bookings = self.db.query(Booking).filter(
            Booking.booking_date == on_date,
            Booking.status.notin_(TERMINAL_STATUSES),
        ).all()

        return generate_slots(
            self.get_day_hours(on_date),
            capacity.slot_duration_minutes,
            bookings,
            capacity,
            on_date,
            requested_guests=requested_guests,
            now=now,
        )
