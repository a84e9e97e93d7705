"""
Time-of-day arithmetic for bookings.

Booking times are stored as "HH:MM" strings on a calendar date. Everything
here works at minute resolution and treats intervals as half-open
[start, end), so a booking ending at 20:00 does not collide with one
starting at 20:00.
"""
import re
from datetime import datetime, time
from typing import Optional, Tuple, Union

MINUTES_PER_DAY = 24 * 60

_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::\d{2})?\s*$")
_STRICT_TIME_RE = re.compile(r"^\d{2}:\d{2}(:\d{2})?$")

TimeLike = Union[str, time, datetime, None]


def to_minutes(value: TimeLike) -> int:
    """Minutes since midnight. Malformed input gives 0, overflow wraps."""
    if value is None:
        return 0
    if isinstance(value, (time, datetime)):
        return (value.hour * 60 + value.minute) % MINUTES_PER_DAY
    match = _TIME_RE.match(str(value))
    if not match:
        return 0
    hours, minutes = int(match.group(1)), int(match.group(2))
    return (hours * 60 + minutes) % MINUTES_PER_DAY


def from_minutes(minutes: int) -> str:
    minutes = minutes % MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_time(value: TimeLike) -> str:
    """Canonical "HH:MM" form of a time-of-day"""
    return from_minutes(to_minutes(value))


def is_valid_time(value: Optional[str]) -> bool:
    """True for well-formed HH:MM (or HH:MM:SS) within a single day"""
    if not isinstance(value, str) or not _STRICT_TIME_RE.match(value):
        return False
    hours, minutes = int(value[0:2]), int(value[3:5])
    return hours < 24 and minutes < 60


def add_minutes(value: TimeLike, minutes: int) -> str:
    return from_minutes(to_minutes(value) + minutes)


def effective_end(start: TimeLike, end: TimeLike = None, default_minutes: int = 120) -> str:
    """End time of a booking, falling back to start + default_minutes"""
    if end:
        return normalize_time(end)
    return add_minutes(start, default_minutes)


def interval(start: TimeLike, end: TimeLike = None, default_minutes: int = 120) -> Tuple[int, int]:
    """Effective [start, end) in minutes; an end at or before start runs past midnight."""
    start_min = to_minutes(start)
    end_min = to_minutes(effective_end(start, end, default_minutes))
    if end_min <= start_min:
        end_min += MINUTES_PER_DAY
    return start_min, end_min


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """Half-open interval overlap; back-to-back intervals do not overlap."""
    return a_start < b_end and b_start < a_end


def covers(start: int, end: int, point: int) -> bool:
    return start <= point < end


def round_down_to_quarter(moment: datetime) -> str:
    """HH:MM of moment, rounded down to the nearest quarter hour"""
    return from_minutes(moment.hour * 60 + (moment.minute // 15) * 15)


def minutes_of(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute
