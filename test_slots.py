from datetime import date, datetime, timedelta
from types import SimpleNamespace

import pytest

from conftest import TODAY, NOW
from tableplan.errors import ValidationError
from tableplan.models import BlockedDate, CapacitySettings, OperatingHours
from tableplan.services import SlotService, generate_slots
from tableplan.services.slot_service import day_of_week


def hours(lunch=("11:30", "12:00"), dinner=(None, None), closed=False):
    return OperatingHours(
        day_of_week=2,
        is_closed=closed,
        lunch_start=lunch[0],
        lunch_end=lunch[1],
        dinner_start=dinner[0],
        dinner_end=dinner[1],
    )


def capacity(guests=20, tables=10):
    return CapacitySettings(
        max_guests_per_slot=guests,
        max_tables_per_slot=tables,
        total_restaurant_capacity=200,
        slot_duration_minutes=15,
    )


def booking(start, guests, status="confirmed", on_date=TODAY):
    return SimpleNamespace(start_time=start, guests=guests, status=status, booking_date=on_date)


def test_day_of_week_counts_from_sunday():
    assert day_of_week(date(2026, 3, 8)) == 0
    assert day_of_week(date(2026, 3, 10)) == 2
    assert day_of_week(date(2026, 3, 14)) == 6


def test_closed_day_has_no_slots():
    assert generate_slots(hours(closed=True), 15, [], capacity(), TODAY) == []
    assert generate_slots(None, 15, [], capacity(), TODAY) == []


def test_periods_include_their_end_time():
    slots = generate_slots(hours(dinner=("18:00", "18:30")), 15, [], capacity(), TODAY)

    assert [s.time for s in slots] == ["11:30", "11:45", "12:00", "18:00", "18:15", "18:30"]


def test_overlapping_periods_are_deduplicated_and_sorted():
    slots = generate_slots(
        hours(lunch=("12:00", "12:30"), dinner=("11:45", "12:15")), 15, [], capacity(), TODAY
    )

    assert [s.time for s in slots] == ["11:45", "12:00", "12:15", "12:30"]


def test_remaining_capacity_counts_bookings_starting_in_the_slot():
    existing = [
        booking("11:30", 6),
        booking("11:30", 4),
        booking("11:30", 8, status="cancelled"),
        booking("11:45", 2, on_date=TODAY + timedelta(days=1)),
    ]

    slots = generate_slots(hours(), 15, existing, capacity(guests=20, tables=10), TODAY, requested_guests=10)

    first = slots[0]
    assert first.time == "11:30"
    assert first.remaining_guests == 10
    assert first.remaining_tables == 8
    assert first.available
    assert slots[1].remaining_guests == 20


def test_slot_is_full_when_party_does_not_fit():
    existing = [booking("11:30", 15)]

    slot = generate_slots(hours(), 15, existing, capacity(guests=20), TODAY, requested_guests=6)[0]

    assert slot.remaining_guests == 5
    assert not slot.available


def test_table_ceiling_makes_slot_unavailable():
    existing = [booking("11:30", 1), booking("11:30", 1)]

    slot = generate_slots(hours(), 15, existing, capacity(tables=2), TODAY)[0]

    assert slot.remaining_tables == 0
    assert not slot.available


def test_today_keeps_only_future_slots():
    slots = generate_slots(
        hours(lunch=("11:30", "12:30")), 15, [], capacity(), TODAY,
        now=datetime(2026, 3, 10, 12, 0),
    )

    assert [s.time for s in slots] == ["12:15", "12:30"]


def test_other_days_ignore_the_current_time():
    slots = generate_slots(hours(), 15, [], capacity(), TODAY + timedelta(days=7), now=NOW)

    assert [s.time for s in slots] == ["11:30", "11:45", "12:00"]


@pytest.mark.parametrize("duration,guests", [(0, 1), (-15, 1), (15, 0)])
def test_invalid_arguments_are_rejected(duration, guests):
    with pytest.raises(ValidationError):
        generate_slots(hours(), duration, [], capacity(), TODAY, requested_guests=guests)


def test_service_uses_seeded_weekly_hours(db):
    service = SlotService(db)

    assert service.get_available_slots(date(2026, 3, 9), now=NOW) == []

    slots = service.get_available_slots(TODAY, now=NOW)
    times = [s.time for s in slots]
    assert times[0] == "12:15"
    assert times[-1] == "22:00"
    assert "14:30" in times and "14:45" not in times
    assert "17:30" in times


def test_service_counts_persisted_bookings(db, make_booking):
    make_booking(start="19:00", guests=18)
    make_booking(start="19:00", guests=4, status="no_show")

    slot = next(s for s in SlotService(db).get_available_slots(TODAY, 4, now=NOW) if s.time == "19:00")

    assert slot.remaining_guests == 2
    assert slot.remaining_tables == 9
    assert not slot.available


def test_blocked_date_has_no_slots(db):
    db.add(BlockedDate(blocked_date=TODAY, reason="Private event"))
    db.commit()
    service = SlotService(db)

    assert service.is_date_blocked(TODAY)
    assert not service.is_date_open(TODAY)
    assert service.get_available_slots(TODAY, now=NOW) == []
