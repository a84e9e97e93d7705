from datetime import timedelta

import pytest

from conftest import TODAY, NOW
from tableplan.errors import ValidationError
from tableplan.services import AvailabilityService, compute_availability


def free_numbers(availability):
    return [t.table_number for t in availability.free]


def reserved_numbers(availability):
    return [e.table.table_number for e in availability.reserved]


def test_past_day_has_every_active_table_free(db, tables, make_booking):
    yesterday = TODAY - timedelta(days=1)
    make_booking(booking_date=yesterday, start="11:00", end="13:00", tables=[tables["1"]])

    availability = AvailabilityService(db).compute(yesterday, NOW)

    assert free_numbers(availability) == ["1", "2", "3", "G1"]
    assert availability.reserved == []


def test_today_occupies_only_tables_in_use_now(db, tables, make_booking):
    make_booking(start="11:00", end="13:00", tables=[tables["1"]])
    make_booking(start="10:00", end="11:00", tables=[tables["2"]])
    make_booking(start="19:00", tables=[tables["3"]])

    availability = AvailabilityService(db, policy="optimistic").compute(TODAY, NOW)

    assert free_numbers(availability) == ["2", "3", "G1"]
    assert reserved_numbers(availability) == ["1", "3"]


def test_booking_ending_exactly_now_frees_the_table(db, tables, make_booking):
    make_booking(start="10:07", end="12:07", tables=[tables["1"]])

    availability = AvailabilityService(db).compute(TODAY, NOW)

    assert "1" in free_numbers(availability)
    assert reserved_numbers(availability) == []


def test_cancelled_booking_does_not_occupy(db, tables, make_booking):
    make_booking(start="11:00", end="13:00", tables=[tables["1"]], status="cancelled")

    availability = AvailabilityService(db).compute(TODAY, NOW)

    assert "1" in free_numbers(availability)


def test_future_day_optimistic_lists_bookings_but_keeps_tables_free(db, tables, make_booking):
    tomorrow = TODAY + timedelta(days=1)
    make_booking(booking_date=tomorrow, start="19:00", tables=[tables["1"]])

    availability = AvailabilityService(db, policy="optimistic").compute(tomorrow, NOW)

    assert free_numbers(availability) == ["1", "2", "3", "G1"]
    assert reserved_numbers(availability) == ["1"]
    assert availability.reserved[0].end == 21 * 60


def test_future_day_strict_without_window_blocks_booked_tables(db, tables, make_booking):
    tomorrow = TODAY + timedelta(days=1)
    make_booking(booking_date=tomorrow, start="19:00", tables=[tables["1"]])

    availability = AvailabilityService(db, policy="strict").compute(tomorrow, NOW)

    assert free_numbers(availability) == ["2", "3", "G1"]


def test_future_day_strict_checks_only_the_window(db, tables, make_booking):
    tomorrow = TODAY + timedelta(days=1)
    make_booking(booking_date=tomorrow, start="19:00", tables=[tables["1"]])
    service = AvailabilityService(db, policy="strict")

    lunch = service.compute(tomorrow, NOW, "12:00", "14:00")
    dinner = service.compute(tomorrow, NOW, "20:00", "22:00")

    assert "1" in free_numbers(lunch)
    assert "1" not in free_numbers(dinner)


def test_unknown_policy_is_rejected(tables):
    with pytest.raises(ValidationError):
        compute_availability(list(tables.values()), {}, TODAY, NOW, policy="pessimistic")


def test_compute_availability_ignores_inactive_tables(tables):
    availability = compute_availability(list(tables.values()), {}, TODAY, NOW)

    assert "X9" not in free_numbers(availability)


def test_table_status_groups_by_zone(db, tables, make_booking):
    x = make_booking("Xavier", start="11:00", end="13:00", tables=[tables["1"]])

    status = AvailabilityService(db).get_table_status(TODAY, NOW)

    assert set(status.free) >= {"inside", "room", "garden", "mezz"}
    assert [t.table_number for t in status.free["inside"]] == ["2", "3"]
    assert [t.table_number for t in status.free["garden"]] == ["G1"]
    assert status.free["room"] == []
    assert status.free_count == 3
    assert status.reserved_count == 1
    reserved = status.reserved["inside"][0]
    assert reserved.booking_id == x.id
    assert reserved.customer_name == "Xavier"
    assert (reserved.start_time, reserved.end_time) == ("11:00", "13:00")
