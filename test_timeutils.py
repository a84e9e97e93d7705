from datetime import datetime, time

from tableplan import timeutils


def test_to_minutes_parses_time_strings():
    assert timeutils.to_minutes("20:00") == 1200
    assert timeutils.to_minutes("20:00:00") == 1200
    assert timeutils.to_minutes(time(7, 5)) == 425


def test_to_minutes_maps_malformed_input_to_zero():
    assert timeutils.to_minutes("garbage") == 0
    assert timeutils.to_minutes("") == 0
    assert timeutils.to_minutes(None) == 0


def test_to_minutes_wraps_overflow():
    assert timeutils.to_minutes("25:30") == 90


def test_effective_end_defaults_to_start_plus_duration():
    assert timeutils.effective_end("20:00", None, 120) == "22:00"
    assert timeutils.effective_end("19:15", None, 90) == "20:45"


def test_effective_end_wraps_past_midnight():
    assert timeutils.effective_end("23:00", None, 120) == "01:00"


def test_effective_end_keeps_explicit_end():
    assert timeutils.effective_end("20:00", "21:30:00", 120) == "21:30"


def test_overlap_is_symmetric():
    assert timeutils.overlaps(600, 720, 660, 780)
    assert timeutils.overlaps(660, 780, 600, 720)
    assert not timeutils.overlaps(600, 660, 700, 760)
    assert not timeutils.overlaps(700, 760, 600, 660)


def test_back_to_back_intervals_do_not_overlap():
    assert not timeutils.overlaps(600, 720, 720, 780)
    assert not timeutils.overlaps(720, 780, 600, 720)


def test_interval_running_past_midnight_extends_into_next_day():
    assert timeutils.interval("23:00", None, 120) == (1380, 1500)
    assert timeutils.interval("10:00", "12:00", 120) == (600, 720)


def test_round_down_to_quarter():
    assert timeutils.round_down_to_quarter(datetime(2026, 3, 10, 19, 7)) == "19:00"
    assert timeutils.round_down_to_quarter(datetime(2026, 3, 10, 19, 15)) == "19:15"
    assert timeutils.round_down_to_quarter(datetime(2026, 3, 10, 19, 59)) == "19:45"


def test_is_valid_time():
    assert timeutils.is_valid_time("09:00")
    assert timeutils.is_valid_time("23:59:00")
    assert not timeutils.is_valid_time("24:00")
    assert not timeutils.is_valid_time("9:00")
    assert not timeutils.is_valid_time("noon")
    assert not timeutils.is_valid_time(None)
