"""Tests for interval and timestamp helpers."""

from datetime import datetime

from fleetplan.services.timeplan import (
    clamp_to_business_window,
    duration_hours,
    normalize_timestamp,
    overlap_hours,
    overlaps,
    parse_local,
    round_half_up,
    round_hours,
    snap_year,
    to_local_iso,
)


def test_parse_local_naive_is_kept():
    assert parse_local("2025-08-22T09:00:00") == datetime(2025, 8, 22, 9)
    assert parse_local("2025-08-22 09:30") == datetime(2025, 8, 22, 9, 30)


def test_parse_local_empty_and_garbage():
    assert parse_local(None) is None
    assert parse_local("") is None
    assert parse_local("   ") is None
    assert parse_local("not a date") is None


def test_parse_local_converts_offsets():
    assert parse_local("2025-08-22T09:00:00Z", tz="UTC") == datetime(2025, 8, 22, 9)
    assert parse_local("2025-08-22T09:00:00+10:00", tz="UTC") == datetime(2025, 8, 21, 23)


def test_normalize_timestamp():
    assert normalize_timestamp("2025-08-22 09:00", None) == "2025-08-22T09:00:00"
    assert normalize_timestamp("bogus", None) is None
    assert to_local_iso(datetime(2025, 8, 22, 17)) == "2025-08-22T17:00:00"


def test_duration_hours_fallback_and_floor():
    assert duration_hours(None, "2025-08-22T10:00:00", fallback=3.0) == 3.0
    assert duration_hours("2025-08-22T09:00:00", "bad", fallback=1.5) == 1.5
    assert duration_hours("2025-08-22T09:00:00", "2025-08-22T09:05:00") == 0.25
    assert duration_hours("2025-08-22T09:00:00", "2025-08-22T12:30:00") == 3.5


def test_overlap_helpers():
    a = (datetime(2025, 8, 22, 9), datetime(2025, 8, 22, 11))
    b = (datetime(2025, 8, 22, 10), datetime(2025, 8, 22, 12))
    c = (datetime(2025, 8, 22, 11), datetime(2025, 8, 22, 13))
    assert overlaps(*a, *b)
    assert not overlaps(*a, *c)  # touching
    assert overlap_hours(*a, *b) == 1.0
    assert overlap_hours(*a, *c) == 0.0


def test_clamp_early_job_moves_to_open():
    start, end = clamp_to_business_window(datetime(2025, 8, 23, 5), datetime(2025, 8, 23, 7), 8, 17)
    assert (start, end) == (datetime(2025, 8, 23, 8), datetime(2025, 8, 23, 10))


def test_clamp_late_job_is_pulled_back_to_close():
    start, end = clamp_to_business_window(datetime(2025, 8, 23, 16), datetime(2025, 8, 23, 19), 8, 17)
    assert (start, end) == (datetime(2025, 8, 23, 14), datetime(2025, 8, 23, 17))


def test_clamp_long_job_fills_window():
    start, end = clamp_to_business_window(datetime(2025, 8, 23, 6), datetime(2025, 8, 23, 20), 8, 17)
    assert (start, end) == (datetime(2025, 8, 23, 8), datetime(2025, 8, 23, 17))


def test_snap_year():
    assert snap_year(datetime(2024, 8, 23, 9), 2025) == datetime(2025, 8, 23, 9)
    assert snap_year(datetime(2024, 2, 29, 9), 2025) == datetime(2025, 2, 28, 9)
    assert snap_year(None, 2025) is None


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(1.49) == 1
    assert round_half_up(0.5) == 1


def test_parse_local_rejects_non_text():
    assert parse_local(True) is None
    assert parse_local(["2025-08-22T09:00:00"]) is None
    assert parse_local(42) is None


def test_round_hours_half_up():
    assert round_hours(2.25) == 2.3
    assert round_hours(1.25) == 1.3
    assert round_hours(0.04) == 0.0
