"""Test timezone-aware day ranges and date coercion."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from taskflow.timeutil import coerce_datetime, local_day_bounds


def test_local_day_bounds_utc():
    now = datetime(2026, 5, 10, 15, 0, tzinfo=timezone.utc)
    start, end = local_day_bounds("UTC", now)
    assert start == datetime(2026, 5, 10, tzinfo=timezone.utc)
    assert end == datetime(2026, 5, 11, tzinfo=timezone.utc)


def test_local_day_bounds_crosses_utc_midnight():
    # 02:00 UTC on the 10th is still the evening of the 9th in New York (EDT).
    now = datetime(2026, 5, 10, 2, 0, tzinfo=timezone.utc)
    start, end = local_day_bounds("America/New_York", now)
    assert start == datetime(2026, 5, 9, 4, 0, tzinfo=timezone.utc)
    assert end == datetime(2026, 5, 10, 4, 0, tzinfo=timezone.utc)


def test_local_day_bounds_dst_day_is_23_hours():
    now = datetime(2026, 3, 8, 12, 0, tzinfo=timezone.utc)
    start, end = local_day_bounds("America/New_York", now)
    assert (end - start).total_seconds() == 23 * 3600


def test_unknown_timezone_falls_back_to_utc():
    now = datetime(2026, 5, 10, 15, 0, tzinfo=timezone.utc)
    assert local_day_bounds("Nowhere/City", now) == local_day_bounds("UTC", now)


def test_coerce_datetime():
    assert coerce_datetime(None) is None
    assert coerce_datetime("") is None
    assert coerce_datetime("2026-05-10") == datetime(2026, 5, 10, tzinfo=timezone.utc)
    assert coerce_datetime(date(2026, 5, 10), "Asia/Tokyo") == datetime(
        2026, 5, 9, 15, 0, tzinfo=timezone.utc
    )
    assert coerce_datetime("2026-05-10T12:00:00Z") == datetime(
        2026, 5, 10, 12, 0, tzinfo=timezone.utc
    )


@pytest.mark.parametrize("value", ["garbage", "next tuesday", "2026-13-40", 42])
def test_coerce_datetime_rejects_non_dates(value):
    with pytest.raises(ValueError):
        coerce_datetime(value)
