"""Tests for wall-clock helpers."""
from datetime import date, datetime, time, timezone

import pytest

from booking_engine.utils.time_math import (
    Weekday,
    day_of_week,
    local_now,
    minutes_to_clock,
    minutes_to_time,
    resolve_timezone,
    time_to_minutes,
    utc_instant,
)


class TestTimeConversion:
    """Minutes after midnight <-> HH:MM."""

    @pytest.mark.parametrize("value,expected", [
        ("00:00", 0),
        ("09:00", 540),
        ("13:45", 825),
        ("23:59", 1439),
        ("09:30:00", 570),
        (time(14, 15), 855),
    ])
    def test_time_to_minutes(self, value, expected):
        assert time_to_minutes(value) == expected

    @pytest.mark.parametrize("value", ["24:00", "9", "ab:cd", "12:60", "", None, 930])
    def test_invalid_times_raise_value_error(self, value):
        with pytest.raises(ValueError):
            time_to_minutes(value)

    def test_minutes_to_time_pads(self):
        assert minutes_to_time(545) == "09:05"
        assert minutes_to_clock(545) == time(9, 5)

    def test_minutes_to_time_rejects_next_day(self):
        with pytest.raises(ValueError):
            minutes_to_time(1440)


class TestWeekday:
    """Monday-first day of week."""

    def test_monday_is_zero(self):
        assert day_of_week(date(2030, 1, 7)) == Weekday.MONDAY
        assert day_of_week(date(2030, 1, 13)) == Weekday.SUNDAY

    def test_from_name_is_case_insensitive(self):
        assert Weekday.from_name(" Friday ") == Weekday.FRIDAY
        assert Weekday.FRIDAY.label == "friday"

    def test_unknown_name(self):
        with pytest.raises(ValueError):
            Weekday.from_name("funday")


class TestClock:
    """Resolving now in a business timezone."""

    def test_local_now_converts_to_business_timezone(self):
        now = datetime(2030, 1, 7, 23, 30, tzinfo=timezone.utc)
        local = local_now("Europe/Moscow", now)

        assert local.date() == date(2030, 1, 8)
        assert (local.hour, local.minute) == (2, 30)

    def test_naive_now_is_utc(self):
        local = local_now("UTC", datetime(2030, 1, 7, 10, 0))
        assert local.tzinfo is not None
        assert local.hour == 10

    def test_utc_instant_normalizes_aware_input(self):
        moscow = resolve_timezone("Europe/Moscow")
        instant = utc_instant(datetime(2030, 1, 7, 13, 0, tzinfo=moscow))
        assert instant == datetime(2030, 1, 7, 10, 0, tzinfo=timezone.utc)
        assert instant.utcoffset().total_seconds() == 0

    def test_unknown_timezone(self):
        with pytest.raises(ValueError):
            resolve_timezone("Mars/Olympus_Mons")
