# booking_engine/utils/time_math.py
"""
Wall-clock helpers for the scheduling engine.

All scheduling arithmetic happens on minute offsets from local midnight in
the business's own timezone. Nothing here consults a timezone database
except ``local_now``, which callers use once per request to resolve "now".
"""
import enum
from datetime import date, datetime, time, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

MINUTES_PER_DAY = 24 * 60

TimeLike = Union[str, time]


class Weekday(enum.IntEnum):
    """Day of week, Monday first (matches date.weekday())"""
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @classmethod
    def from_name(cls, name: str) -> "Weekday":
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown day of week: {name!r}")

    @property
    def label(self) -> str:
        return self.name.lower()


def time_to_minutes(value: TimeLike) -> int:
    """
    Convert "HH:MM" (or "HH:MM:SS", or a datetime.time) to minutes after midnight.

    Raises ValueError for anything that is not a valid wall-clock time.
    """
    if isinstance(value, time):
        return value.hour * 60 + value.minute

    if not isinstance(value, str):
        raise ValueError(f"Invalid time value: {value!r}")

    parts = value.strip().split(":")
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid time format: {value!r}")

    hours, minutes = int(parts[0]), int(parts[1])
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise ValueError(f"Time out of range: {value!r}")

    return hours * 60 + minutes


def minutes_to_time(minutes: int) -> str:
    """Convert minutes after midnight to "HH:MM"."""
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"Minutes out of range for a single day: {minutes}")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def minutes_to_clock(minutes: int) -> time:
    """Same as minutes_to_time but returns a datetime.time"""
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"Minutes out of range for a single day: {minutes}")
    return time(minutes // 60, minutes % 60)


def day_of_week(day: date) -> Weekday:
    return Weekday(day.weekday())


def resolve_timezone(tz_name: Optional[str]) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown timezone: {tz_name!r}")


def local_now(tz_name: Optional[str], now: Optional[datetime] = None) -> datetime:
    """
    Wall-clock "now" for a business.

    A naive ``now`` is taken to be UTC.
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(resolve_timezone(tz_name))


def utc_instant(now: Optional[datetime] = None) -> datetime:
    """Current (or given) instant as an aware UTC datetime; naive input is UTC"""
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)
