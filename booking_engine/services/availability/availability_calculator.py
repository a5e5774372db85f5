# ============================================================================
# booking_engine/services/availability/availability_calculator.py
# Pure slot generation - no database, no clock, fully testable
# ============================================================================
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple
import logging

from booking_engine.core.exceptions import ValidationError
from booking_engine.services.availability.conflict_detector import BookedInterval, intervals_overlap
from booking_engine.utils.time_math import TimeLike, minutes_to_time, time_to_minutes

logger = logging.getLogger(__name__)

DEFAULT_SLOT_GRANULARITY = 15
DEFAULT_SAME_DAY_BUFFER = 5

# Rejection codes for a requested slot
BUSINESS_CLOSED = "BUSINESS_CLOSED"
OUTSIDE_BUSINESS_HOURS = "OUTSIDE_BUSINESS_HOURS"
SLOT_IN_PAST = "SLOT_IN_PAST"


@dataclass(frozen=True)
class TimeSlot:
    """A bookable [start_time, end_time) slot"""
    start_time: str
    end_time: str

    def to_dict(self) -> Dict[str, str]:
        return {"start_time": self.start_time, "end_time": self.end_time}


def validate_slot_parameters(service_duration: int, slot_granularity: int) -> None:
    if not isinstance(service_duration, int) or isinstance(service_duration, bool) or service_duration <= 0:
        raise ValidationError(
            f"Service duration must be a positive number of minutes, got {service_duration!r}",
            "INVALID_DURATION"
        )
    if not isinstance(slot_granularity, int) or isinstance(slot_granularity, bool) or slot_granularity <= 0:
        raise ValidationError(
            f"Slot granularity must be a positive number of minutes, got {slot_granularity!r}",
            "INVALID_GRANULARITY"
        )


def parse_opening_bounds(open_time: Optional[TimeLike], close_time: Optional[TimeLike]) -> Optional[Tuple[int, int]]:
    """
    Opening and closing as minutes, or None when the day has no bookable
    window (absent, malformed, or opening not before closing).
    """
    if not open_time or not close_time:
        return None

    try:
        open_minutes = time_to_minutes(open_time)
        close_minutes = time_to_minutes(close_time)
    except ValueError as e:
        logger.warning(f"Ignoring malformed business hours {open_time!r}-{close_time!r}: {e}")
        return None

    if open_minutes >= close_minutes:
        return None

    return open_minutes, close_minutes


def same_day_floor(now_minutes: int, slot_granularity: int, buffer_minutes: int) -> int:
    """Earliest start still bookable today: (now - buffer) rounded up to the grid"""
    earliest = now_minutes - buffer_minutes
    return -(-earliest // slot_granularity) * slot_granularity


def calculate_available_slots(
        open_time: Optional[TimeLike],
        close_time: Optional[TimeLike],
        service_duration: int,
        existing_reservations: Sequence[BookedInterval] = (),
        slot_granularity: int = DEFAULT_SLOT_GRANULARITY,
        now_minutes: Optional[int] = None,
        buffer_minutes: int = DEFAULT_SAME_DAY_BUFFER
) -> List[TimeSlot]:
    """
    Generate the ordered bookable slots of a single day.

    Args:
        open_time: Opening time of the day ("HH:MM" or time), None when closed
        close_time: Closing time of the day
        service_duration: Minutes the service takes, must be > 0
        existing_reservations: Occupied intervals already scoped to the resource
        slot_granularity: Step between candidate start times
        now_minutes: Current local time in minutes, only when the day is today
        buffer_minutes: Grace window that still allows booking "right now"

    Returns:
        Slots earliest first. An empty list means no availability, never failure.
    """
    validate_slot_parameters(service_duration, slot_granularity)

    bounds = parse_opening_bounds(open_time, close_time)
    if bounds is None:
        return []
    open_minutes, close_minutes = bounds

    candidate = open_minutes
    if now_minutes is not None:
        candidate = max(candidate, same_day_floor(now_minutes, slot_granularity, buffer_minutes))
        if candidate >= close_minutes:
            return []

    slots = []
    while candidate + service_duration <= close_minutes:
        candidate_end = candidate + service_duration

        is_available = not any(
            intervals_overlap(candidate, candidate_end, booked.start, booked.end)
            for booked in existing_reservations
        )
        if is_available:
            slots.append(TimeSlot(minutes_to_time(candidate), minutes_to_time(candidate_end)))

        candidate += slot_granularity

    return slots


def slot_fits_hours(
        open_time: Optional[TimeLike],
        close_time: Optional[TimeLike],
        start_minutes: int,
        service_duration: int,
        now_minutes: Optional[int] = None,
        slot_granularity: int = DEFAULT_SLOT_GRANULARITY,
        buffer_minutes: int = DEFAULT_SAME_DAY_BUFFER
) -> Optional[str]:
    """
    Check a requested slot against the day's hours.

    Returns None when the slot is legal, otherwise the rejection code.
    """
    validate_slot_parameters(service_duration, slot_granularity)

    bounds = parse_opening_bounds(open_time, close_time)
    if bounds is None:
        return BUSINESS_CLOSED
    open_minutes, close_minutes = bounds

    if start_minutes < open_minutes or start_minutes + service_duration > close_minutes:
        return OUTSIDE_BUSINESS_HOURS

    if now_minutes is not None and start_minutes < same_day_floor(now_minutes, slot_granularity, buffer_minutes):
        return SLOT_IN_PAST

    return None
