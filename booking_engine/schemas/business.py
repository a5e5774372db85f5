"""
Pydantic schemas for business scheduling settings and opening hours.

Opening hours arrive in several historical shapes ({"open", "close"},
{"opening", "closing"}, "09:00-18:00", closed as a bool or "true"). They are
resolved here into one canonical shape; the scheduling core never sees the
aliases.
"""
from pydantic import BaseModel, Field, AliasChoices, RootModel, field_validator, model_validator
from typing import Optional, Dict, Any
from uuid import UUID

from booking_engine.utils.time_math import Weekday, time_to_minutes, minutes_to_time, resolve_timezone


# ============================================================================
# Request Schemas (for incoming data)
# ============================================================================

class DayHoursInput(BaseModel):
    """Opening hours for a single day"""
    closed: bool = False
    opening: Optional[str] = Field(None, validation_alias=AliasChoices("opening", "open"))
    closing: Optional[str] = Field(None, validation_alias=AliasChoices("closing", "close"))

    @model_validator(mode="before")
    @classmethod
    def parse_range_string(cls, data: Any) -> Any:
        """Accept "09:00-18:00" and "closed" shorthands"""
        if isinstance(data, str):
            if data.strip().lower() == "closed":
                return {"closed": True}
            opening, sep, closing = data.partition("-")
            if not sep:
                raise ValueError('Hours must look like "09:00-18:00"')
            return {"opening": opening.strip(), "closing": closing.strip()}
        return data

    @field_validator("closed", mode="before")
    @classmethod
    def coerce_closed(cls, v):
        if v is None:
            return False
        if isinstance(v, str):
            return v.strip().lower() == "true"
        return v

    @model_validator(mode="after")
    def check_window(self) -> "DayHoursInput":
        if self.closed:
            return self
        if not self.opening or not self.closing:
            raise ValueError("opening and closing are required unless the day is closed")

        opening = time_to_minutes(self.opening)
        closing = time_to_minutes(self.closing)

        # opening == closing behaves as closed
        if opening == closing:
            self.closed = True
            return self
        if opening > closing:
            raise ValueError("opening must be before closing")

        self.opening = minutes_to_time(opening)
        self.closing = minutes_to_time(closing)
        return self


class BusinessHoursInput(RootModel[Dict[str, DayHoursInput]]):
    """Day name -> hours. Days left out are closed."""

    @field_validator("root")
    @classmethod
    def validate_day_names(cls, v):
        for day_name in v.keys():
            Weekday.from_name(day_name)
        return v

    def by_weekday(self) -> Dict[Weekday, DayHoursInput]:
        week = {day: DayHoursInput(closed=True) for day in Weekday}
        for day_name, hours in self.root.items():
            week[Weekday.from_name(day_name)] = hours
        return week


class BusinessSettingsUpdate(BaseModel):
    """
    Scheduling settings a business owner can change.
    All fields are optional - only send what you want to update.
    """
    timezone: Optional[str] = None
    auto_confirm: Optional[bool] = None
    slot_granularity_minutes: Optional[int] = Field(None, gt=0, le=240)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v):
        if v is None:
            return v
        resolve_timezone(v)
        return v


# ============================================================================
# Response Schemas (for outgoing data)
# ============================================================================

class BusinessScheduleResponse(BaseModel):
    """Schema for business scheduling data in responses"""
    id: UUID
    owner_id: UUID
    name: str
    timezone: str
    auto_confirm: Optional[bool]
    slot_granularity_minutes: Optional[int]
    rating_average: float
    rating_count: int
    is_active: bool
    business_hours: Dict[str, Dict[str, Any]]
