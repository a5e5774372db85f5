"""
Pydantic schemas for the waitlist
"""
from pydantic import BaseModel, model_validator
from typing import Optional
from datetime import date, time, datetime
from uuid import UUID


class WaitlistJoinRequest(BaseModel):
    business_id: UUID
    service_id: UUID
    requested_date: date
    preferred_start_time: Optional[time] = None
    preferred_end_time: Optional[time] = None

    @model_validator(mode="after")
    def check_preferred_range(self) -> "WaitlistJoinRequest":
        start, end = self.preferred_start_time, self.preferred_end_time
        if (start is None) != (end is None):
            raise ValueError("preferred_start_time and preferred_end_time must be given together")
        if start is not None and start >= end:
            raise ValueError("preferred_start_time must be before preferred_end_time")
        return self


class WaitlistEntryResponse(BaseModel):
    id: UUID
    business_id: UUID
    service_id: UUID
    client_id: UUID
    requested_date: date
    preferred_start_time: Optional[time]
    preferred_end_time: Optional[time]
    status: str
    offered_date: Optional[date]
    offered_start_time: Optional[time]
    offer_expires_at: Optional[datetime]
    reservation_id: Optional[UUID]
    created_at: datetime

    class Config:
        from_attributes = True
