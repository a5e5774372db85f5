"""
Pydantic schemas for reservations and availability
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict
from datetime import date, time, datetime
from uuid import UUID


# ============================================================================
# Request Schemas
# ============================================================================

class ReservationCreateRequest(BaseModel):
    business_id: UUID
    service_id: UUID
    appointment_date: date
    start_time: time
    resource_id: Optional[UUID] = Field(None, description="Staff member to book, if any")
    client_notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("start_time")
    @classmethod
    def drop_seconds(cls, v: time) -> time:
        return v.replace(second=0, microsecond=0)


class ReservationRescheduleRequest(BaseModel):
    appointment_date: date
    start_time: time

    @field_validator("start_time")
    @classmethod
    def drop_seconds(cls, v: time) -> time:
        return v.replace(second=0, microsecond=0)


class ReservationStatusUpdateRequest(BaseModel):
    status: str = Field(..., description="confirmed, completed, cancelled or no_show")
    business_notes: Optional[str] = Field(None, max_length=2000)
    cancellation_reason: Optional[str] = Field(None, max_length=2000)


# ============================================================================
# Response Schemas
# ============================================================================

class ReservationEventResponse(BaseModel):
    event_type: str
    actor_role: Optional[str]
    from_status: Optional[str]
    to_status: Optional[str]
    previous_date: Optional[date]
    previous_start_time: Optional[time]
    note: Optional[str]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class ReservationResponse(BaseModel):
    id: UUID
    business_id: UUID
    service_id: UUID
    resource_id: Optional[UUID]
    client_id: UUID
    appointment_date: date
    start_time: time
    end_time: time
    duration_minutes: int
    status: str
    client_notes: Optional[str]
    business_notes: Optional[str]
    cancellation_reason: Optional[str]
    created_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    events: List[ReservationEventResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True  # Allows creation from SQLAlchemy models


class SlotResponse(BaseModel):
    start_time: str
    end_time: str


class AvailableSlotsResponse(BaseModel):
    business_id: UUID
    service_id: UUID
    date: date
    resource_id: Optional[UUID] = None
    available_slots: List[SlotResponse]


class SlotCountsResponse(BaseModel):
    business_id: UUID
    service_id: UUID
    slots_count_by_date: Dict[date, int]


class ClientStatsResponse(BaseModel):
    total: int
    upcoming: int
    completed: int
    cancelled: int
