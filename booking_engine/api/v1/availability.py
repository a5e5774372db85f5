# ============================================================================
# booking_engine/api/v1/availability.py
# Public slot lookups - thin HTTP layer
# ============================================================================
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from booking_engine.config.database import get_db
from booking_engine.schemas.reservation import AvailableSlotsResponse, SlotCountsResponse
from booking_engine.services.availability.availability_service import AvailabilityService

router = APIRouter(prefix="/availability", tags=["availability"])


@router.get("/slots", response_model=AvailableSlotsResponse)
def get_available_slots(
        business_id: UUID = Query(..., description="The business ID"),
        service_id: UUID = Query(..., description="The service to book"),
        date: date = Query(..., description="Day to list slots for"),
        resource_id: Optional[UUID] = Query(None, description="Only slots free for this staff member"),
        db: Session = Depends(get_db)
):
    """
    Bookable slots for a service on one day.
    An empty list means no availability, not an error.
    """
    slots = AvailabilityService.get_available_slots(
        db=db,
        business_id=business_id,
        service_id=service_id,
        appointment_date=date,
        resource_id=resource_id,
    )

    return {
        "business_id": business_id,
        "service_id": service_id,
        "date": date,
        "resource_id": resource_id,
        "available_slots": [slot.to_dict() for slot in slots],
    }


@router.get("/slot-counts", response_model=SlotCountsResponse)
def get_slot_counts(
        business_id: UUID = Query(..., description="The business ID"),
        service_id: UUID = Query(..., description="The service to book"),
        start_date: date = Query(..., description="First day of the range"),
        end_date: date = Query(..., description="Last day of the range (inclusive)"),
        resource_id: Optional[UUID] = Query(None, description="Only count slots free for this staff member"),
        db: Session = Depends(get_db)
):
    """Free slot count per day, for calendar heat maps"""
    counts = AvailabilityService.get_slot_counts(
        db=db,
        business_id=business_id,
        service_id=service_id,
        start_date=start_date,
        end_date=end_date,
        resource_id=resource_id,
    )

    return {
        "business_id": business_id,
        "service_id": service_id,
        "slots_count_by_date": counts,
    }


@router.get("/open-now")
def is_open_now(
        business_id: UUID = Query(..., description="The business ID"),
        db: Session = Depends(get_db)
):
    """Whether the business is open right now, in its own timezone"""
    return {
        "business_id": str(business_id),
        "is_open": AvailabilityService.is_open_now(db=db, business_id=business_id),
    }
