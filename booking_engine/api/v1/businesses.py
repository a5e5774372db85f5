# ============================================================================
# booking_engine/api/v1/businesses.py
# Owner-side scheduling settings and the business's own reservation list
# ============================================================================
from datetime import date
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Path, Query
from sqlalchemy.orm import Session

from booking_engine.api.dependencies import get_current_actor
from booking_engine.config.database import get_db
from booking_engine.schemas.business import BusinessScheduleResponse, BusinessSettingsUpdate
from booking_engine.schemas.reservation import ReservationResponse
from booking_engine.services.business.business_service import BusinessService
from booking_engine.services.reservation.reservation_lifecycle import Actor
from booking_engine.services.reservation.reservation_service import ReservationService

router = APIRouter(prefix="/businesses", tags=["businesses"])


@router.get("/{business_id}", response_model=BusinessScheduleResponse)
def get_business_schedule(
        business_id: UUID = Path(..., description="The business ID"),
        db: Session = Depends(get_db)
):
    """Public scheduling profile: hours, timezone and rating"""
    return BusinessService.get_business(db, business_id).to_dict()


@router.put("/{business_id}/hours", response_model=BusinessScheduleResponse)
def set_business_hours(
        business_id: UUID = Path(..., description="The business ID"),
        hours: Dict[str, Any] = Body(..., examples=[{"monday": {"open": "09:00", "close": "18:00"}}]),
        actor: Actor = Depends(get_current_actor),
        db: Session = Depends(get_db)
):
    """
    Replace the weekly opening hours.
    Days left out are closed; {"open","close"}, {"opening","closing"} and
    "09:00-18:00" are all accepted.
    """
    return BusinessService.set_business_hours(db, actor, business_id, hours).to_dict()


@router.post("/{business_id}/hours/ensure", response_model=BusinessScheduleResponse)
def ensure_business_hours(
        business_id: UUID = Path(..., description="The business ID"),
        actor: Actor = Depends(get_current_actor),
        db: Session = Depends(get_db)
):
    """Create any missing weekday rows (closed). Safe to repeat."""
    return BusinessService.ensure_business_settings(db, actor, business_id).to_dict()


@router.patch("/{business_id}/settings", response_model=BusinessScheduleResponse)
def update_business_settings(
        update: BusinessSettingsUpdate,
        business_id: UUID = Path(..., description="The business ID"),
        actor: Actor = Depends(get_current_actor),
        db: Session = Depends(get_db)
):
    return BusinessService.update_settings(db, actor, business_id, update).to_dict()


@router.get("/{business_id}/reservations", response_model=List[ReservationResponse])
def list_business_reservations(
        business_id: UUID = Path(..., description="The business ID"),
        date: Optional[date] = Query(None, description="Only this day"),
        status: Optional[str] = Query(None, description="Filter by status"),
        actor: Actor = Depends(get_current_actor),
        db: Session = Depends(get_db)
):
    """Reservations of a business, for its owner and staff"""
    return ReservationService.list_business_reservations(
        db=db,
        actor=actor,
        business_id=business_id,
        appointment_date=date,
        status=status,
    )
