# ============================================================================
# booking_engine/api/v1/waitlist.py
# ============================================================================
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session

from booking_engine.api.dependencies import get_current_actor
from booking_engine.config.database import get_db
from booking_engine.schemas.waitlist import WaitlistEntryResponse, WaitlistJoinRequest
from booking_engine.services.reservation.reservation_lifecycle import Actor
from booking_engine.services.waitlist.waitlist_dispatcher import WaitlistDispatcher

router = APIRouter(prefix="/waitlist", tags=["waitlist"])


@router.post("", response_model=WaitlistEntryResponse, status_code=status.HTTP_201_CREATED)
def join_waitlist(
        payload: WaitlistJoinRequest,
        actor: Actor = Depends(get_current_actor),
        db: Session = Depends(get_db)
):
    """Wait for a slot on a fully booked day"""
    return WaitlistDispatcher.join_waitlist(
        db=db,
        actor=actor,
        business_id=payload.business_id,
        service_id=payload.service_id,
        requested_date=payload.requested_date,
        preferred_start_time=payload.preferred_start_time,
        preferred_end_time=payload.preferred_end_time,
    )


@router.get("/me", response_model=List[WaitlistEntryResponse])
def list_my_entries(
        active_only: bool = Query(False, description="Only waiting and offered entries"),
        actor: Actor = Depends(get_current_actor),
        db: Session = Depends(get_db)
):
    return WaitlistDispatcher.list_client_entries(db=db, client_id=actor.user_id, active_only=active_only)


@router.delete("/{entry_id}", response_model=WaitlistEntryResponse)
def remove_entry(
        entry_id: UUID = Path(..., description="The waitlist entry ID"),
        actor: Actor = Depends(get_current_actor),
        db: Session = Depends(get_db)
):
    return WaitlistDispatcher.remove_entry(db=db, actor=actor, entry_id=entry_id)
