# ============================================================================
# booking_engine/api/v1/reservations.py
# Client and business reservation endpoints - thin HTTP layer
# ============================================================================
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session

from booking_engine.api.dependencies import get_current_actor
from booking_engine.config.database import get_db
from booking_engine.schemas.reservation import (
    ClientStatsResponse,
    ReservationCreateRequest,
    ReservationRescheduleRequest,
    ReservationResponse,
    ReservationStatusUpdateRequest,
)
from booking_engine.services.reservation.reservation_lifecycle import Actor
from booking_engine.services.reservation.reservation_service import ReservationService

router = APIRouter(prefix="/reservations", tags=["reservations"])


@router.post("", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
def create_reservation(
        payload: ReservationCreateRequest,
        actor: Actor = Depends(get_current_actor),
        db: Session = Depends(get_db)
):
    """
    Book a slot.
    Fails with 409 TIME_SLOT_CONFLICT when someone else got there first.
    """
    return ReservationService.create_reservation(
        db=db,
        actor=actor,
        business_id=payload.business_id,
        service_id=payload.service_id,
        appointment_date=payload.appointment_date,
        start_time=payload.start_time,
        resource_id=payload.resource_id,
        client_notes=payload.client_notes,
    )


@router.get("/me", response_model=List[ReservationResponse])
def list_my_reservations(
        status: Optional[str] = Query(None, description="pending, confirmed, completed, cancelled or no_show"),
        upcoming: Optional[bool] = Query(None, description="true for upcoming, false for past"),
        actor: Actor = Depends(get_current_actor),
        db: Session = Depends(get_db)
):
    return ReservationService.list_client_reservations(
        db=db,
        client_id=actor.user_id,
        status=status,
        upcoming=upcoming,
    )


@router.get("/me/stats", response_model=ClientStatsResponse)
def get_my_stats(
        actor: Actor = Depends(get_current_actor),
        db: Session = Depends(get_db)
):
    return ReservationService.get_client_stats(db=db, client_id=actor.user_id)


@router.get("/{reservation_id}", response_model=ReservationResponse)
def get_reservation(
        reservation_id: UUID = Path(..., description="The reservation ID"),
        actor: Actor = Depends(get_current_actor),
        db: Session = Depends(get_db)
):
    return ReservationService.get_reservation(db=db, actor=actor, reservation_id=reservation_id)


@router.patch("/{reservation_id}/reschedule", response_model=ReservationResponse)
def reschedule_reservation(
        payload: ReservationRescheduleRequest,
        reservation_id: UUID = Path(..., description="The reservation ID"),
        actor: Actor = Depends(get_current_actor),
        db: Session = Depends(get_db)
):
    """Move a reservation to a new slot. The business must confirm it again."""
    return ReservationService.reschedule_reservation(
        db=db,
        actor=actor,
        reservation_id=reservation_id,
        new_date=payload.appointment_date,
        new_start_time=payload.start_time,
    )


@router.patch("/{reservation_id}/status", response_model=ReservationResponse)
def update_reservation_status(
        payload: ReservationStatusUpdateRequest,
        reservation_id: UUID = Path(..., description="The reservation ID"),
        actor: Actor = Depends(get_current_actor),
        db: Session = Depends(get_db)
):
    """
    Confirm, complete, cancel or mark a no-show.
    Clients may only cancel.
    """
    return ReservationService.update_status(
        db=db,
        actor=actor,
        reservation_id=reservation_id,
        new_status=payload.status,
        business_notes=payload.business_notes,
        cancellation_reason=payload.cancellation_reason,
    )
