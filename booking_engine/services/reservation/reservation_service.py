# ============================================================================
# booking_engine/services/reservation/reservation_service.py
# ============================================================================
"""Service for creating, rescheduling and transitioning reservations"""
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from booking_engine.config.settings import get_settings
from booking_engine.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from booking_engine.core.transactions import store_errors, write_transaction
from booking_engine.models.business import Business
from booking_engine.models.reservation import Reservation, ReservationEvent
from booking_engine.services.availability.availability_calculator import (
    BUSINESS_CLOSED,
    OUTSIDE_BUSINESS_HOURS,
    SLOT_IN_PAST,
    slot_fits_hours,
    same_day_floor,
)
from booking_engine.services.availability.availability_service import AvailabilityService
from booking_engine.services.availability.conflict_detector import find_conflicting_reservations
from booking_engine.services.business.business_service import BusinessService
from booking_engine.services.reservation.reservation_lifecycle import (
    ACTIVE_STATUSES,
    Actor,
    ActorRole,
    ReservationStatus,
    can_reschedule,
    check_transition,
    initial_status,
    parse_status,
)
from booking_engine.services.waitlist.waitlist_dispatcher import WaitlistDispatcher
from booking_engine.utils.time_math import (
    MINUTES_PER_DAY,
    local_now,
    minutes_to_clock,
    time_to_minutes,
    utc_instant,
)

logger = logging.getLogger(__name__)

_REJECTION_MESSAGES = {
    BUSINESS_CLOSED: "The business is closed on this day",
    OUTSIDE_BUSINESS_HOURS: "The requested time is outside business hours",
    SLOT_IN_PAST: "The requested time has already passed",
}


class ReservationService:
    """Handles reservation operations"""

    @staticmethod
    def resolve_auto_confirm(business: Business) -> bool:
        if business.auto_confirm is None:
            return get_settings().AUTO_CONFIRM_DEFAULT
        return business.auto_confirm

    @staticmethod
    def parse_start_minutes(start_time) -> int:
        try:
            return time_to_minutes(start_time)
        except ValueError as e:
            raise ValidationError(str(e), "INVALID_TIME")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @staticmethod
    def create_reservation(
            db: Session,
            actor: Actor,
            business_id: UUID,
            service_id: UUID,
            appointment_date: date,
            start_time,
            resource_id: Optional[UUID] = None,
            client_notes: Optional[str] = None,
            now: Optional[datetime] = None
    ) -> Reservation:
        """
        Book a slot for the calling client.

        Availability is checked again after the business lock is taken, so of
        two concurrent requests for overlapping slots only one can commit.

        Raises:
            ValidationError: slot outside hours, in the past, inactive service
            NotFoundError: unknown business, service or staff member
            ConflictError: TIME_SLOT_CONFLICT when the slot is taken
        """
        if actor.role != ActorRole.CLIENT:
            raise ForbiddenError("Only clients can book appointments", "INSUFFICIENT_PERMISSIONS")

        settings = get_settings()
        start_minutes = ReservationService.parse_start_minutes(start_time)

        with write_transaction(db, "creating reservation"):
            business = BusinessService.get_business(db, business_id)
            service = BusinessService.get_service(db, business_id, service_id)
            if not service.is_active:
                raise ValidationError("Service is not currently offered", "SERVICE_INACTIVE")
            if resource_id is not None:
                BusinessService.get_staff_member(db, business_id, resource_id)

            open_time, close_time = BusinessService.get_day_hours(db, business_id, appointment_date)
            rejection = slot_fits_hours(
                open_time,
                close_time,
                start_minutes,
                service.duration_minutes,
                now_minutes=AvailabilityService.now_minutes_for(business, appointment_date, now),
                slot_granularity=AvailabilityService.slot_granularity(business),
                buffer_minutes=settings.SAME_DAY_BUFFER_MINUTES,
            )
            if rejection:
                raise ValidationError(_REJECTION_MESSAGES[rejection], rejection)

            start_clock = minutes_to_clock(start_minutes)
            end_clock = minutes_to_clock(start_minutes + service.duration_minutes)

            BusinessService.lock_schedule(db, business_id)

            if find_conflicting_reservations(db, business_id, appointment_date, start_clock, end_clock, resource_id):
                raise ConflictError("This time slot is no longer available", "TIME_SLOT_CONFLICT")

            status = initial_status(ReservationService.resolve_auto_confirm(business))
            reservation = Reservation(
                business_id=business_id,
                service_id=service_id,
                resource_id=resource_id,
                client_id=actor.user_id,
                appointment_date=appointment_date,
                start_time=start_clock,
                end_time=end_clock,
                duration_minutes=service.duration_minutes,
                status=status.value,
                client_notes=client_notes,
            )
            db.add(reservation)
            db.flush()

            db.add(ReservationEvent(
                reservation_id=reservation.id,
                actor_id=actor.user_id,
                actor_role=actor.role.value,
                event_type="created",
                to_status=status.value,
            ))

            WaitlistDispatcher.claim_offer(
                db,
                actor.user_id,
                business_id,
                service_id,
                appointment_date,
                start_clock,
                reservation.id,
                now=now,
            )

        db.refresh(reservation)
        logger.info(
            f"Created reservation {reservation.id} for {appointment_date} {start_clock:%H:%M} "
            f"(business {business_id}, status {reservation.status})"
        )
        return reservation

    @staticmethod
    def reschedule_reservation(
            db: Session,
            actor: Actor,
            reservation_id: UUID,
            new_date: date,
            new_start_time,
            now: Optional[datetime] = None
    ) -> Reservation:
        """
        Move a reservation in place. The business has to confirm it again and
        the audit trail keeps the previous date and start time.
        """
        settings = get_settings()
        start_minutes = ReservationService.parse_start_minutes(new_start_time)

        with write_transaction(db, "rescheduling reservation"):
            reservation = ReservationService._get_reservation(db, reservation_id)
            business = BusinessService.get_business(db, reservation.business_id)
            ReservationService.authorize_reservation_actor(db, reservation, business, actor)

            if not can_reschedule(reservation.status):
                raise ConflictError(
                    f"A {reservation.status} reservation cannot be rescheduled",
                    "INVALID_TRANSITION"
                )

            duration = reservation.duration_minutes
            if start_minutes + duration >= MINUTES_PER_DAY:
                raise ValidationError("Reservation must end on the same day", OUTSIDE_BUSINESS_HOURS)

            granularity = AvailabilityService.slot_granularity(business)
            now_minutes = AvailabilityService.now_minutes_for(business, new_date, now)

            if settings.RESCHEDULE_ENFORCE_BUSINESS_HOURS:
                open_time, close_time = BusinessService.get_day_hours(db, business.id, new_date)
                rejection = slot_fits_hours(
                    open_time,
                    close_time,
                    start_minutes,
                    duration,
                    now_minutes=now_minutes,
                    slot_granularity=granularity,
                    buffer_minutes=settings.SAME_DAY_BUFFER_MINUTES,
                )
                if rejection:
                    raise ValidationError(_REJECTION_MESSAGES[rejection], rejection)
            elif now_minutes is not None and start_minutes < same_day_floor(
                    now_minutes, granularity, settings.SAME_DAY_BUFFER_MINUTES):
                raise ValidationError(_REJECTION_MESSAGES[SLOT_IN_PAST], SLOT_IN_PAST)

            start_clock = minutes_to_clock(start_minutes)
            end_clock = minutes_to_clock(start_minutes + duration)

            BusinessService.lock_schedule(db, business.id)

            if find_conflicting_reservations(
                    db,
                    business.id,
                    new_date,
                    start_clock,
                    end_clock,
                    resource_id=reservation.resource_id,
                    exclude_reservation_id=reservation.id,
            ):
                raise ConflictError("This time slot is no longer available", "TIME_SLOT_CONFLICT")

            previous_date = reservation.appointment_date
            previous_start = reservation.start_time
            previous_status = reservation.status

            reservation.appointment_date = new_date
            reservation.start_time = start_clock
            reservation.end_time = end_clock
            reservation.status = ReservationStatus.PENDING.value

            db.add(ReservationEvent(
                reservation_id=reservation.id,
                actor_id=actor.user_id,
                actor_role=actor.role.value,
                event_type="rescheduled",
                from_status=previous_status,
                to_status=ReservationStatus.PENDING.value,
                previous_date=previous_date,
                previous_start_time=previous_start,
            ))

        db.refresh(reservation)
        logger.info(
            f"Rescheduled reservation {reservation.id} from {previous_date} {previous_start:%H:%M} "
            f"to {new_date} {start_clock:%H:%M}"
        )
        return reservation

    @staticmethod
    def update_status(
            db: Session,
            actor: Actor,
            reservation_id: UUID,
            new_status,
            business_notes: Optional[str] = None,
            cancellation_reason: Optional[str] = None,
            now: Optional[datetime] = None
    ) -> Reservation:
        """
        Move a reservation through its lifecycle.

        A cancellation is committed before the freed slot is offered to the
        waitlist; a failing dispatch never undoes the cancellation.
        """
        target = parse_status(new_status)

        with write_transaction(db, "updating reservation status"):
            reservation = ReservationService._get_reservation(db, reservation_id)
            business = BusinessService.get_business(db, reservation.business_id)
            ReservationService.authorize_reservation_actor(db, reservation, business, actor)

            previous_status = reservation.status
            check_transition(previous_status, target, actor.role)

            reservation.status = target.value
            if business_notes is not None and actor.is_business_side:
                reservation.business_notes = business_notes
            if target == ReservationStatus.CANCELLED:
                reservation.cancelled_at = utc_instant(now)
                reservation.cancellation_reason = cancellation_reason

            db.add(ReservationEvent(
                reservation_id=reservation.id,
                actor_id=actor.user_id,
                actor_role=actor.role.value,
                event_type="status_changed",
                from_status=previous_status,
                to_status=target.value,
                note=cancellation_reason,
            ))

        db.refresh(reservation)
        logger.info(f"Reservation {reservation.id}: {previous_status} -> {target.value} by {actor.role.value}")

        if target == ReservationStatus.CANCELLED:
            ReservationService._dispatch_freed_slot(db, reservation, now)

        return reservation

    @staticmethod
    def _dispatch_freed_slot(db: Session, reservation: Reservation, now: Optional[datetime]) -> None:
        try:
            WaitlistDispatcher.dispatch_freed_slot(
                db,
                reservation.business_id,
                reservation.service_id,
                reservation.appointment_date,
                reservation.start_time,
                resource_id=reservation.resource_id,
                now=now,
            )
        except Exception:
            # The cancellation is already committed
            logger.exception(f"Waitlist dispatch failed for cancelled reservation {reservation.id}")
            db.rollback()

    # ------------------------------------------------------------------
    # Authorization
    # ------------------------------------------------------------------

    @staticmethod
    def authorize_reservation_actor(db: Session, reservation: Reservation, business: Business, actor: Actor) -> None:
        """Client must own the reservation; owner/staff must belong to its business"""
        if actor.role == ActorRole.CLIENT:
            if reservation.client_id != actor.user_id:
                raise ForbiddenError("Not your reservation", "INSUFFICIENT_PERMISSIONS")
            return
        BusinessService.authorize_business_actor(db, business, actor)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    def _get_reservation(db: Session, reservation_id: UUID) -> Reservation:
        reservation = db.query(Reservation).filter(Reservation.id == reservation_id).first()
        if not reservation:
            raise NotFoundError("Reservation not found", "RESERVATION_NOT_FOUND")
        return reservation

    @staticmethod
    def get_reservation(db: Session, actor: Actor, reservation_id: UUID) -> Reservation:
        with store_errors(db, "loading reservation"):
            reservation = ReservationService._get_reservation(db, reservation_id)
            business = BusinessService.get_business(db, reservation.business_id)
            ReservationService.authorize_reservation_actor(db, reservation, business, actor)
            return reservation

    @staticmethod
    def list_client_reservations(
            db: Session,
            client_id: UUID,
            status: Optional[str] = None,
            upcoming: Optional[bool] = None,
            today: Optional[date] = None
    ) -> List[Reservation]:
        """
        A client's reservations, soonest first.

        upcoming=True keeps active reservations from today on, upcoming=False
        keeps everything before today.
        """
        today = today or local_now(get_settings().DEFAULT_TIMEZONE).date()

        with store_errors(db, "listing client reservations"):
            query = db.query(Reservation).filter(Reservation.client_id == client_id)

            if status is not None:
                query = query.filter(Reservation.status == parse_status(status).value)
            if upcoming is True:
                query = query.filter(
                    Reservation.appointment_date >= today,
                    Reservation.status.in_([s.value for s in ACTIVE_STATUSES])
                )
            elif upcoming is False:
                query = query.filter(Reservation.appointment_date < today)

            return query.order_by(Reservation.appointment_date, Reservation.start_time).all()

    @staticmethod
    def list_business_reservations(
            db: Session,
            actor: Actor,
            business_id: UUID,
            appointment_date: Optional[date] = None,
            status: Optional[str] = None
    ) -> List[Reservation]:
        with store_errors(db, "listing business reservations"):
            business = BusinessService.get_business(db, business_id)
            BusinessService.authorize_business_actor(db, business, actor)

            query = db.query(Reservation).filter(Reservation.business_id == business_id)
            if appointment_date is not None:
                query = query.filter(Reservation.appointment_date == appointment_date)
            if status is not None:
                query = query.filter(Reservation.status == parse_status(status).value)

            return query.order_by(Reservation.appointment_date, Reservation.start_time).all()

    @staticmethod
    def get_client_stats(db: Session, client_id: UUID, today: Optional[date] = None) -> dict:
        """Booking counters for a client's dashboard"""
        today = today or local_now(get_settings().DEFAULT_TIMEZONE).date()

        with store_errors(db, "loading client stats"):
            counts = dict(
                db.query(Reservation.status, func.count(Reservation.id))
                .filter(Reservation.client_id == client_id)
                .group_by(Reservation.status)
                .all()
            )
            upcoming = db.query(func.count(Reservation.id)).filter(
                Reservation.client_id == client_id,
                Reservation.appointment_date >= today,
                Reservation.status.in_([s.value for s in ACTIVE_STATUSES])
            ).scalar()

        return {
            "total": sum(counts.values()),
            "upcoming": upcoming or 0,
            "completed": counts.get(ReservationStatus.COMPLETED.value, 0),
            "cancelled": counts.get(ReservationStatus.CANCELLED.value, 0),
        }
