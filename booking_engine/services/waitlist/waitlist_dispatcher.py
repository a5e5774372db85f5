# ============================================================================
# booking_engine/services/waitlist/waitlist_dispatcher.py
# Offers freed slots to waiting clients, oldest first
# ============================================================================
"""
Entry lifecycle:

    waiting ──► offered ──► booked
       │           │
       │           └──► expired        (offer lapsed, slot moves on)
       └──────────────► removed        (client or business withdrew it)

A slot is offered to at most one entry at a time. Every write that can
create an offer takes the business schedule lock first.
"""
import enum
from datetime import date, datetime, time, timedelta
from typing import List, Optional
from uuid import UUID
import logging

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from booking_engine.config.settings import get_settings
from booking_engine.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from booking_engine.core.transactions import store_errors, write_transaction
from booking_engine.models.waitlist import WaitlistEntry
from booking_engine.services.availability.conflict_detector import find_conflicting_reservations
from booking_engine.services.business.business_service import BusinessService
from booking_engine.services.reservation.reservation_lifecycle import Actor, ActorRole
from booking_engine.utils.time_math import MINUTES_PER_DAY, minutes_to_clock, time_to_minutes, utc_instant

logger = logging.getLogger(__name__)


class WaitlistStatus(str, enum.Enum):
    WAITING = "waiting"
    OFFERED = "offered"
    EXPIRED = "expired"
    BOOKED = "booked"
    REMOVED = "removed"


ACTIVE_WAITLIST_STATUSES = (WaitlistStatus.WAITING.value, WaitlistStatus.OFFERED.value)


def _as_clock(value) -> time:
    return value if isinstance(value, time) else minutes_to_clock(time_to_minutes(value))


class WaitlistDispatcher:
    """Waitlist entries and slot offers"""

    @staticmethod
    def offer_window() -> timedelta:
        return timedelta(hours=get_settings().WAITLIST_OFFER_WINDOW_HOURS)

    @staticmethod
    def join_waitlist(
            db: Session,
            actor: Actor,
            business_id: UUID,
            service_id: UUID,
            requested_date: date,
            preferred_start_time: Optional[time] = None,
            preferred_end_time: Optional[time] = None
    ) -> WaitlistEntry:
        if actor.role != ActorRole.CLIENT:
            raise ForbiddenError("Only clients can join a waitlist", "INSUFFICIENT_PERMISSIONS")

        if (preferred_start_time is None) != (preferred_end_time is None):
            raise ValidationError(
                "Preferred start and end time must be given together",
                "INVALID_PREFERRED_RANGE"
            )
        if preferred_start_time is not None and preferred_start_time >= preferred_end_time:
            raise ValidationError("Preferred start must be before preferred end", "INVALID_PREFERRED_RANGE")

        with write_transaction(db, "joining waitlist"):
            BusinessService.get_business(db, business_id)
            service = BusinessService.get_service(db, business_id, service_id)
            if not service.is_active:
                raise ValidationError("Service is not currently offered", "SERVICE_INACTIVE")

            duplicate = db.query(WaitlistEntry).filter(
                WaitlistEntry.client_id == actor.user_id,
                WaitlistEntry.business_id == business_id,
                WaitlistEntry.service_id == service_id,
                WaitlistEntry.requested_date == requested_date,
                WaitlistEntry.status.in_(ACTIVE_WAITLIST_STATUSES)
            ).first()
            if duplicate:
                raise ConflictError("You are already on the waitlist for this day", "WAITLIST_DUPLICATE")

            entry = WaitlistEntry(
                business_id=business_id,
                service_id=service_id,
                client_id=actor.user_id,
                requested_date=requested_date,
                preferred_start_time=preferred_start_time,
                preferred_end_time=preferred_end_time,
                status=WaitlistStatus.WAITING.value,
            )
            db.add(entry)

        db.refresh(entry)
        logger.info(f"Client {actor.user_id} joined waitlist for {requested_date} (business {business_id})")
        return entry

    @staticmethod
    def dispatch_freed_slot(
            db: Session,
            business_id: UUID,
            service_id: UUID,
            freed_date: date,
            start_time,
            resource_id: Optional[UUID] = None,
            now: Optional[datetime] = None
    ) -> Optional[WaitlistEntry]:
        """
        Offer a freed slot to the oldest eligible waiting entry.

        Returns the entry holding the offer for that slot (new or already
        live), or None when nobody is eligible.
        """
        now = utc_instant(now)
        start_time = _as_clock(start_time)

        with write_transaction(db, "dispatching freed slot"):
            BusinessService.lock_schedule(db, business_id)
            WaitlistDispatcher._expire_and_redispatch(db, business_id, now)
            entry = WaitlistDispatcher._offer_slot(db, business_id, service_id, freed_date, start_time, resource_id, now)

        if entry is not None:
            db.refresh(entry)
        return entry

    @staticmethod
    def expire_offers(db: Session, now: Optional[datetime] = None) -> int:
        """
        Sweep lapsed offers across all businesses and pass each freed slot on
        to the next eligible entry. Returns the number of offers expired.
        """
        now = utc_instant(now)

        with store_errors(db, "finding lapsed waitlist offers"):
            business_ids = [
                row[0] for row in db.query(WaitlistEntry.business_id).filter(
                    WaitlistEntry.status == WaitlistStatus.OFFERED.value,
                    WaitlistEntry.offer_expires_at <= now
                ).distinct().all()
            ]

        expired = 0
        for business_id in business_ids:
            with write_transaction(db, "expiring waitlist offers"):
                BusinessService.lock_schedule(db, business_id)
                lapsed = WaitlistDispatcher._expire_and_redispatch(db, business_id, now)
            expired += len(lapsed)

        if expired:
            logger.info(f"Expired {expired} waitlist offers across {len(business_ids)} businesses")
        return expired

    @staticmethod
    def claim_offer(
            db: Session,
            client_id: UUID,
            business_id: UUID,
            service_id: UUID,
            appointment_date: date,
            start_time: time,
            reservation_id: UUID,
            now: Optional[datetime] = None
    ) -> Optional[WaitlistEntry]:
        """
        Convert the client's live offer for exactly this slot into a booking.

        Runs inside the caller's reservation transaction; does not commit.
        """
        now = utc_instant(now)

        entry = db.query(WaitlistEntry).filter(
            WaitlistEntry.client_id == client_id,
            WaitlistEntry.business_id == business_id,
            WaitlistEntry.service_id == service_id,
            WaitlistEntry.status == WaitlistStatus.OFFERED.value,
            WaitlistEntry.offered_date == appointment_date,
            WaitlistEntry.offered_start_time == start_time,
            WaitlistEntry.offer_expires_at > now
        ).first()

        if entry is None:
            return None

        entry.status = WaitlistStatus.BOOKED.value
        entry.reservation_id = reservation_id
        db.flush()
        logger.info(f"Waitlist entry {entry.id} booked as reservation {reservation_id}")
        return entry

    @staticmethod
    def remove_entry(db: Session, actor: Actor, entry_id: UUID, now: Optional[datetime] = None) -> WaitlistEntry:
        now = utc_instant(now)

        with write_transaction(db, "removing waitlist entry"):
            entry = db.query(WaitlistEntry).filter(WaitlistEntry.id == entry_id).first()
            if not entry:
                raise NotFoundError("Waitlist entry not found", "WAITLIST_ENTRY_NOT_FOUND")

            if actor.role == ActorRole.CLIENT:
                if entry.client_id != actor.user_id:
                    raise ForbiddenError("Not your waitlist entry", "INSUFFICIENT_PERMISSIONS")
            else:
                business = BusinessService.get_business(db, entry.business_id)
                BusinessService.authorize_business_actor(db, business, actor)

            if entry.status not in ACTIVE_WAITLIST_STATUSES:
                raise ConflictError(f"Waitlist entry is already {entry.status}", "INVALID_TRANSITION")

            BusinessService.lock_schedule(db, entry.business_id)
            was_offered = entry.status == WaitlistStatus.OFFERED.value
            entry.status = WaitlistStatus.REMOVED.value
            db.flush()

            # A withdrawn offer frees its slot for the next in line
            if was_offered:
                WaitlistDispatcher._offer_slot(
                    db,
                    entry.business_id,
                    entry.service_id,
                    entry.offered_date,
                    entry.offered_start_time,
                    entry.offered_resource_id,
                    now,
                )

        db.refresh(entry)
        return entry

    @staticmethod
    def list_client_entries(db: Session, client_id: UUID, active_only: bool = False) -> List[WaitlistEntry]:
        with store_errors(db, "listing waitlist entries"):
            query = db.query(WaitlistEntry).filter(WaitlistEntry.client_id == client_id)
            if active_only:
                query = query.filter(WaitlistEntry.status.in_(ACTIVE_WAITLIST_STATUSES))
            return query.order_by(WaitlistEntry.requested_date, WaitlistEntry.created_at).all()

    # ------------------------------------------------------------------
    # Internals, always called with the business lock held
    # ------------------------------------------------------------------

    @staticmethod
    def _expire_and_redispatch(db: Session, business_id: UUID, now: datetime) -> List[WaitlistEntry]:
        """Expire lapsed offers, then hand each of their slots to the next in line"""
        lapsed = db.query(WaitlistEntry).filter(
            WaitlistEntry.business_id == business_id,
            WaitlistEntry.status == WaitlistStatus.OFFERED.value,
            WaitlistEntry.offer_expires_at <= now
        ).order_by(WaitlistEntry.offer_expires_at).all()

        for entry in lapsed:
            entry.status = WaitlistStatus.EXPIRED.value
            logger.info(f"Waitlist offer {entry.id} for {entry.offered_date} {entry.offered_start_time} expired")
        db.flush()

        for entry in lapsed:
            WaitlistDispatcher._offer_slot(
                db,
                business_id,
                entry.service_id,
                entry.offered_date,
                entry.offered_start_time,
                entry.offered_resource_id,
                now,
            )

        return lapsed

    @staticmethod
    def _offer_slot(
            db: Session,
            business_id: UUID,
            service_id: UUID,
            slot_date: date,
            start_time: time,
            resource_id: Optional[UUID],
            now: datetime
    ) -> Optional[WaitlistEntry]:
        live_offer = db.query(WaitlistEntry).filter(
            WaitlistEntry.business_id == business_id,
            WaitlistEntry.service_id == service_id,
            WaitlistEntry.status == WaitlistStatus.OFFERED.value,
            WaitlistEntry.offered_date == slot_date,
            WaitlistEntry.offered_start_time == start_time,
            WaitlistEntry.offered_resource_id.is_(None) if resource_id is None
            else WaitlistEntry.offered_resource_id == resource_id,
            WaitlistEntry.offer_expires_at > now
        ).first()
        if live_offer:
            return live_offer

        service = BusinessService.get_service(db, business_id, service_id)
        start_minutes = time_to_minutes(start_time)
        end_minutes = start_minutes + service.duration_minutes
        if not service.is_active or end_minutes >= MINUTES_PER_DAY:
            return None

        if find_conflicting_reservations(
                db,
                business_id,
                slot_date,
                start_time,
                minutes_to_clock(end_minutes),
                resource_id=resource_id,
        ):
            logger.info(f"Slot {slot_date} {start_time} was re-booked before dispatch, nothing to offer")
            return None

        entry = db.query(WaitlistEntry).filter(
            WaitlistEntry.business_id == business_id,
            WaitlistEntry.service_id == service_id,
            WaitlistEntry.requested_date == slot_date,
            WaitlistEntry.status == WaitlistStatus.WAITING.value,
            or_(
                WaitlistEntry.preferred_start_time.is_(None),
                and_(
                    WaitlistEntry.preferred_start_time <= start_time,
                    WaitlistEntry.preferred_end_time >= start_time
                )
            )
        ).order_by(WaitlistEntry.created_at, WaitlistEntry.id).first()

        if entry is None:
            logger.info(f"No waiting entries for {slot_date} {start_time} (business {business_id})")
            return None

        entry.status = WaitlistStatus.OFFERED.value
        entry.offered_date = slot_date
        entry.offered_start_time = start_time
        entry.offered_resource_id = resource_id
        entry.offer_expires_at = now + WaitlistDispatcher.offer_window()
        db.flush()

        logger.info(f"Offered {slot_date} {start_time} to waitlist entry {entry.id} (client {entry.client_id})")
        return entry
