# ============================================================================
# booking_engine/services/availability/conflict_detector.py
# Overlap detection for reservations, in memory and against the store
# ============================================================================
"""
All intervals are half-open, [start, end): a slot ending at 14:15 and one
starting at 14:15 never conflict.

Resource scope: a candidate without a resource competes with every booking of
the business. A candidate on a resource competes with bookings on the same
resource and with bookings that have no resource, since those occupy the
whole business.
"""
from dataclasses import dataclass
from datetime import date, time
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from booking_engine.models.reservation import Reservation
from booking_engine.utils.time_math import TimeLike, time_to_minutes

# Statuses that free the slot they held
RELEASED_STATUSES = ("cancelled",)


@dataclass(frozen=True)
class BookedInterval:
    """An occupied [start, end) interval in minutes after midnight"""
    start: int
    end: int
    resource_id: Optional[UUID] = None
    reservation_id: Optional[UUID] = None

    @classmethod
    def from_times(
            cls,
            start_time: TimeLike,
            end_time: TimeLike,
            resource_id: Optional[UUID] = None,
            reservation_id: Optional[UUID] = None
    ) -> "BookedInterval":
        return cls(time_to_minutes(start_time), time_to_minutes(end_time), resource_id, reservation_id)

    @classmethod
    def from_reservation(cls, reservation: Reservation) -> "BookedInterval":
        return cls.from_times(
            reservation.start_time,
            reservation.end_time,
            resource_id=reservation.resource_id,
            reservation_id=reservation.id,
        )


def intervals_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """Half-open overlap test"""
    return a_start < b_end and b_start < a_end


def shares_resource(candidate_resource: Optional[UUID], existing_resource: Optional[UUID]) -> bool:
    if candidate_resource is None or existing_resource is None:
        return True
    return candidate_resource == existing_resource


def has_conflict(
        candidate: BookedInterval,
        existing_reservations: Iterable[BookedInterval],
        resource_id: Optional[UUID] = None,
        exclude_reservation_id: Optional[UUID] = None
) -> bool:
    """True if the candidate overlaps any existing interval in its resource scope"""
    resource_id = resource_id if resource_id is not None else candidate.resource_id

    for existing in existing_reservations:
        if exclude_reservation_id is not None and existing.reservation_id == exclude_reservation_id:
            continue
        if not shares_resource(resource_id, existing.resource_id):
            continue
        if intervals_overlap(candidate.start, candidate.end, existing.start, existing.end):
            return True

    return False


def resource_scope_filter(resource_id: Optional[UUID]):
    """SQL counterpart of shares_resource"""
    if resource_id is None:
        return None
    return or_(Reservation.resource_id == resource_id, Reservation.resource_id.is_(None))


def load_booked_intervals(
        db: Session,
        business_id: UUID,
        appointment_date: date,
        resource_id: Optional[UUID] = None
) -> List[BookedInterval]:
    """Non-cancelled reservations of a business day, within the resource scope"""
    query = db.query(Reservation).filter(
        Reservation.business_id == business_id,
        Reservation.appointment_date == appointment_date,
        Reservation.status.notin_(RELEASED_STATUSES),
    )
    scope = resource_scope_filter(resource_id)
    if scope is not None:
        query = query.filter(scope)

    return [BookedInterval.from_reservation(r) for r in query.order_by(Reservation.start_time).all()]


def find_conflicting_reservations(
        db: Session,
        business_id: UUID,
        appointment_date: date,
        start_time: time,
        end_time: time,
        resource_id: Optional[UUID] = None,
        exclude_reservation_id: Optional[UUID] = None
) -> List[Reservation]:
    """
    Store-side overlap query. Must run inside the write transaction, after the
    business lock is taken, so the answer still holds at commit time.
    """
    query = db.query(Reservation).filter(
        Reservation.business_id == business_id,
        Reservation.appointment_date == appointment_date,
        Reservation.status.notin_(RELEASED_STATUSES),
        Reservation.start_time < end_time,
        Reservation.end_time > start_time,
    )
    scope = resource_scope_filter(resource_id)
    if scope is not None:
        query = query.filter(scope)
    if exclude_reservation_id is not None:
        query = query.filter(Reservation.id != exclude_reservation_id)

    return query.all()
