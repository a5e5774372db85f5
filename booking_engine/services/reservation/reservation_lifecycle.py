# ============================================================================
# booking_engine/services/reservation/reservation_lifecycle.py
# Reservation state machine and role-based transition rules
# ============================================================================
"""
    pending ──► confirmed ──► completed
       │            │
       └────────────┴──► cancelled | no_show

completed, cancelled and no_show are terminal. A cancelled reservation is
never re-activated; the client books a new one.
"""
import enum
from dataclasses import dataclass
from typing import Dict, FrozenSet
from uuid import UUID

from booking_engine.core.exceptions import ConflictError, ForbiddenError, ValidationError


class ReservationStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class ActorRole(str, enum.Enum):
    CLIENT = "client"
    OWNER = "owner"
    STAFF = "staff"


@dataclass(frozen=True)
class Actor:
    """Who is calling. Identity is established upstream, roles are checked here."""
    user_id: UUID
    role: ActorRole

    @property
    def is_business_side(self) -> bool:
        return self.role in (ActorRole.OWNER, ActorRole.STAFF)


ACTIVE_STATUSES: FrozenSet[ReservationStatus] = frozenset({
    ReservationStatus.PENDING,
    ReservationStatus.CONFIRMED,
})

TERMINAL_STATUSES: FrozenSet[ReservationStatus] = frozenset({
    ReservationStatus.COMPLETED,
    ReservationStatus.CANCELLED,
    ReservationStatus.NO_SHOW,
})

_BUSINESS_TARGETS = frozenset({
    ReservationStatus.CONFIRMED,
    ReservationStatus.COMPLETED,
    ReservationStatus.CANCELLED,
    ReservationStatus.NO_SHOW,
})

ROLE_TRANSITIONS: Dict[ActorRole, FrozenSet[ReservationStatus]] = {
    ActorRole.CLIENT: frozenset({ReservationStatus.CANCELLED}),
    ActorRole.OWNER: _BUSINESS_TARGETS,
    ActorRole.STAFF: _BUSINESS_TARGETS,
}


def parse_status(value) -> ReservationStatus:
    try:
        return ReservationStatus(value)
    except ValueError:
        raise ValidationError(f"Invalid reservation status: {value!r}", "INVALID_STATUS")


def initial_status(auto_confirm: bool) -> ReservationStatus:
    """Auto-accept businesses confirm immediately, the rest confirm manually"""
    return ReservationStatus.CONFIRMED if auto_confirm else ReservationStatus.PENDING


def check_transition(current, target, role: ActorRole) -> ReservationStatus:
    """
    Validate a status change requested by an actor of the given role.

    Raises:
        ConflictError: the reservation's state does not allow the change
        ForbiddenError: the role may not request this status

    Returns:
        The target status
    """
    current = parse_status(current)
    target = parse_status(target)

    # Clients get the same answer for any non-cancel request
    if role == ActorRole.CLIENT and target not in ROLE_TRANSITIONS[role]:
        raise ForbiddenError("Clients can only cancel bookings", "CLIENT_CAN_ONLY_CANCEL")

    if current in TERMINAL_STATUSES:
        raise ConflictError(
            f"Reservation is already {current.value} and can no longer change",
            "INVALID_TRANSITION"
        )

    if target == ReservationStatus.PENDING or target == current:
        raise ConflictError(
            f"Cannot move a {current.value} reservation to {target.value}",
            "INVALID_TRANSITION"
        )

    if target not in ROLE_TRANSITIONS[role]:
        raise ForbiddenError(
            f"Role {role.value} may not set status {target.value}",
            "INSUFFICIENT_PERMISSIONS"
        )

    return target


def can_reschedule(current) -> bool:
    return parse_status(current) in ACTIVE_STATUSES
