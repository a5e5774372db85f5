# booking_engine/models/__init__.py
from .base import Base
from .business import Business, BusinessHours
from .service import Service, StaffMember
from .reservation import Reservation, ReservationEvent
from .waitlist import WaitlistEntry
from .review import Review

__all__ = [
    "Base",
    "Business",
    "BusinessHours",
    "Service",
    "StaffMember",
    "Reservation",
    "ReservationEvent",
    "WaitlistEntry",
    "Review",
]
