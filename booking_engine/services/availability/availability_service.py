# booking_engine/services/availability/availability_service.py
from collections import defaultdict
from typing import List, Dict, Optional
from datetime import date, datetime, timedelta
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from booking_engine.config.settings import get_settings
from booking_engine.core.exceptions import ValidationError
from booking_engine.core.transactions import store_errors
from booking_engine.models.business import Business, BusinessHours
from booking_engine.models.reservation import Reservation
from booking_engine.services.availability.availability_calculator import TimeSlot, calculate_available_slots
from booking_engine.services.availability.conflict_detector import (
    BookedInterval,
    RELEASED_STATUSES,
    load_booked_intervals,
    resource_scope_filter,
)
from booking_engine.services.business.business_service import BusinessService
from booking_engine.utils.time_math import MINUTES_PER_DAY, day_of_week, local_now, time_to_minutes

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Turns stored hours and reservations into bookable slots"""

    @staticmethod
    def slot_granularity(business: Business) -> int:
        return business.slot_granularity_minutes or get_settings().SLOT_GRANULARITY_MINUTES

    @staticmethod
    def now_minutes_for(business: Business, appointment_date: date, now: Optional[datetime] = None) -> Optional[int]:
        """
        The same-day cutoff input for the calculator, in business local time.

        None for future days; past days are treated as fully elapsed.
        """
        local = local_now(business.timezone, now)
        if appointment_date > local.date():
            return None
        if appointment_date < local.date():
            return MINUTES_PER_DAY
        return local.hour * 60 + local.minute

    @staticmethod
    def get_available_slots(
            db: Session,
            business_id: UUID,
            service_id: UUID,
            appointment_date: date,
            resource_id: Optional[UUID] = None,
            now: Optional[datetime] = None
    ) -> List[TimeSlot]:
        """
        Bookable slots for one service on one day.

        Raises NotFoundError only for an unknown business, service or staff
        member. Closed days and inactive services simply have no slots.
        """
        settings = get_settings()

        with store_errors(db, "loading availability"):
            business = BusinessService.get_business(db, business_id)
            service = BusinessService.get_service(db, business_id, service_id)
            if resource_id is not None:
                BusinessService.get_staff_member(db, business_id, resource_id)

            if not service.is_active:
                logger.info(f"Service {service_id} is inactive, no slots for {appointment_date}")
                return []

            open_time, close_time = BusinessService.get_day_hours(db, business_id, appointment_date)
            if not open_time or not close_time:
                return []

            booked = load_booked_intervals(db, business_id, appointment_date, resource_id)

        slots = calculate_available_slots(
            open_time,
            close_time,
            service.duration_minutes,
            booked,
            slot_granularity=AvailabilityService.slot_granularity(business),
            now_minutes=AvailabilityService.now_minutes_for(business, appointment_date, now),
            buffer_minutes=settings.SAME_DAY_BUFFER_MINUTES,
        )

        logger.info(
            f"Calculated {len(slots)} available slots for {appointment_date} "
            f"({day_of_week(appointment_date).label}), service duration: {service.duration_minutes} mins, "
            f"business hours: {open_time}-{close_time}"
        )
        return slots

    @staticmethod
    def get_slot_counts(
            db: Session,
            business_id: UUID,
            service_id: UUID,
            start_date: date,
            end_date: date,
            resource_id: Optional[UUID] = None,
            now: Optional[datetime] = None
    ) -> Dict[date, int]:
        """Number of free slots per day over a date range (calendar heat map)"""
        settings = get_settings()

        if end_date < start_date:
            raise ValidationError("end_date must not be before start_date", "INVALID_DATE_RANGE")
        if (end_date - start_date).days + 1 > settings.MAX_SLOT_COUNT_RANGE_DAYS:
            raise ValidationError(
                f"Date range cannot exceed {settings.MAX_SLOT_COUNT_RANGE_DAYS} days",
                "INVALID_DATE_RANGE"
            )

        with store_errors(db, "loading slot counts"):
            business = BusinessService.get_business(db, business_id)
            service = BusinessService.get_service(db, business_id, service_id)
            if resource_id is not None:
                BusinessService.get_staff_member(db, business_id, resource_id)

            hours_by_day = {
                row.day_of_week: row
                for row in db.query(BusinessHours).filter(BusinessHours.business_id == business_id).all()
            }

            query = db.query(Reservation).filter(
                Reservation.business_id == business_id,
                Reservation.appointment_date >= start_date,
                Reservation.appointment_date <= end_date,
                Reservation.status.notin_(RELEASED_STATUSES),
            )
            scope = resource_scope_filter(resource_id)
            if scope is not None:
                query = query.filter(scope)

            booked_by_date = defaultdict(list)
            for reservation in query.all():
                booked_by_date[reservation.appointment_date].append(BookedInterval.from_reservation(reservation))

        counts = {}
        current = start_date
        while current <= end_date:
            row = hours_by_day.get(int(day_of_week(current)))
            if not service.is_active or row is None or row.is_closed:
                counts[current] = 0
            else:
                counts[current] = len(calculate_available_slots(
                    row.open_time,
                    row.close_time,
                    service.duration_minutes,
                    booked_by_date.get(current, []),
                    slot_granularity=AvailabilityService.slot_granularity(business),
                    now_minutes=AvailabilityService.now_minutes_for(business, current, now),
                    buffer_minutes=settings.SAME_DAY_BUFFER_MINUTES,
                ))
            current += timedelta(days=1)

        return counts

    @staticmethod
    def is_open_now(db: Session, business_id: UUID, now: Optional[datetime] = None) -> bool:
        """Whether the business is inside its opening hours, in its own timezone"""
        with store_errors(db, "checking opening hours"):
            business = BusinessService.get_business(db, business_id)
            local = local_now(business.timezone, now)
            open_time, close_time = BusinessService.get_day_hours(db, business_id, local.date())

        if not open_time or not close_time:
            return False

        try:
            current = local.hour * 60 + local.minute
            return time_to_minutes(open_time) <= current < time_to_minutes(close_time)
        except ValueError:
            logger.warning(f"Malformed business hours for business {business_id}: {open_time}-{close_time}")
            return False
