# booking_engine/services/business/business_service.py
"""Business-hours, service and staff reader, plus owner-side settings"""
from datetime import date
from typing import Optional, Tuple
from uuid import UUID
import logging

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from booking_engine.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from booking_engine.core.transactions import write_transaction
from booking_engine.models.business import Business, BusinessHours
from booking_engine.models.service import Service, StaffMember
from booking_engine.schemas.business import BusinessHoursInput, BusinessSettingsUpdate
from booking_engine.services.reservation.reservation_lifecycle import Actor, ActorRole
from booking_engine.utils.time_math import Weekday, day_of_week

logger = logging.getLogger(__name__)


class BusinessService:
    """Read access to the business profile and explicit authorization checks"""

    @staticmethod
    def get_business(db: Session, business_id: UUID) -> Business:
        business = db.query(Business).filter(
            Business.id == business_id,
            Business.is_active == True
        ).first()
        if not business:
            raise NotFoundError("Business not found", "BUSINESS_NOT_FOUND")
        return business

    @staticmethod
    def get_service(db: Session, business_id: UUID, service_id: UUID) -> Service:
        """Get a service and verify it belongs to the business"""
        service = db.query(Service).filter(Service.id == service_id).first()
        if not service or service.business_id != business_id:
            raise NotFoundError("Service not found for this business", "SERVICE_NOT_FOUND")
        return service

    @staticmethod
    def get_staff_member(db: Session, business_id: UUID, resource_id: UUID) -> StaffMember:
        staff = db.query(StaffMember).filter(
            StaffMember.id == resource_id,
            StaffMember.business_id == business_id,
            StaffMember.is_active == True
        ).first()
        if not staff:
            raise NotFoundError("Staff member not found for this business", "RESOURCE_NOT_FOUND")
        return staff

    @staticmethod
    def get_day_hours(db: Session, business_id: UUID, day: date) -> Tuple[Optional[str], Optional[str]]:
        """Opening and closing for the weekday of `day`, (None, None) when closed"""
        row = db.query(BusinessHours).filter(
            BusinessHours.business_id == business_id,
            BusinessHours.day_of_week == int(day_of_week(day))
        ).first()

        if not row or row.is_closed:
            return None, None
        return row.open_time, row.close_time

    @staticmethod
    def lock_schedule(db: Session, business_id: UUID) -> None:
        """
        Take the per-business write lock for the rest of the transaction.

        The conditional UPDATE holds the row lock in PostgreSQL and the
        database write lock in SQLite, so concurrent schedule writers of one
        business run one after another.
        """
        updated = db.query(Business).filter(Business.id == business_id).update(
            {Business.schedule_version: Business.schedule_version + 1},
            synchronize_session=False
        )
        if not updated:
            raise NotFoundError("Business not found", "BUSINESS_NOT_FOUND")

    # ------------------------------------------------------------------
    # Authorization
    # ------------------------------------------------------------------

    @staticmethod
    def is_business_member(db: Session, business: Business, actor: Actor) -> bool:
        """Owner of the business, or an active staff member of it"""
        if actor.role == ActorRole.OWNER:
            return business.owner_id == actor.user_id
        if actor.role == ActorRole.STAFF:
            return db.query(StaffMember).filter(
                StaffMember.business_id == business.id,
                StaffMember.user_id == actor.user_id,
                StaffMember.is_active == True
            ).first() is not None
        return False

    @staticmethod
    def authorize_business_actor(db: Session, business: Business, actor: Actor) -> None:
        if not BusinessService.is_business_member(db, business, actor):
            raise ForbiddenError("Insufficient permissions for this business", "INSUFFICIENT_PERMISSIONS")

    @staticmethod
    def authorize_owner(business: Business, actor: Actor) -> None:
        if actor.role != ActorRole.OWNER or business.owner_id != actor.user_id:
            raise ForbiddenError("Only the business owner can change this", "INSUFFICIENT_PERMISSIONS")

    # ------------------------------------------------------------------
    # Owner-side settings
    # ------------------------------------------------------------------

    @staticmethod
    def ensure_week_rows(db: Session, business: Business) -> dict:
        """
        Idempotently make sure every weekday has an hours row (closed by
        default). Safe to call any number of times.
        """
        rows = {row.day_of_week: row for row in business.hours}
        for day in Weekday:
            if int(day) not in rows:
                row = BusinessHours(business_id=business.id, day_of_week=int(day), is_closed=True)
                business.hours.append(row)
                rows[int(day)] = row
        db.flush()
        return rows

    @staticmethod
    def ensure_business_settings(db: Session, actor: Actor, business_id: UUID) -> Business:
        """Create any missing hours rows in one locked pass; no create-then-retry"""
        with write_transaction(db, "ensuring business settings"):
            business = BusinessService.get_business(db, business_id)
            BusinessService.authorize_owner(business, actor)
            BusinessService.lock_schedule(db, business_id)
            BusinessService.ensure_week_rows(db, business)

        db.refresh(business)
        return business

    @staticmethod
    def set_business_hours(db: Session, actor: Actor, business_id: UUID, raw_hours: dict) -> Business:
        """Replace the weekly opening hours from any accepted input shape"""
        try:
            hours = BusinessHoursInput.model_validate(raw_hours)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid business hours: {e.errors()[0]['msg']}", "INVALID_BUSINESS_HOURS")

        with write_transaction(db, "updating business hours"):
            business = BusinessService.get_business(db, business_id)
            BusinessService.authorize_owner(business, actor)
            BusinessService.lock_schedule(db, business_id)

            rows = BusinessService.ensure_week_rows(db, business)
            for day, day_hours in hours.by_weekday().items():
                row = rows[int(day)]
                row.is_closed = day_hours.closed
                row.open_time = None if day_hours.closed else day_hours.opening
                row.close_time = None if day_hours.closed else day_hours.closing

        db.refresh(business)
        logger.info(f"Updated business hours for business {business_id}")
        return business

    @staticmethod
    def update_settings(db: Session, actor: Actor, business_id: UUID, update: BusinessSettingsUpdate) -> Business:
        with write_transaction(db, "updating business settings"):
            business = BusinessService.get_business(db, business_id)
            BusinessService.authorize_owner(business, actor)

            for field, value in update.model_dump(exclude_unset=True).items():
                setattr(business, field, value)

        db.refresh(business)
        return business
