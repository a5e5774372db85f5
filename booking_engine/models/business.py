# booking_engine/models/business.py
"""
Business Model - scheduling view of a salon
Profile, media and billing data live with the platform, not here.
"""
from sqlalchemy import Column, String, Boolean, DateTime, Integer, Numeric, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
import uuid

from booking_engine.models.base import Base, utcnow


class Business(Base):
    __tablename__ = "businesses"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    name = Column(String(200), nullable=False)

    # Scheduling configuration (None = use application default)
    timezone = Column(String(50), default="UTC", nullable=False)
    auto_confirm = Column(Boolean, nullable=True)
    slot_granularity_minutes = Column(Integer, nullable=True)

    # Denormalized rating projection, always recomputed from visible reviews
    rating_average = Column(Numeric(3, 2), default=0, nullable=False)
    rating_count = Column(Integer, default=0, nullable=False)

    # Bumped by every schedule write; doubles as the per-business write lock
    schedule_version = Column(Integer, default=0, nullable=False)

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    hours = relationship(
        "BusinessHours",
        back_populates="business",
        cascade="all, delete-orphan",
        order_by="BusinessHours.day_of_week",
    )

    def __repr__(self):
        return f"<Business(id={self.id}, name={self.name})>"

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            "id": str(self.id),
            "owner_id": str(self.owner_id),
            "name": self.name,
            "timezone": self.timezone,
            "auto_confirm": self.auto_confirm,
            "slot_granularity_minutes": self.slot_granularity_minutes,
            "rating_average": float(self.rating_average or 0),
            "rating_count": self.rating_count or 0,
            "is_active": self.is_active,
            "business_hours": {h.weekday.label: h.to_dict() for h in self.hours},
        }


class BusinessHours(Base):
    __tablename__ = "business_hours"
    __table_args__ = (
        UniqueConstraint("business_id", "day_of_week", name="uq_business_hours_day"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    business_id = Column(Uuid(as_uuid=True), ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    day_of_week = Column(Integer, nullable=False)  # 0=Monday, 6=Sunday
    open_time = Column(String(5), nullable=True)  # HH:MM format
    close_time = Column(String(5), nullable=True)  # HH:MM format
    is_closed = Column(Boolean, default=False, nullable=False)

    business = relationship("Business", back_populates="hours")

    @property
    def weekday(self):
        from booking_engine.utils.time_math import Weekday
        return Weekday(self.day_of_week)

    def to_dict(self):
        if self.is_closed:
            return {"closed": True}
        return {"closed": False, "opening": self.open_time, "closing": self.close_time}

    def __repr__(self):
        return f"<BusinessHours(business_id={self.business_id}, day={self.day_of_week})>"
