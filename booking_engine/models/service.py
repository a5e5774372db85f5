# booking_engine/models/service.py
"""
Service and staff models - what can be booked and who performs it.
"""
from sqlalchemy import Column, String, Numeric, Integer, ForeignKey, Boolean, DateTime, CheckConstraint, Uuid
from sqlalchemy.orm import relationship
import uuid

from booking_engine.models.base import Base, utcnow


class Service(Base):
    """
    A bookable service. Duration changes never touch existing reservations,
    each reservation freezes its own duration when it is created.
    """
    __tablename__ = "services"
    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_services_duration_positive"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    name = Column(String(200), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=True)

    is_active = Column(Boolean, default=True, index=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    business = relationship("Business")

    def __repr__(self):
        return f"<Service(id={self.id}, name={self.name}, business_id={self.business_id})>"

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            "id": str(self.id),
            "business_id": str(self.business_id),
            "name": self.name,
            "duration_minutes": self.duration_minutes,
            "price": float(self.price) if self.price is not None else None,
            "is_active": self.is_active,
        }


class StaffMember(Base):
    """A schedulable resource within a business"""
    __tablename__ = "staff_members"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    # Platform user behind this staff member, if they can log in
    user_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    name = Column(String(200), nullable=False)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)

    def __repr__(self):
        return f"<StaffMember(id={self.id}, name={self.name}, business_id={self.business_id})>"
