# booking_engine/models/reservation.py
from sqlalchemy import Column, String, Integer, Text, Date, Time, DateTime, ForeignKey, Index, Uuid
from sqlalchemy.orm import relationship
import uuid

from booking_engine.models.base import Base, utcnow


class Reservation(Base):
    __tablename__ = "reservations"
    __table_args__ = (
        Index("ix_reservations_business_date", "business_id", "appointment_date"),
        Index("ix_reservations_resource_date", "resource_id", "appointment_date"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # References
    business_id = Column(Uuid(as_uuid=True), ForeignKey("businesses.id"), nullable=False)
    service_id = Column(Uuid(as_uuid=True), ForeignKey("services.id"), nullable=False)
    resource_id = Column(Uuid(as_uuid=True), ForeignKey("staff_members.id"), nullable=True)
    client_id = Column(Uuid(as_uuid=True), nullable=False, index=True)

    # Slot, in the business's local time. end_time = start_time + duration_minutes
    appointment_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    duration_minutes = Column(Integer, nullable=False)  # frozen at creation

    # Status tracking
    status = Column(String(20), nullable=False, default="pending")  # pending, confirmed, completed, cancelled, no_show

    client_notes = Column(Text, nullable=True)
    business_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    events = relationship(
        "ReservationEvent",
        back_populates="reservation",
        order_by="ReservationEvent.created_at",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Reservation(id={self.id}, date={self.appointment_date}, start={self.start_time}, status={self.status})>"


class ReservationEvent(Base):
    """Audit trail of every lifecycle change, kept for notifications and disputes"""
    __tablename__ = "reservation_events"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    reservation_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("reservations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    actor_id = Column(Uuid(as_uuid=True), nullable=True)
    actor_role = Column(String(20), nullable=True)  # client, owner, staff, system
    event_type = Column(String(30), nullable=False)  # created, status_changed, rescheduled

    from_status = Column(String(20), nullable=True)
    to_status = Column(String(20), nullable=True)

    # Populated for reschedules
    previous_date = Column(Date, nullable=True)
    previous_start_time = Column(Time, nullable=True)

    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    reservation = relationship("Reservation", back_populates="events")
