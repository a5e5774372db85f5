# booking_engine/models/waitlist.py
from sqlalchemy import Column, String, Date, Time, DateTime, ForeignKey, Index, Uuid
import uuid

from booking_engine.models.base import Base, utcnow


class WaitlistEntry(Base):
    """A client waiting for a slot to free up on a given day"""
    __tablename__ = "waitlist_entries"
    __table_args__ = (
        Index(
            "ix_waitlist_lookup",
            "business_id", "service_id", "requested_date", "status", "created_at",
        ),
        Index("ix_waitlist_offered_slot", "business_id", "service_id", "offered_date", "offered_start_time"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid(as_uuid=True), ForeignKey("businesses.id"), nullable=False)
    service_id = Column(Uuid(as_uuid=True), ForeignKey("services.id"), nullable=False)
    client_id = Column(Uuid(as_uuid=True), nullable=False, index=True)

    requested_date = Column(Date, nullable=False)
    # Optional preferred window; both set or both null
    preferred_start_time = Column(Time, nullable=True)
    preferred_end_time = Column(Time, nullable=True)

    status = Column(String(20), nullable=False, default="waiting")  # waiting, offered, expired, booked, removed

    # Set when offered
    offered_date = Column(Date, nullable=True)
    offered_start_time = Column(Time, nullable=True)
    offered_resource_id = Column(Uuid(as_uuid=True), ForeignKey("staff_members.id"), nullable=True)
    offer_expires_at = Column(DateTime(timezone=True), nullable=True)

    # Set when booked
    reservation_id = Column(Uuid(as_uuid=True), ForeignKey("reservations.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<WaitlistEntry(id={self.id}, date={self.requested_date}, status={self.status})>"
