# booking_engine/models/review.py
from sqlalchemy import Column, Integer, Text, Boolean, DateTime, ForeignKey, Index, CheckConstraint, Uuid
import uuid

from booking_engine.models.base import Base, utcnow


class Review(Base):
    """Client review of a business. Soft-deleted via is_visible, never removed."""
    __tablename__ = "reviews"
    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating_range"),
        Index("ix_reviews_business_visible", "business_id", "is_visible"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid(as_uuid=True), ForeignKey("businesses.id"), nullable=False)
    client_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    reservation_id = Column(Uuid(as_uuid=True), ForeignKey("reservations.id"), nullable=True, unique=True)

    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    is_visible = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Review(id={self.id}, business_id={self.business_id}, rating={self.rating})>"
