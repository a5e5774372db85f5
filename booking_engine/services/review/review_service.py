# ============================================================================
# booking_engine/services/review/review_service.py
# ============================================================================
"""Service for client reviews. Every write recomputes the business rating."""
from datetime import datetime
from typing import Optional, Tuple, List
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from booking_engine.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from booking_engine.core.transactions import store_errors, write_transaction
from booking_engine.models.business import Business
from booking_engine.models.reservation import Reservation
from booking_engine.models.review import Review
from booking_engine.services.business.business_service import BusinessService
from booking_engine.services.reservation.reservation_lifecycle import Actor, ActorRole, ReservationStatus
from booking_engine.services.review.rating_projector import (
    RatingSummary,
    project_rating,
    recompute_business_rating,
    visible_ratings,
)
from booking_engine.utils.time_math import local_now

logger = logging.getLogger(__name__)


def validate_rating(rating) -> int:
    if not isinstance(rating, int) or isinstance(rating, bool) or not 1 <= rating <= 5:
        raise ValidationError("Rating must be an integer between 1 and 5", "INVALID_RATING")
    return rating


class ReviewService:
    """Handles review operations"""

    @staticmethod
    def reservation_is_past(business: Business, reservation: Reservation, now: Optional[datetime] = None) -> bool:
        """Completed, or started before now in the business's local time"""
        if reservation.status == ReservationStatus.COMPLETED.value:
            return True
        local = local_now(business.timezone, now).replace(tzinfo=None)
        return datetime.combine(reservation.appointment_date, reservation.start_time) < local

    @staticmethod
    def submit_review(
            db: Session,
            actor: Actor,
            business_id: UUID,
            rating: int,
            comment: Optional[str] = None,
            reservation_id: Optional[UUID] = None,
            now: Optional[datetime] = None
    ) -> Review:
        """
        Submit a review.

        With a reservation: it must be the client's, at this business, and
        completed or in the past; one review per reservation. Without one, the
        client needs at least one completed booking at the business.
        """
        if actor.role != ActorRole.CLIENT:
            raise ForbiddenError("Only clients can review businesses", "INSUFFICIENT_PERMISSIONS")
        validate_rating(rating)

        with write_transaction(db, "submitting review"):
            business = BusinessService.get_business(db, business_id)

            if reservation_id is not None:
                reservation = db.query(Reservation).filter(
                    Reservation.id == reservation_id,
                    Reservation.client_id == actor.user_id
                ).first()
                if not reservation:
                    raise NotFoundError("Reservation not found or does not belong to you", "RESERVATION_NOT_FOUND")
                if reservation.business_id != business_id:
                    raise ValidationError("Reservation does not belong to this business", "INVALID_BUSINESS")
                if not ReviewService.reservation_is_past(business, reservation, now):
                    raise ValidationError(
                        "You can only review completed or past bookings",
                        "BOOKING_NOT_COMPLETED"
                    )
                if db.query(Review).filter(Review.reservation_id == reservation_id).first():
                    raise ConflictError("Review already exists for this booking", "REVIEW_ALREADY_EXISTS")
            else:
                completed = db.query(Reservation.id).filter(
                    Reservation.business_id == business_id,
                    Reservation.client_id == actor.user_id,
                    Reservation.status == ReservationStatus.COMPLETED.value
                ).first()
                if not completed:
                    raise ValidationError(
                        "You can only review businesses you have completed bookings with",
                        "NO_COMPLETED_BOOKINGS"
                    )

            review = Review(
                business_id=business_id,
                client_id=actor.user_id,
                reservation_id=reservation_id,
                rating=rating,
                comment=comment,
            )
            db.add(review)
            db.flush()

            recompute_business_rating(db, business_id)

        db.refresh(review)
        logger.info(f"Client {actor.user_id} reviewed business {business_id} with {rating} stars")
        return review

    @staticmethod
    def _get_own_review(db: Session, actor: Actor, review_id: UUID) -> Review:
        review = db.query(Review).filter(
            Review.id == review_id,
            Review.client_id == actor.user_id,
            Review.is_visible == True
        ).first()
        if not review:
            raise NotFoundError("Review not found or you do not have permission to change it", "REVIEW_NOT_FOUND")
        return review

    @staticmethod
    def update_review(
            db: Session,
            actor: Actor,
            review_id: UUID,
            rating: Optional[int] = None,
            comment: Optional[str] = None
    ) -> Review:
        if rating is not None:
            validate_rating(rating)

        with write_transaction(db, "updating review"):
            review = ReviewService._get_own_review(db, actor, review_id)
            if rating is not None:
                review.rating = rating
            if comment is not None:
                review.comment = comment
            db.flush()

            recompute_business_rating(db, review.business_id)

        db.refresh(review)
        return review

    @staticmethod
    def delete_review(db: Session, actor: Actor, review_id: UUID) -> Review:
        """Soft delete: the review is hidden and drops out of the rating"""
        with write_transaction(db, "deleting review"):
            review = ReviewService._get_own_review(db, actor, review_id)
            review.is_visible = False
            db.flush()

            recompute_business_rating(db, review.business_id)

        db.refresh(review)
        logger.info(f"Review {review_id} hidden by its author")
        return review

    @staticmethod
    def list_business_reviews(db: Session, business_id: UUID) -> Tuple[List[Review], RatingSummary]:
        """Visible reviews, newest first, with stats computed live"""
        with store_errors(db, "listing reviews"):
            BusinessService.get_business(db, business_id)
            reviews = db.query(Review).filter(
                Review.business_id == business_id,
                Review.is_visible == True
            ).order_by(Review.created_at.desc()).all()
            stats = project_rating(visible_ratings(db, business_id))

        return reviews, stats

    @staticmethod
    def list_client_reviews(db: Session, client_id: UUID) -> List[Review]:
        with store_errors(db, "listing client reviews"):
            return db.query(Review).filter(
                Review.client_id == client_id,
                Review.is_visible == True
            ).order_by(Review.created_at.desc()).all()

    @staticmethod
    def can_review(db: Session, actor: Actor, reservation_id: UUID, now: Optional[datetime] = None) -> dict:
        with store_errors(db, "checking review eligibility"):
            reservation = db.query(Reservation).filter(
                Reservation.id == reservation_id,
                Reservation.client_id == actor.user_id
            ).first()
            if not reservation:
                raise NotFoundError("Reservation not found", "RESERVATION_NOT_FOUND")

            business = BusinessService.get_business(db, reservation.business_id)
            is_past = ReviewService.reservation_is_past(business, reservation, now)
            has_review = db.query(Review.id).filter(Review.reservation_id == reservation_id).first() is not None

        return {
            "can_review": is_past and not has_review,
            "has_review": has_review,
            "is_past": is_past,
            "booking_status": reservation.status,
        }
