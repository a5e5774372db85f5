# booking_engine/services/review/rating_projector.py
"""
Business rating aggregate.

Always a full recompute over visible reviews, never an incremental delta, so
running it twice without an intervening write gives the same result and
concurrent review writes converge (last write wins on the business row).
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from booking_engine.models.business import Business
from booking_engine.models.review import Review

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


@dataclass(frozen=True)
class RatingSummary:
    average: Decimal
    count: int

    def to_dict(self) -> dict:
        return {"average_rating": float(self.average), "total_reviews": self.count}


def project_rating(ratings: Iterable[int]) -> RatingSummary:
    ratings = list(ratings)
    if not ratings:
        return RatingSummary(Decimal("0.00"), 0)

    average = (Decimal(sum(ratings)) / Decimal(len(ratings))).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    return RatingSummary(average, len(ratings))


def visible_ratings(db: Session, business_id: UUID):
    return [
        rating for (rating,) in db.query(Review.rating).filter(
            Review.business_id == business_id,
            Review.is_visible == True
        ).all()
    ]


def recompute_business_rating(db: Session, business_id: UUID) -> RatingSummary:
    """
    Write the rating aggregate onto the business row.

    Runs inside the caller's transaction and does not commit.
    """
    summary = project_rating(visible_ratings(db, business_id))

    db.query(Business).filter(Business.id == business_id).update(
        {Business.rating_average: summary.average, Business.rating_count: summary.count},
        synchronize_session=False
    )
    db.flush()

    logger.info(f"Business {business_id} rating is now {summary.average} over {summary.count} reviews")
    return summary
