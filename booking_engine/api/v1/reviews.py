# ============================================================================
# booking_engine/api/v1/reviews.py
# ============================================================================
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.orm import Session

from booking_engine.api.dependencies import get_current_actor
from booking_engine.config.database import get_db
from booking_engine.schemas.review import (
    BusinessReviewsResponse,
    ReviewCreateRequest,
    ReviewEligibilityResponse,
    ReviewResponse,
    ReviewUpdateRequest,
)
from booking_engine.services.reservation.reservation_lifecycle import Actor
from booking_engine.services.review.review_service import ReviewService

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
def submit_review(
        payload: ReviewCreateRequest,
        actor: Actor = Depends(get_current_actor),
        db: Session = Depends(get_db)
):
    return ReviewService.submit_review(
        db=db,
        actor=actor,
        business_id=payload.business_id,
        rating=payload.rating,
        comment=payload.comment,
        reservation_id=payload.reservation_id,
    )


@router.get("/business/{business_id}", response_model=BusinessReviewsResponse)
def list_business_reviews(
        business_id: UUID = Path(..., description="The business ID"),
        db: Session = Depends(get_db)
):
    """Public: visible reviews with live rating stats"""
    reviews, stats = ReviewService.list_business_reviews(db=db, business_id=business_id)
    return {"reviews": reviews, "stats": stats.to_dict()}


@router.get("/me", response_model=List[ReviewResponse])
def list_my_reviews(
        actor: Actor = Depends(get_current_actor),
        db: Session = Depends(get_db)
):
    return ReviewService.list_client_reviews(db=db, client_id=actor.user_id)


@router.get("/eligibility/{reservation_id}", response_model=ReviewEligibilityResponse)
def check_review_eligibility(
        reservation_id: UUID = Path(..., description="The reservation ID"),
        actor: Actor = Depends(get_current_actor),
        db: Session = Depends(get_db)
):
    return ReviewService.can_review(db=db, actor=actor, reservation_id=reservation_id)


@router.patch("/{review_id}", response_model=ReviewResponse)
def update_review(
        payload: ReviewUpdateRequest,
        review_id: UUID = Path(..., description="The review ID"),
        actor: Actor = Depends(get_current_actor),
        db: Session = Depends(get_db)
):
    return ReviewService.update_review(
        db=db,
        actor=actor,
        review_id=review_id,
        rating=payload.rating,
        comment=payload.comment,
    )


@router.delete("/{review_id}")
def delete_review(
        review_id: UUID = Path(..., description="The review ID"),
        actor: Actor = Depends(get_current_actor),
        db: Session = Depends(get_db)
):
    ReviewService.delete_review(db=db, actor=actor, review_id=review_id)
    return {"success": True, "message": "Review deleted successfully"}
