"""
Pydantic schemas for reviews and rating summaries
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from uuid import UUID


class ReviewCreateRequest(BaseModel):
    business_id: UUID
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=5000)
    reservation_id: Optional[UUID] = None


class ReviewUpdateRequest(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=5000)


class ReviewResponse(BaseModel):
    id: UUID
    business_id: UUID
    client_id: UUID
    reservation_id: Optional[UUID]
    rating: int
    comment: Optional[str]
    is_visible: bool
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class RatingStats(BaseModel):
    average_rating: float
    total_reviews: int


class BusinessReviewsResponse(BaseModel):
    reviews: List[ReviewResponse]
    stats: RatingStats


class ReviewEligibilityResponse(BaseModel):
    can_review: bool
    has_review: bool
    is_past: bool
    booking_status: str
