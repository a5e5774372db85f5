# booking_engine/schemas/__init__.py
from .business import (
    DayHoursInput,
    BusinessHoursInput,
    BusinessSettingsUpdate,
    BusinessScheduleResponse
)

from .reservation import (
    ReservationCreateRequest,
    ReservationRescheduleRequest,
    ReservationStatusUpdateRequest,
    ReservationEventResponse,
    ReservationResponse,
    SlotResponse,
    AvailableSlotsResponse,
    SlotCountsResponse,
    ClientStatsResponse
)

from .waitlist import (
    WaitlistJoinRequest,
    WaitlistEntryResponse
)

from .review import (
    ReviewCreateRequest,
    ReviewUpdateRequest,
    ReviewResponse,
    RatingStats,
    BusinessReviewsResponse,
    ReviewEligibilityResponse
)
