"""
API v1 router setup
Organized into: public lookups and actor-authenticated scheduling routes
"""
from fastapi import APIRouter

from booking_engine.api.v1 import availability, businesses, reservations, reviews, waitlist

api_v1_router = APIRouter()

# ============================================================================
# PUBLIC ROUTES (No caller identity required)
# ============================================================================
api_v1_router.include_router(availability.router, tags=["Public"])

# ============================================================================
# SCHEDULING ROUTES (X-Actor-Id / X-Actor-Role from the gateway)
# ============================================================================
api_v1_router.include_router(reservations.router, tags=["Reservations"])
api_v1_router.include_router(waitlist.router, tags=["Waitlist"])
api_v1_router.include_router(reviews.router, tags=["Reviews"])
api_v1_router.include_router(businesses.router, tags=["Businesses"])


# ============================================================================
# ROOT ENDPOINT - API Info
# ============================================================================
@api_v1_router.get("/", tags=["Info"])
async def api_info():
    """API information and authentication model"""
    return {
        "version": "1.0",
        "authentication": {
            "public": "No authentication required (availability, business profile, reviews)",
            "scheduling": "X-Actor-Id and X-Actor-Role headers set by the gateway",
        }
    }
