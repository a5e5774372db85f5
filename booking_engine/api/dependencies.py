# ============================================================================
# FILE: booking_engine/api/dependencies.py
# Caller identity for the scheduling API
# ============================================================================
"""
Authentication happens upstream. The gateway in front of this service
verifies the session and forwards the caller as two trusted headers:

    X-Actor-Id:   the user's UUID
    X-Actor-Role: client | owner | staff

Every authorization decision (who owns which reservation, who belongs to which
business) is made explicitly in the service layer.
"""
from typing import Optional
from uuid import UUID

from fastapi import Header, HTTPException, status

from booking_engine.services.reservation.reservation_lifecycle import Actor, ActorRole


async def get_current_actor(
        x_actor_id: Optional[str] = Header(None, alias="X-Actor-Id"),
        x_actor_role: Optional[str] = Header(None, alias="X-Actor-Role")
) -> Actor:
    """
    Dependency to get the calling actor.

    Raises:
        HTTPException 401: If the identity headers are missing or malformed
    """
    if not x_actor_id or not x_actor_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing caller identity",
        )

    try:
        user_id = UUID(x_actor_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid actor ID",
        )

    try:
        role = ActorRole(x_actor_role.strip().lower())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Unknown actor role: {x_actor_role}",
        )

    return Actor(user_id=user_id, role=role)
