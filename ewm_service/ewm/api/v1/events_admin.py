"""
Admin event moderation endpoints for EWM Service.
These endpoints require admin authentication.
"""

from datetime import datetime
from fastapi import APIRouter, Depends, Query
from typing import List, Optional
import logging

from ewm.models.event import EventState
from ewm.schemas.event import EventAdminUpdate, EventFullResponse
from ewm.services.event_service import event_service
from ewm.services.jwt_service import JWTService
from ..dependencies import get_current_admin_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/events", tags=["Admin Events"])


@router.get("", response_model=List[EventFullResponse])
async def search_events(
    users: Optional[List[int]] = Query(None, description="Initiator IDs"),
    states: Optional[List[EventState]] = Query(None),
    categories: Optional[List[int]] = Query(None),
    range_start: Optional[datetime] = Query(None, alias="rangeStart"),
    range_end: Optional[datetime] = Query(None, alias="rangeEnd"),
    from_: int = Query(0, alias="from"),
    size: int = Query(10),
    current_user: dict = Depends(get_current_admin_user)
):
    """Search events in any state (admin only)."""
    results = await event_service.search_events(
        users=users,
        states=states,
        categories=categories,
        range_start=range_start,
        range_end=range_end,
        from_=from_,
        size=size
    )
    return [EventFullResponse.from_event(event, confirmed, views) for event, confirmed, views in results]


@router.patch("/{event_id}", response_model=EventFullResponse)
async def update_event(
    event_id: int,
    patch: EventAdminUpdate,
    current_user: dict = Depends(get_current_admin_user)
):
    """
    Publish or reject an event and optionally edit its fields (admin only).

    Args:
        event_id: Event ID
        patch: Fields to change and an optional state action
        current_user: Current admin user

    Returns:
        Updated event
    """
    admin_id = JWTService.actor_id(current_user)
    event = await event_service.update_event_by_admin(event_id, patch, admin_id=admin_id)
    logger.info(f"Event {event_id} moderated by admin {admin_id}")

    confirmed, views = await event_service.get_event_stats(event)
    return EventFullResponse.from_event(event, confirmed, views)
