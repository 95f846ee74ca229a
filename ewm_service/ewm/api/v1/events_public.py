"""
Public event endpoints for EWM Service.
"""

from datetime import datetime
from fastapi import APIRouter, Query
from typing import List, Optional

from ewm.schemas.event import EventFullResponse, EventShortResponse
from ewm.services.event_service import EventSort, event_service

router = APIRouter(prefix="/events", tags=["Public Events"])


@router.get("", response_model=List[EventShortResponse])
async def search_events(
    text: Optional[str] = Query(None, description="Matched against annotation and description"),
    categories: Optional[List[int]] = Query(None),
    paid: Optional[bool] = Query(None),
    range_start: Optional[datetime] = Query(None, alias="rangeStart"),
    range_end: Optional[datetime] = Query(None, alias="rangeEnd"),
    only_available: bool = Query(False, alias="onlyAvailable"),
    sort: Optional[EventSort] = Query(EventSort.EVENT_DATE),
    from_: int = Query(0, alias="from"),
    size: int = Query(10)
):
    """
    Search published events.

    Without rangeStart and rangeEnd only upcoming events are listed.
    """
    results = await event_service.search_published_events(
        text=text,
        categories=categories,
        paid=paid,
        range_start=range_start,
        range_end=range_end,
        only_available=only_available,
        sort=sort,
        from_=from_,
        size=size
    )
    return [EventShortResponse.from_event(event, confirmed, views) for event, confirmed, views in results]


@router.get("/{event_id}", response_model=EventFullResponse)
async def get_event(event_id: int):
    """Get a published event by ID."""
    event = await event_service.get_published_event(event_id)
    confirmed, views = await event_service.get_event_stats(event)
    return EventFullResponse.from_event(event, confirmed, views)
