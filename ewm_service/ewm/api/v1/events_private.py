"""
Initiator endpoints: own events and moderation of their requests.
"""

from fastapi import APIRouter, Query, status
from typing import List

from ewm.schemas.event import EventCreate, EventFullResponse, EventShortResponse, EventUserUpdate
from ewm.schemas.request import (
    ParticipationRequestResponse,
    RequestStatusUpdate,
    RequestStatusUpdateResult,
)
from ewm.services.event_service import event_service
from ewm.services.request_service import request_service

router = APIRouter(prefix="/users/{user_id}/events", tags=["Private Events"])


async def _full(event) -> EventFullResponse:
    confirmed, views = await event_service.get_event_stats(event)
    return EventFullResponse.from_event(event, confirmed, views)


@router.post("", response_model=EventFullResponse, status_code=status.HTTP_201_CREATED)
async def create_event(user_id: int, event_data: EventCreate):
    """Create a new event awaiting moderation."""
    event = await event_service.create_event(user_id, event_data)
    return await _full(event)


@router.get("", response_model=List[EventShortResponse])
async def get_user_events(
    user_id: int,
    from_: int = Query(0, alias="from"),
    size: int = Query(10)
):
    """List events created by the user."""
    events = await event_service.get_user_events(user_id, from_, size)

    result = []
    for event in events:
        confirmed, views = await event_service.get_event_stats(event)
        result.append(EventShortResponse.from_event(event, confirmed, views))
    return result


@router.get("/{event_id}", response_model=EventFullResponse)
async def get_user_event(user_id: int, event_id: int):
    event = await event_service.get_user_event(user_id, event_id)
    return await _full(event)


@router.patch("/{event_id}", response_model=EventFullResponse)
async def update_user_event(user_id: int, event_id: int, patch: EventUserUpdate):
    """Edit a pending or canceled event, optionally sending it to review or withdrawing it."""
    event = await event_service.update_event_by_user(user_id, event_id, patch)
    return await _full(event)


@router.get("/{event_id}/requests", response_model=List[ParticipationRequestResponse])
async def get_event_requests(user_id: int, event_id: int):
    """List participation requests of the user's event."""
    return await request_service.get_event_requests(user_id, event_id)


@router.patch("/{event_id}/requests", response_model=RequestStatusUpdateResult)
async def update_request_statuses(user_id: int, event_id: int, update: RequestStatusUpdate):
    """
    Confirm or reject a batch of pending requests.

    Confirmations past the participant limit are turned into rejections.
    """
    confirmed, rejected = await request_service.update_request_statuses(
        user_id, event_id, update.request_ids, update.status
    )
    return RequestStatusUpdateResult(
        confirmed_requests=[ParticipationRequestResponse.model_validate(r) for r in confirmed],
        rejected_requests=[ParticipationRequestResponse.model_validate(r) for r in rejected]
    )


@router.patch("/{event_id}/requests/{request_id}/confirm", response_model=ParticipationRequestResponse)
async def confirm_request(user_id: int, event_id: int, request_id: int):
    return await request_service.confirm_request(user_id, event_id, request_id)


@router.patch("/{event_id}/requests/{request_id}/reject", response_model=ParticipationRequestResponse)
async def reject_request(user_id: int, event_id: int, request_id: int):
    return await request_service.reject_request(user_id, event_id, request_id)
