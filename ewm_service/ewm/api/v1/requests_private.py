"""
Requester endpoints: own participation requests.
"""

from fastapi import APIRouter, Query, status
from typing import List

from ewm.schemas.request import ParticipationRequestResponse
from ewm.services.request_service import request_service

router = APIRouter(prefix="/users/{user_id}/requests", tags=["Private Requests"])


@router.get("", response_model=List[ParticipationRequestResponse])
async def get_user_requests(user_id: int):
    """List requests made by the user."""
    return await request_service.get_user_requests(user_id)


@router.post("", response_model=ParticipationRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_request(user_id: int, event_id: int = Query(..., alias="eventId")):
    """Request participation in a published event."""
    return await request_service.create_request(user_id, event_id)


@router.patch("/{request_id}/cancel", response_model=ParticipationRequestResponse)
async def cancel_request(user_id: int, request_id: int):
    return await request_service.cancel_request(user_id, request_id)
