"""
Pydantic schemas for participation request operations.
"""

from datetime import datetime
from typing import List
from pydantic import Field

from ewm.models.request import RequestStatus
from ewm.services.transitions import RequestDecision
from .event import ApiModel


class ParticipationRequestResponse(ApiModel):
    """Schema for participation request response."""
    id: int
    event: int = Field(..., validation_alias="event_id")
    requester: int = Field(..., validation_alias="requester_id")
    status: RequestStatus
    created: datetime


class RequestStatusUpdate(ApiModel):
    """Organizer decision for a batch of requests of one event."""
    request_ids: List[int] = Field(..., description="Request IDs, processed in this order")
    status: RequestDecision


class RequestStatusUpdateResult(ApiModel):
    """Outcome of a batch decision."""
    confirmed_requests: List[ParticipationRequestResponse] = []
    rejected_requests: List[ParticipationRequestResponse] = []
