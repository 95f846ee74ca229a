"""
Pydantic schemas for Event-related operations.
Fields are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

from ewm.models.event import Event, EventState
from ewm.services.transitions import AdminStateAction, UserStateAction
from ewm.services.validators import to_naive_local


class ApiModel(BaseModel):
    """Base schema with camelCase aliases."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class LocationSchema(ApiModel):
    """Event location."""
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class CategoryShort(ApiModel):
    id: int
    name: str


class UserShort(ApiModel):
    id: int
    name: str


class EventCreate(ApiModel):
    """Schema for creating a new event. Text bounds are checked by the service."""
    title: str = Field(..., description="Event title")
    annotation: str = Field(..., description="Short summary")
    description: str = Field(..., description="Full description")
    category: int = Field(..., description="Category ID")
    event_date: datetime = Field(..., description="Event date and time")
    location: LocationSchema
    paid: bool = False
    participant_limit: int = Field(0, description="0 means unlimited")
    request_moderation: bool = True

    @field_validator("event_date")
    @classmethod
    def local_event_date(cls, value: datetime) -> datetime:
        return to_naive_local(value)


class EventUpdateBase(ApiModel):
    """Partial event patch. Only fields present in the payload are applied."""
    title: Optional[str] = None
    annotation: Optional[str] = None
    description: Optional[str] = None
    category: Optional[int] = None
    event_date: Optional[datetime] = None
    location: Optional[LocationSchema] = None
    paid: Optional[bool] = None
    participant_limit: Optional[int] = None
    request_moderation: Optional[bool] = None

    @field_validator("event_date")
    @classmethod
    def local_event_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_local(value)


class EventUserUpdate(EventUpdateBase):
    """Schema for updating an event by its initiator."""
    state_action: Optional[UserStateAction] = None


class EventAdminUpdate(EventUpdateBase):
    """Schema for moderating an event."""
    state_action: Optional[AdminStateAction] = None


class EventShortResponse(ApiModel):
    """Schema for event list items."""
    id: int
    title: str
    annotation: str
    category: CategoryShort
    initiator: UserShort
    event_date: datetime
    paid: bool
    confirmed_requests: int = 0
    views: int = 0

    @classmethod
    def from_event(cls, event: Event, confirmed_requests: int = 0, views: int = 0):
        return cls.model_validate(event).model_copy(
            update={"confirmed_requests": confirmed_requests, "views": views}
        )


class EventFullResponse(EventShortResponse):
    """Schema for a single event."""
    description: str
    created_on: datetime
    published_on: Optional[datetime] = None
    state: EventState
    location: LocationSchema
    participant_limit: int
    request_moderation: bool
