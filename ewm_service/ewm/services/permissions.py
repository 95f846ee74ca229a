"""
Authorization predicates over (actor, resource) pairs.
Predicates are pure; the ensure_* helpers turn a failed predicate into a
ValidationError before any mutation happens.
"""

from ewm.core.exceptions import ValidationError
from ewm.models.event import Event
from ewm.models.request import ParticipationRequest


def is_event_initiator(actor_id: int, event: Event) -> bool:
    return event.initiator_id == actor_id


def is_request_owner(actor_id: int, request: ParticipationRequest) -> bool:
    return request.requester_id == actor_id


def request_belongs_to_event(request: ParticipationRequest, event_id: int) -> bool:
    return request.event_id == event_id


def ensure_event_initiator(actor_id: int, event: Event) -> None:
    if not is_event_initiator(actor_id, event):
        raise ValidationError(f"User with id={actor_id} is not the initiator of event with id={event.id}")


def ensure_request_owner(actor_id: int, request: ParticipationRequest) -> None:
    if not is_request_owner(actor_id, request):
        raise ValidationError("User can only cancel their own requests")


def ensure_request_of_event(request: ParticipationRequest, event_id: int) -> None:
    if not request_belongs_to_event(request, event_id):
        raise ValidationError(f"Request with id={request.id} doesn't belong to event with id={event_id}")
