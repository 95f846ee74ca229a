"""
Transition tables for events and participation requests.

Event actions:
    PUBLISH_EVENT   PENDING            -> PUBLISHED   (admin)
    REJECT_EVENT    PENDING, CANCELED  -> CANCELED    (admin)
    SEND_TO_REVIEW  PENDING, CANCELED  -> PENDING     (owner)
    CANCEL_REVIEW   PENDING, CANCELED  -> CANCELED    (owner)

Request statuses:
    PENDING   -> CONFIRMED, REJECTED, CANCELED
    CONFIRMED -> CANCELED
    REJECTED  -> CANCELED
    CANCELED  -> (none)
"""

from enum import Enum
from typing import Dict, FrozenSet, Tuple, Union

from ewm.core.exceptions import ConflictError
from ewm.models.event import EventState
from ewm.models.request import RequestStatus


class AdminStateAction(str, Enum):
    """State actions available to administrators."""
    PUBLISH_EVENT = "PUBLISH_EVENT"
    REJECT_EVENT = "REJECT_EVENT"


class UserStateAction(str, Enum):
    """State actions available to the event initiator."""
    SEND_TO_REVIEW = "SEND_TO_REVIEW"
    CANCEL_REVIEW = "CANCEL_REVIEW"


class RequestDecision(str, Enum):
    """Organizer decisions for a batch of requests."""
    CONFIRMED = "CONFIRMED"
    REJECTED = "REJECTED"


StateAction = Union[AdminStateAction, UserStateAction]

_EDITABLE = frozenset({EventState.PENDING, EventState.CANCELED})

EVENT_TRANSITIONS: Dict[StateAction, Tuple[FrozenSet[EventState], EventState]] = {
    AdminStateAction.PUBLISH_EVENT: (frozenset({EventState.PENDING}), EventState.PUBLISHED),
    AdminStateAction.REJECT_EVENT: (_EDITABLE, EventState.CANCELED),
    UserStateAction.SEND_TO_REVIEW: (_EDITABLE, EventState.PENDING),
    UserStateAction.CANCEL_REVIEW: (_EDITABLE, EventState.CANCELED),
}

REQUEST_TRANSITIONS: Dict[RequestStatus, FrozenSet[RequestStatus]] = {
    RequestStatus.PENDING: frozenset({RequestStatus.CONFIRMED, RequestStatus.REJECTED, RequestStatus.CANCELED}),
    RequestStatus.CONFIRMED: frozenset({RequestStatus.CANCELED}),
    RequestStatus.REJECTED: frozenset({RequestStatus.CANCELED}),
    RequestStatus.CANCELED: frozenset(),
}


def _conflict_message(state: EventState, action: StateAction) -> str:
    if action == AdminStateAction.PUBLISH_EVENT:
        return f"Cannot publish the event because it's not in the right state: {state.value}"
    if action == AdminStateAction.REJECT_EVENT:
        return "Cannot reject the event because it's already published"
    return "Only pending or canceled events can be changed"


def next_event_state(state: EventState, action: StateAction) -> EventState:
    """
    Resolve the target state of an event action.

    Raises:
        ConflictError: If the action is not allowed from the current state
    """
    allowed_from, target = EVENT_TRANSITIONS[action]
    if state not in allowed_from:
        raise ConflictError(_conflict_message(state, action))
    return target


def check_request_transition(current: RequestStatus, target: RequestStatus) -> None:
    """
    Raises:
        ConflictError: If the request cannot move from current to target
    """
    if target not in REQUEST_TRANSITIONS[current]:
        if current != RequestStatus.PENDING and target in (RequestStatus.CONFIRMED, RequestStatus.REJECTED):
            raise ConflictError(f"Request must be in PENDING status, current status: {current.value}")
        raise ConflictError(f"Transition from {current.value} to {target.value} is not allowed")

