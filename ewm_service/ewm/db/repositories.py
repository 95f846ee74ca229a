"""
Repositories for EWM Service models.
Each repository wraps one session; callers own commit and rollback.
"""

from datetime import datetime
from typing import Iterable, List, Optional, Sequence
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from ewm.models.event import Event, EventState, User, Category
from ewm.models.request import ParticipationRequest, RequestStatus

# Responses render category and initiator after the session is closed
_EVENT_REFS = (joinedload(Event.category), joinedload(Event.initiator))


def event_filters(
    text: Optional[str] = None,
    category_ids: Optional[Sequence[int]] = None,
    paid: Optional[bool] = None,
    initiator_ids: Optional[Sequence[int]] = None,
    states: Optional[Sequence[EventState]] = None,
    range_start: Optional[datetime] = None,
    range_end: Optional[datetime] = None
) -> list:
    """
    Build filter clauses for an event search.
    Criteria that are None or empty do not restrict the result.
    """
    clauses = []

    if text and text.strip():
        pattern = f"%{text.strip().lower()}%"
        clauses.append(or_(
            func.lower(Event.annotation).like(pattern),
            func.lower(Event.description).like(pattern)
        ))
    if category_ids:
        clauses.append(Event.category_id.in_(category_ids))
    if paid is not None:
        clauses.append(Event.paid == paid)
    if initiator_ids:
        clauses.append(Event.initiator_id.in_(initiator_ids))
    if states:
        clauses.append(Event.state.in_(states))
    if range_start is not None:
        clauses.append(Event.event_date >= range_start)
    if range_end is not None:
        clauses.append(Event.event_date <= range_end)

    return clauses


class UserRepository:
    """Read access to users."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, user_id: int) -> Optional[User]:
        """Get user by ID."""
        return self.session.get(User, user_id)

    def exists(self, user_id: int) -> bool:
        """Check if a user exists."""
        return self.session.query(User.id).filter(User.id == user_id).first() is not None


class CategoryRepository:
    """Read access to categories."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, category_id: int) -> Optional[Category]:
        """Get category by ID."""
        return self.session.get(Category, category_id)


class EventRepository:
    """
    Repository for Event model operations.
    """

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, event_id: int) -> Optional[Event]:
        """Get event by ID with its category and initiator loaded."""
        return self.session.get(Event, event_id, options=_EVENT_REFS)

    def get_by_id_and_initiator(self, event_id: int, initiator_id: int) -> Optional[Event]:
        """Get event by ID when owned by the given initiator."""
        return self.session.query(Event).options(*_EVENT_REFS).filter(
            Event.id == event_id,
            Event.initiator_id == initiator_id
        ).first()

    def get_by_initiator(self, initiator_id: int, skip: int = 0, limit: int = 10) -> List[Event]:
        """Get events created by a user, ordered by ID."""
        return self.session.query(Event).options(*_EVENT_REFS).filter(
            Event.initiator_id == initiator_id
        ).order_by(Event.id).offset(skip).limit(limit).all()

    def search(self, clauses: Sequence, order_by: Sequence = (Event.id,), skip: int = 0, limit: int = 10) -> List[Event]:
        """Get a page of events matching all clauses."""
        return self.session.query(Event).options(*_EVENT_REFS).filter(
            *clauses
        ).order_by(*order_by).offset(skip).limit(limit).all()

    def save(self, event: Event) -> Event:
        """Add the event to the session and flush to assign an ID."""
        self.session.add(event)
        self.session.flush()
        return event


class ParticipationRequestRepository:
    """
    Repository for ParticipationRequest model operations.
    """

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, request_id: int) -> Optional[ParticipationRequest]:
        """Get request by ID."""
        return self.session.get(ParticipationRequest, request_id)

    def get_by_event_and_requester(self, event_id: int, requester_id: int) -> Optional[ParticipationRequest]:
        """Get the request a user made for an event, if any."""
        return self.session.query(ParticipationRequest).filter(
            ParticipationRequest.event_id == event_id,
            ParticipationRequest.requester_id == requester_id
        ).first()

    def get_by_event(self, event_id: int, status: Optional[RequestStatus] = None) -> List[ParticipationRequest]:
        """Get requests for an event, optionally filtered by status, ordered by ID."""
        query = self.session.query(ParticipationRequest).filter(
            ParticipationRequest.event_id == event_id
        )

        if status:
            query = query.filter(ParticipationRequest.status == status)

        return query.order_by(ParticipationRequest.id).all()

    def get_by_requester(self, requester_id: int) -> List[ParticipationRequest]:
        """Get requests made by a user, ordered by ID."""
        return self.session.query(ParticipationRequest).filter(
            ParticipationRequest.requester_id == requester_id
        ).order_by(ParticipationRequest.id).all()

    def get_by_ids(self, request_ids: Iterable[int]) -> List[ParticipationRequest]:
        """Get requests by IDs. Order is unspecified."""
        ids = list(request_ids)
        if not ids:
            return []
        return self.session.query(ParticipationRequest).filter(
            ParticipationRequest.id.in_(ids)
        ).all()

    def count_by_event_and_status(self, event_id: int, status: RequestStatus) -> int:
        """Count requests of an event in a given status."""
        return self.session.query(func.count(ParticipationRequest.id)).filter(
            ParticipationRequest.event_id == event_id,
            ParticipationRequest.status == status
        ).scalar() or 0

    def save(self, request: ParticipationRequest) -> ParticipationRequest:
        """Add the request to the session and flush to assign an ID."""
        self.session.add(request)
        self.session.flush()
        return request

    def save_all(self, requests: Iterable[ParticipationRequest]) -> None:
        """Add all requests to the session and flush."""
        self.session.add_all(list(requests))
        self.session.flush()
