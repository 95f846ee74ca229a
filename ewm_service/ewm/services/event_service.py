"""
Event service: creation, owner edits, admin moderation and reads.
Publication changes run under the event lock so that participant limit
edits do not interleave with confirmations.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging

from sqlalchemy.orm import Session

from ewm.core.config import config
from ewm.core.exceptions import ConflictError, NotFoundError
from ewm.core.logging import log_state_transition
from ewm.db.database import db_manager
from ewm.db.repositories import CategoryRepository, EventRepository, UserRepository, event_filters
from ewm.models.event import Event, EventState
from ewm.schemas.event import EventAdminUpdate, EventCreate, EventUpdateBase, EventUserUpdate
from .capacity_ledger import CapacityLedger
from .event_lock import event_locks
from .stats_client import stats_client
from .transitions import AdminStateAction, next_event_state
from .validators import (
    to_naive_local,
    validate_date_range,
    validate_event_date_lead,
    validate_future_date,
    validate_pagination,
    validate_participant_limit,
    validate_publish_lead,
    validate_text_field,
)

logger = logging.getLogger(__name__)

TEXT_FIELDS = ("title", "annotation", "description")

# (event, confirmed requests, views)
EventWithStats = Tuple[Event, int, int]


class EventSort(str, Enum):
    """Orderings of the public event search."""
    EVENT_DATE = "EVENT_DATE"
    VIEWS = "VIEWS"


class EventService:
    """
    Event lifecycle and publication state machine.
    """

    def __init__(self):
        self.consistency_config = None
        self.event_rules_config = None

    async def _get_configs(self):
        """Get configuration settings."""
        if not self.consistency_config:
            self.consistency_config = await config.get_consistency_config()
        if not self.event_rules_config:
            self.event_rules_config = await config.get_event_rules_config()

    @staticmethod
    def _get_category(session: Session, category_id: int):
        category = CategoryRepository(session).get_by_id(category_id)
        if not category:
            raise NotFoundError(f"Category with id={category_id} was not found")
        return category

    def _validated_changes(self, session: Session, patch: EventUpdateBase, admin: bool) -> Dict[str, Any]:
        """
        Validate the fields present in a patch without touching the event.

        Returns:
            Mapping of attribute name to new value
        """
        present = patch.model_dump(exclude_unset=True, exclude={"state_action"})
        changes: Dict[str, Any] = {}

        for field_name in TEXT_FIELDS:
            if present.get(field_name) is not None:
                changes[field_name] = validate_text_field(field_name, present[field_name])

        if present.get("category") is not None:
            changes["category"] = self._get_category(session, present["category"])

        if present.get("event_date") is not None:
            if admin:
                validate_future_date(present["event_date"])
            else:
                validate_event_date_lead(present["event_date"], self.event_rules_config["creation_lead_hours"])
            changes["event_date"] = present["event_date"]

        if present.get("location") is not None:
            changes["location_lat"] = present["location"]["lat"]
            changes["location_lon"] = present["location"]["lon"]

        if present.get("participant_limit") is not None:
            validate_participant_limit(present["participant_limit"])
            changes["participant_limit"] = present["participant_limit"]

        for flag in ("paid", "request_moderation"):
            if present.get(flag) is not None:
                changes[flag] = present[flag]

        return changes

    @staticmethod
    def _apply(event: Event, changes: Dict[str, Any]) -> None:
        for attribute, value in changes.items():
            setattr(event, attribute, value)

    async def create_event(self, user_id: int, event_data: EventCreate) -> Event:
        """
        Create a new event in PENDING state.

        Raises:
            NotFoundError: If the user or category does not exist
            ValidationError: If a field is out of bounds or the date is too close
        """
        await self._get_configs()

        title = validate_text_field("title", event_data.title)
        annotation = validate_text_field("annotation", event_data.annotation)
        description = validate_text_field("description", event_data.description)
        validate_participant_limit(event_data.participant_limit)
        validate_event_date_lead(event_data.event_date, self.event_rules_config["creation_lead_hours"])

        with db_manager.get_session() as session:
            initiator = UserRepository(session).get_by_id(user_id)
            if not initiator:
                raise NotFoundError(f"User with id={user_id} was not found")
            category = self._get_category(session, event_data.category)

            event = Event(
                title=title,
                annotation=annotation,
                description=description,
                category=category,
                initiator=initiator,
                event_date=event_data.event_date,
                created_on=datetime.now(),
                state=EventState.PENDING,
                location_lat=event_data.location.lat,
                location_lon=event_data.location.lon,
                paid=event_data.paid,
                participant_limit=event_data.participant_limit,
                request_moderation=event_data.request_moderation
            )
            EventRepository(session).save(event)

            log_state_transition("event", event.id, None, event.state.value, actor_id=user_id)
            logger.info(f"Event created: {event.id} by user {user_id}")
            return event

    async def get_user_events(self, user_id: int, from_: int = 0, size: int = 10) -> List[Event]:
        """Get events created by a user, ordered by ID."""
        validate_pagination(from_, size)

        with db_manager.get_session() as session:
            return EventRepository(session).get_by_initiator(user_id, skip=from_, limit=size)

    async def get_user_event(self, user_id: int, event_id: int) -> Event:
        """
        Get one event of its initiator.

        Raises:
            NotFoundError: If the event does not exist or belongs to someone else
        """
        with db_manager.get_session() as session:
            event = EventRepository(session).get_by_id_and_initiator(event_id, user_id)
            if not event:
                raise NotFoundError(f"Event with id={event_id} was not found")
            return event

    async def update_event_by_user(self, user_id: int, event_id: int, patch: EventUserUpdate) -> Event:
        """
        Apply an initiator's partial edit and optional review action.

        Raises:
            NotFoundError: If the event is not owned by the user or a new category does not exist
            ConflictError: If the event is already published
            ValidationError: If a present field is invalid
        """
        await self._get_configs()

        def operation() -> Event:
            with db_manager.get_transaction_session() as session:
                event = EventRepository(session).get_by_id_and_initiator(event_id, user_id)
                if not event:
                    raise NotFoundError(f"Event with id={event_id} was not found")

                if event.state == EventState.PUBLISHED:
                    raise ConflictError("Only pending or canceled events can be changed")

                changes = self._validated_changes(session, patch, admin=False)
                new_state = next_event_state(event.state, patch.state_action) if patch.state_action else None

                old_state = event.state
                self._apply(event, changes)
                if new_state is not None:
                    event.state = new_state
                session.commit()

                if new_state is not None:
                    log_state_transition("event", event.id, old_state.value, new_state.value, actor_id=user_id)
                return event

        return await event_locks.run_locked(event_id, operation, self.consistency_config)

    async def update_event_by_admin(self, event_id: int, patch: EventAdminUpdate, admin_id: Optional[int] = None) -> Event:
        """
        Publish or reject an event and apply an optional field patch.

        Publishing checks the lead time against the event date the patch leaves behind.

        Raises:
            NotFoundError: If the event or a new category does not exist
            ConflictError: If the state action is not allowed from the current state
            ValidationError: If a field is invalid or the event starts too soon to publish
        """
        await self._get_configs()

        def operation() -> Event:
            with db_manager.get_transaction_session() as session:
                event = EventRepository(session).get_by_id(event_id)
                if not event:
                    raise NotFoundError(f"Event with id={event_id} was not found")

                new_state = None
                if patch.state_action is not None:
                    new_state = next_event_state(event.state, patch.state_action)

                changes = self._validated_changes(session, patch, admin=True)

                if patch.state_action == AdminStateAction.PUBLISH_EVENT:
                    validate_publish_lead(
                        changes.get("event_date", event.event_date),
                        self.event_rules_config["publish_lead_hours"]
                    )

                old_state = event.state
                self._apply(event, changes)
                if new_state is not None:
                    event.state = new_state
                    if new_state == EventState.PUBLISHED:
                        event.published_on = datetime.now()
                session.commit()

                if new_state is not None:
                    log_state_transition(
                        "event", event.id, old_state.value, new_state.value,
                        actor_id=admin_id, reason=patch.state_action.value
                    )
                return event

        return await event_locks.run_locked(event_id, operation, self.consistency_config)

    async def get_published_event(self, event_id: int) -> Event:
        """
        Get a published event.

        Raises:
            NotFoundError: If the event does not exist or is not published
        """
        with db_manager.get_session() as session:
            event = EventRepository(session).get_by_id(event_id)
            if not event or not event.is_published:
                raise NotFoundError(f"Event with id={event_id} was not found")
            return event

    async def search_published_events(
        self,
        text: Optional[str] = None,
        categories: Optional[Sequence[int]] = None,
        paid: Optional[bool] = None,
        range_start: Optional[datetime] = None,
        range_end: Optional[datetime] = None,
        only_available: bool = False,
        sort: Optional[EventSort] = None,
        from_: int = 0,
        size: int = 10
    ) -> List[EventWithStats]:
        """
        Search published events.

        Without a date range only upcoming events are returned. The
        availability filter and the VIEWS ordering apply to the fetched page.

        Raises:
            ValidationError: If pagination is invalid or the range is inverted
        """
        validate_pagination(from_, size)
        range_start, range_end = to_naive_local(range_start), to_naive_local(range_end)
        validate_date_range(range_start, range_end)
        if range_start is None and range_end is None:
            range_start = datetime.now()

        clauses = [Event.state == EventState.PUBLISHED] + event_filters(
            text=text,
            category_ids=categories,
            paid=paid,
            range_start=range_start,
            range_end=range_end
        )
        if sort == EventSort.EVENT_DATE:
            order_by = (Event.event_date.desc(), Event.id)
        else:
            order_by = (Event.id,)

        with db_manager.get_session() as session:
            events = EventRepository(session).search(clauses, order_by, skip=from_, limit=size)
            ledger = CapacityLedger(session)
            if only_available:
                events = [event for event in events if ledger.has_capacity(event)]
            confirmed = {event.id: ledger.confirmed_count(event.id) for event in events}

        results = await self._with_views(events, confirmed)
        if sort == EventSort.VIEWS:
            results.sort(key=lambda item: item[2], reverse=True)
        return results

    async def search_events(
        self,
        users: Optional[Sequence[int]] = None,
        states: Optional[Sequence[EventState]] = None,
        categories: Optional[Sequence[int]] = None,
        range_start: Optional[datetime] = None,
        range_end: Optional[datetime] = None,
        from_: int = 0,
        size: int = 10
    ) -> List[EventWithStats]:
        """
        Search events in any state for moderation, ordered by ID.

        Raises:
            ValidationError: If pagination is invalid or the range is inverted
        """
        validate_pagination(from_, size)
        range_start, range_end = to_naive_local(range_start), to_naive_local(range_end)
        validate_date_range(range_start, range_end)

        clauses = event_filters(
            initiator_ids=users,
            states=states,
            category_ids=categories,
            range_start=range_start,
            range_end=range_end
        )

        with db_manager.get_session() as session:
            events = EventRepository(session).search(clauses, skip=from_, limit=size)
            ledger = CapacityLedger(session)
            confirmed = {event.id: ledger.confirmed_count(event.id) for event in events}

        return await self._with_views(events, confirmed)

    @staticmethod
    async def _with_views(events: List[Event], confirmed: Dict[int, int]) -> List[EventWithStats]:
        results = []
        for event in events:
            views = await stats_client.get_event_views(event.id)
            results.append((event, confirmed[event.id], views))
        return results

    async def get_event_stats(self, event: Event) -> Tuple[int, int]:
        """
        Get response enrichment for an event.

        Returns:
            Tuple of (confirmed requests, views)
        """
        with db_manager.get_session() as session:
            confirmed = CapacityLedger(session).confirmed_count(event.id)
        views = await stats_client.get_event_views(event.id)
        return confirmed, views


# Global event service instance
event_service = EventService()
