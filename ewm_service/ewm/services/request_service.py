"""
Participation request service.
Every write that depends on the confirmed count runs under the event lock,
inside one transaction, and re-reads the count there.
"""

from typing import List, Sequence, Tuple
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ewm.core.config import config
from ewm.core.exceptions import ConflictError, NotFoundError
from ewm.core.logging import log_state_transition
from ewm.db.database import db_manager
from ewm.db.repositories import EventRepository, ParticipationRequestRepository, UserRepository
from ewm.models.event import Event
from ewm.models.request import ParticipationRequest, RequestStatus
from .bulk_status_updater import BulkStatusUpdater
from .capacity_ledger import CapacityLedger
from .event_lock import event_locks
from .permissions import (
    ensure_event_initiator,
    ensure_request_of_event,
    ensure_request_owner,
    is_event_initiator,
)
from .transitions import RequestDecision, check_request_transition

logger = logging.getLogger(__name__)


class ParticipationRequestService:
    """
    Creates, cancels and moderates participation requests.
    """

    def __init__(self):
        self.consistency_config = None

    async def _get_configs(self):
        """Get configuration settings."""
        if not self.consistency_config:
            self.consistency_config = await config.get_consistency_config()

    @staticmethod
    def _get_event(session: Session, event_id: int) -> Event:
        event = EventRepository(session).get_by_id(event_id)
        if not event:
            raise NotFoundError(f"Event with id={event_id} was not found")
        return event

    @staticmethod
    def _get_request(session: Session, request_id: int) -> ParticipationRequest:
        request = ParticipationRequestRepository(session).get_by_id(request_id)
        if not request:
            raise NotFoundError(f"Request with id={request_id} was not found")
        return request

    @staticmethod
    def _ensure_user(session: Session, user_id: int):
        if not UserRepository(session).exists(user_id):
            raise NotFoundError(f"User with id={user_id} was not found")

    async def create_request(self, user_id: int, event_id: int) -> ParticipationRequest:
        """
        Create a participation request for a published event.

        The request is confirmed right away when the event does not moderate
        requests or has no participant limit.

        Raises:
            NotFoundError: If the user or event does not exist
            ConflictError: If the user is the initiator, the event is not published,
                a request already exists, or the participant limit is reached
        """
        await self._get_configs()

        def operation() -> ParticipationRequest:
            with db_manager.get_transaction_session() as session:
                self._ensure_user(session, user_id)
                event = self._get_event(session, event_id)
                requests = ParticipationRequestRepository(session)

                if is_event_initiator(user_id, event):
                    raise ConflictError("Initiator cannot request participation in their own event")

                if not event.is_published:
                    raise ConflictError("Cannot participate in unpublished event")

                if requests.get_by_event_and_requester(event_id, user_id):
                    raise ConflictError("Request already exists")

                if not CapacityLedger(session).has_capacity(event):
                    raise ConflictError("Event has reached participant limit")

                auto_confirm = not event.request_moderation or event.has_unlimited_capacity
                request = ParticipationRequest(
                    event_id=event_id,
                    requester_id=user_id,
                    status=RequestStatus.CONFIRMED if auto_confirm else RequestStatus.PENDING
                )
                requests.save(request)
                session.commit()

                log_state_transition("request", request.id, None, request.status.value, actor_id=user_id)
                return request

        try:
            return await event_locks.run_locked(
                event_id, operation, self.consistency_config, retry_on=(IntegrityError,)
            )
        except IntegrityError as e:
            logger.warning(f"Duplicate request of user {user_id} for event {event_id}: {e}")
            raise ConflictError("Request already exists")

    async def cancel_request(self, user_id: int, request_id: int) -> ParticipationRequest:
        """
        Cancel the caller's own request. Cancelling twice is a no-op.
        Vacated seats are not handed to pending requests.

        Raises:
            NotFoundError: If the request does not exist
            ValidationError: If the caller does not own the request
        """
        await self._get_configs()

        with db_manager.get_session() as session:
            event_id = self._get_request(session, request_id).event_id

        def operation() -> ParticipationRequest:
            with db_manager.get_transaction_session() as session:
                request = self._get_request(session, request_id)
                ensure_request_owner(user_id, request)

                if request.status == RequestStatus.CANCELED:
                    return request

                old_status = request.status
                check_request_transition(old_status, RequestStatus.CANCELED)
                request.status = RequestStatus.CANCELED
                session.commit()

                log_state_transition("request", request.id, old_status.value, request.status.value, actor_id=user_id)
                return request

        return await event_locks.run_locked(event_id, operation, self.consistency_config)

    def _decide(
        self,
        session: Session,
        initiator_id: int,
        event_id: int,
        request_id: int,
        target: RequestStatus
    ) -> Tuple[Event, ParticipationRequest]:
        event = self._get_event(session, event_id)
        ensure_event_initiator(initiator_id, event)

        request = self._get_request(session, request_id)
        ensure_request_of_event(request, event_id)
        check_request_transition(request.status, target)
        return event, request

    async def confirm_request(self, initiator_id: int, event_id: int, request_id: int) -> ParticipationRequest:
        """
        Confirm one pending request.

        When the confirmation uses the last seat, every other pending request
        of the event is rejected in the same transaction.

        Raises:
            NotFoundError: If the event or request does not exist
            ValidationError: If the caller is not the initiator or the request is of another event
            ConflictError: If the request is not pending or the event is full
        """
        await self._get_configs()

        def operation() -> ParticipationRequest:
            with db_manager.get_transaction_session() as session:
                event, request = self._decide(session, initiator_id, event_id, request_id, RequestStatus.CONFIRMED)
                ledger = CapacityLedger(session)

                if not ledger.has_capacity(event):
                    raise ConflictError("Event has reached participant limit")

                request.status = RequestStatus.CONFIRMED
                session.flush()
                log_state_transition("request", request.id, "PENDING", "CONFIRMED", actor_id=initiator_id)

                if ledger.is_full(event):
                    leftovers = ParticipationRequestRepository(session).get_by_event(event_id, RequestStatus.PENDING)
                    for pending in leftovers:
                        pending.status = RequestStatus.REJECTED
                        log_state_transition(
                            "request", pending.id, "PENDING", "REJECTED",
                            actor_id=initiator_id, reason="participant limit reached"
                        )
                    if leftovers:
                        logger.info(f"Event {event_id} is full, rejected {len(leftovers)} pending requests")

                session.commit()
                return request

        return await event_locks.run_locked(event_id, operation, self.consistency_config)

    async def reject_request(self, initiator_id: int, event_id: int, request_id: int) -> ParticipationRequest:
        """
        Reject one pending request.

        Raises:
            NotFoundError: If the event or request does not exist
            ValidationError: If the caller is not the initiator or the request is of another event
            ConflictError: If the request is not pending
        """
        await self._get_configs()

        def operation() -> ParticipationRequest:
            with db_manager.get_transaction_session() as session:
                _, request = self._decide(session, initiator_id, event_id, request_id, RequestStatus.REJECTED)
                request.status = RequestStatus.REJECTED
                session.commit()

                log_state_transition("request", request.id, "PENDING", "REJECTED", actor_id=initiator_id)
                return request

        return await event_locks.run_locked(event_id, operation, self.consistency_config)

    async def update_request_statuses(
        self,
        initiator_id: int,
        event_id: int,
        request_ids: Sequence[int],
        decision: RequestDecision
    ) -> Tuple[List[ParticipationRequest], List[ParticipationRequest]]:
        """
        Confirm or reject a batch of requests in input order.

        Returns:
            Tuple of (confirmed requests, rejected requests)
        """
        await self._get_configs()

        def operation() -> Tuple[List[ParticipationRequest], List[ParticipationRequest]]:
            with db_manager.get_transaction_session() as session:
                result = BulkStatusUpdater(session).update_statuses(
                    initiator_id, event_id, request_ids, decision
                )
                session.commit()
                return result

        return await event_locks.run_locked(event_id, operation, self.consistency_config)

    async def get_user_requests(self, user_id: int) -> List[ParticipationRequest]:
        """
        Get all requests made by a user.

        Raises:
            NotFoundError: If the user does not exist
        """
        with db_manager.get_session() as session:
            self._ensure_user(session, user_id)
            return ParticipationRequestRepository(session).get_by_requester(user_id)

    async def get_event_requests(self, initiator_id: int, event_id: int) -> List[ParticipationRequest]:
        """
        Get all requests of an event for its initiator.

        Raises:
            NotFoundError: If the event does not exist
            ValidationError: If the caller is not the initiator
        """
        with db_manager.get_session() as session:
            event = self._get_event(session, event_id)
            ensure_event_initiator(initiator_id, event)
            return ParticipationRequestRepository(session).get_by_event(event_id)


# Global request service instance
request_service = ParticipationRequestService()
