"""
Organizer-driven batch confirmation or rejection of participation requests.

Confirming a batch degrades past capacity: once the participant limit is hit,
the remaining items of the same batch are rejected instead of failing the call.
A non-PENDING item anywhere in the batch aborts the whole call.
"""

from typing import List, Sequence, Tuple
import logging

from sqlalchemy.orm import Session

from ewm.core.exceptions import ConflictError, NotFoundError
from ewm.core.logging import log_state_transition
from ewm.db.repositories import EventRepository, ParticipationRequestRepository
from ewm.models.request import ParticipationRequest, RequestStatus
from .capacity_ledger import CapacityLedger
from .permissions import ensure_event_initiator, ensure_request_of_event
from .transitions import RequestDecision, check_request_transition

logger = logging.getLogger(__name__)


class BulkStatusUpdater:
    """
    Applies one organizer decision to a list of requests of a single event.
    Runs inside the caller's event lock and transaction; does not commit.
    """

    def __init__(self, session: Session):
        self.session = session
        self.events = EventRepository(session)
        self.requests = ParticipationRequestRepository(session)
        self.ledger = CapacityLedger(session)

    def _load_in_input_order(self, request_ids: Sequence[int]) -> List[ParticipationRequest]:
        ordered_ids = list(dict.fromkeys(request_ids))
        found = {r.id: r for r in self.requests.get_by_ids(ordered_ids)}

        missing = [request_id for request_id in ordered_ids if request_id not in found]
        if missing:
            raise NotFoundError(f"Requests with ids={missing} were not found")

        return [found[request_id] for request_id in ordered_ids]

    def update_statuses(
        self,
        initiator_id: int,
        event_id: int,
        request_ids: Sequence[int],
        decision: RequestDecision
    ) -> Tuple[List[ParticipationRequest], List[ParticipationRequest]]:
        """
        Confirm or reject a batch of PENDING requests.

        Args:
            initiator_id: ID of the acting user, must own the event
            event_id: ID of the event
            request_ids: Request IDs, processed in the given order
            decision: CONFIRMED or REJECTED

        Returns:
            Tuple of (confirmed requests, rejected requests)

        Raises:
            NotFoundError: If the event or any request does not exist
            ValidationError: If the caller is not the initiator or a request belongs to another event
            ConflictError: If the limit is already reached or any item is not PENDING
        """
        event = self.events.get_by_id(event_id)
        if not event:
            raise NotFoundError(f"Event with id={event_id} was not found")

        ensure_event_initiator(initiator_id, event)

        batch = self._load_in_input_order(request_ids)
        for request in batch:
            ensure_request_of_event(request, event_id)

        confirmed_count = self.ledger.confirmed_count(event_id)
        limit = event.participant_limit
        finite = not event.has_unlimited_capacity

        if decision == RequestDecision.CONFIRMED and finite and confirmed_count >= limit:
            raise ConflictError("Event has reached participant limit")

        # Decide every item before touching any of them
        plan: List[Tuple[ParticipationRequest, RequestStatus]] = []
        for request in batch:
            check_request_transition(request.status, RequestStatus(decision.value))

            if decision == RequestDecision.REJECTED:
                plan.append((request, RequestStatus.REJECTED))
            elif finite and confirmed_count >= limit:
                plan.append((request, RequestStatus.REJECTED))
            else:
                plan.append((request, RequestStatus.CONFIRMED))
                confirmed_count += 1

        confirmed: List[ParticipationRequest] = []
        rejected: List[ParticipationRequest] = []
        for request, status in plan:
            old_status = request.status
            request.status = status
            (confirmed if status == RequestStatus.CONFIRMED else rejected).append(request)
            log_state_transition(
                "request", request.id, old_status.value, status.value,
                actor_id=initiator_id,
                reason="batch" if status.value == decision.value else "participant limit reached"
            )

        self.requests.save_all(request for request, _ in plan)

        logger.info(
            f"Batch {decision.value} for event {event_id}: "
            f"{len(confirmed)} confirmed, {len(rejected)} rejected"
        )
        return confirmed, rejected
