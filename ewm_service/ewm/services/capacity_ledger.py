"""
Capacity ledger: the single place where confirmed participants are counted.
Counts are never cached; callers that confirm must ask inside the event lock
and the same transaction as the write.
"""

from sqlalchemy.orm import Session

from ewm.db.repositories import ParticipationRequestRepository
from ewm.models.event import Event
from ewm.models.request import RequestStatus


class CapacityLedger:
    """
    Derived view over CONFIRMED requests of an event.
    """

    def __init__(self, session: Session):
        self.requests = ParticipationRequestRepository(session)

    def confirmed_count(self, event_id: int) -> int:
        """Number of CONFIRMED requests of the event."""
        return self.requests.count_by_event_and_status(event_id, RequestStatus.CONFIRMED)

    def has_capacity(self, event: Event) -> bool:
        """True when one more participant can be confirmed."""
        if event.has_unlimited_capacity:
            return True
        return self.confirmed_count(event.id) < event.participant_limit

    def is_full(self, event: Event) -> bool:
        return not self.has_capacity(event)
