"""
Request creation tests for ParticipationRequestService.
Covers uniqueness, auto-confirmation and the participant limit.
"""

import pytest
import asyncio
from unittest.mock import patch

from ewm.core.exceptions import ConflictError, NotFoundError
from ewm.models.event import EventState
from ewm.models.request import ParticipationRequest, RequestStatus


class TestRequestCreation:
    """Test cases for participation request creation."""

    @pytest.mark.asyncio
    async def test_create_pending_request_on_moderated_event(self, request_service, make_user, make_event):
        initiator, requester = make_user(), make_user()
        event = make_event(initiator, participant_limit=10, request_moderation=True)

        request = await request_service.create_request(requester.id, event.id)

        assert request.id is not None
        assert request.status == RequestStatus.PENDING
        assert request.event_id == event.id
        assert request.requester_id == requester.id

    @pytest.mark.asyncio
    async def test_auto_confirm_without_moderation(self, request_service, make_user, make_event):
        initiator, requester = make_user(), make_user()
        event = make_event(initiator, participant_limit=10, request_moderation=False)

        request = await request_service.create_request(requester.id, event.id)

        assert request.status == RequestStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_auto_confirm_with_unlimited_capacity(self, request_service, make_user, make_event):
        """Unlimited events confirm right away even when moderated."""
        initiator, requester = make_user(), make_user()
        event = make_event(initiator, participant_limit=0, request_moderation=True)

        request = await request_service.create_request(requester.id, event.id)

        assert request.status == RequestStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_duplicate_request_conflicts(self, request_service, make_user, make_event, db_session):
        initiator, requester = make_user(), make_user()
        event = make_event(initiator, participant_limit=10)

        await request_service.create_request(requester.id, event.id)

        with pytest.raises(ConflictError, match="already exists"):
            await request_service.create_request(requester.id, event.id)

        db_session.expire_all()
        count = db_session.query(ParticipationRequest).filter_by(
            event_id=event.id, requester_id=requester.id
        ).count()
        assert count == 1

    @pytest.mark.asyncio
    async def test_initiator_cannot_request_own_event(self, request_service, make_user, make_event):
        initiator = make_user()
        event = make_event(initiator)

        with pytest.raises(ConflictError, match="Initiator"):
            await request_service.create_request(initiator.id, event.id)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("state", [EventState.PENDING, EventState.CANCELED])
    async def test_unpublished_event_conflicts(self, request_service, make_user, make_event, state):
        initiator, requester = make_user(), make_user()
        event = make_event(initiator, state=state, published_on=None)

        with pytest.raises(ConflictError, match="unpublished"):
            await request_service.create_request(requester.id, event.id)

    @pytest.mark.asyncio
    async def test_full_event_conflicts(self, request_service, make_user, make_event, make_request):
        initiator, first, second = make_user(), make_user(), make_user()
        event = make_event(initiator, participant_limit=1)
        make_request(event, first, RequestStatus.CONFIRMED)

        with pytest.raises(ConflictError, match="participant limit"):
            await request_service.create_request(second.id, event.id)

    @pytest.mark.asyncio
    async def test_missing_user_or_event(self, request_service, make_user, make_event):
        initiator = make_user()
        event = make_event(initiator)

        with pytest.raises(NotFoundError, match="User"):
            await request_service.create_request(9999, event.id)

        with pytest.raises(NotFoundError, match="Event"):
            await request_service.create_request(initiator.id, 9999)


class TestConcurrentRequestCreation:
    """Concurrent creation must never overfill an event."""

    @pytest.mark.asyncio
    async def test_concurrent_auto_confirmed_requests_respect_limit(
        self, request_service, make_user, make_event, db_session
    ):
        initiator = make_user()
        requesters = [make_user() for _ in range(6)]
        event = make_event(initiator, participant_limit=2, request_moderation=False)

        results = await asyncio.gather(
            *[request_service.create_request(user.id, event.id) for user in requesters],
            return_exceptions=True
        )

        created = [r for r in results if isinstance(r, ParticipationRequest)]
        conflicts = [r for r in results if isinstance(r, ConflictError)]
        assert len(created) == 2
        assert len(conflicts) == 4

        db_session.expire_all()
        confirmed = db_session.query(ParticipationRequest).filter_by(
            event_id=event.id, status=RequestStatus.CONFIRMED
        ).count()
        assert confirmed == 2

    @pytest.mark.asyncio
    async def test_concurrent_duplicates_yield_single_request(self, request_service, make_user, make_event):
        initiator, requester = make_user(), make_user()
        event = make_event(initiator, participant_limit=5)

        results = await asyncio.gather(
            *[request_service.create_request(requester.id, event.id) for _ in range(3)],
            return_exceptions=True
        )

        assert sum(isinstance(r, ParticipationRequest) for r in results) == 1
        assert sum(isinstance(r, ConflictError) for r in results) == 2

    @pytest.mark.asyncio
    async def test_unique_index_catches_duplicate_missed_by_lookup(
        self, request_service, make_user, make_event, make_request, db_session
    ):
        """A duplicate insert that slips past the lookup is retried, then reported as a conflict."""
        initiator, requester = make_user(), make_user()
        event = make_event(initiator, participant_limit=5)
        existing = make_request(event, requester)

        with patch(
            'ewm.services.request_service.ParticipationRequestRepository.get_by_event_and_requester',
            return_value=None
        ) as lookup:
            with pytest.raises(ConflictError, match="already exists"):
                await request_service.create_request(requester.id, event.id)

        # first attempt plus max_retry_attempts retries
        assert lookup.call_count == 3

        db_session.expire_all()
        rows = db_session.query(ParticipationRequest).filter_by(
            event_id=event.id, requester_id=requester.id
        ).all()
        assert [row.id for row in rows] == [existing.id]
        assert rows[0].status == RequestStatus.PENDING
