"""
Batch decision tests.
Covers degradation past the participant limit and all-or-nothing aborts.
"""

import pytest

from ewm.core.exceptions import ConflictError, NotFoundError, ValidationError
from ewm.models.request import ParticipationRequest, RequestStatus
from ewm.services.bulk_status_updater import BulkStatusUpdater
from ewm.services.transitions import RequestDecision


class TestBulkConfirm:
    """Test cases for batch confirmation."""

    @pytest.mark.asyncio
    async def test_batch_degrades_past_limit_in_input_order(
        self, request_service, make_user, make_event, make_request
    ):
        initiator = make_user()
        event = make_event(initiator, participant_limit=1)
        first = make_request(event, make_user())
        second = make_request(event, make_user())

        confirmed, rejected = await request_service.update_request_statuses(
            initiator.id, event.id, [second.id, first.id], RequestDecision.CONFIRMED
        )

        assert [r.id for r in confirmed] == [second.id]
        assert [r.id for r in rejected] == [first.id]
        assert rejected[0].status == RequestStatus.REJECTED

    @pytest.mark.asyncio
    async def test_batch_on_full_event_aborts_without_changes(
        self, request_service, make_user, make_event, make_request, reload
    ):
        initiator = make_user()
        event = make_event(initiator, participant_limit=1)
        make_request(event, make_user(), RequestStatus.CONFIRMED)
        batch = [make_request(event, make_user()) for _ in range(2)]

        with pytest.raises(ConflictError, match="participant limit"):
            await request_service.update_request_statuses(
                initiator.id, event.id, [r.id for r in batch], RequestDecision.CONFIRMED
            )

        for request in batch:
            assert reload(ParticipationRequest, request.id).status == RequestStatus.PENDING

    @pytest.mark.asyncio
    async def test_non_pending_item_aborts_whole_batch(
        self, request_service, make_user, make_event, make_request, reload
    ):
        initiator = make_user()
        event = make_event(initiator, participant_limit=10)
        pending = make_request(event, make_user())
        canceled = make_request(event, make_user(), RequestStatus.CANCELED)

        with pytest.raises(ConflictError, match="PENDING"):
            await request_service.update_request_statuses(
                initiator.id, event.id, [pending.id, canceled.id], RequestDecision.CONFIRMED
            )

        assert reload(ParticipationRequest, pending.id).status == RequestStatus.PENDING

    @pytest.mark.asyncio
    async def test_unlimited_event_confirms_everything(self, request_service, make_user, make_event, make_request):
        initiator = make_user()
        event = make_event(initiator, participant_limit=0)
        batch = [make_request(event, make_user()) for _ in range(4)]

        confirmed, rejected = await request_service.update_request_statuses(
            initiator.id, event.id, [r.id for r in batch], RequestDecision.CONFIRMED
        )

        assert len(confirmed) == 4
        assert rejected == []

    @pytest.mark.asyncio
    async def test_batch_does_not_touch_pending_outside_it(
        self, request_service, make_user, make_event, make_request, reload
    ):
        initiator = make_user()
        event = make_event(initiator, participant_limit=1)
        chosen = make_request(event, make_user())
        outside = make_request(event, make_user())

        await request_service.update_request_statuses(
            initiator.id, event.id, [chosen.id], RequestDecision.CONFIRMED
        )

        assert reload(ParticipationRequest, outside.id).status == RequestStatus.PENDING


class TestBulkReject:
    """Test cases for batch rejection."""

    @pytest.mark.asyncio
    async def test_reject_batch_even_when_full(self, request_service, make_user, make_event, make_request):
        initiator = make_user()
        event = make_event(initiator, participant_limit=1)
        make_request(event, make_user(), RequestStatus.CONFIRMED)
        batch = [make_request(event, make_user()) for _ in range(2)]

        confirmed, rejected = await request_service.update_request_statuses(
            initiator.id, event.id, [r.id for r in batch], RequestDecision.REJECTED
        )

        assert confirmed == []
        assert [r.id for r in rejected] == [r.id for r in batch]


class TestBulkPreconditions:
    """Authorization and lookup failures of batch decisions."""

    def test_non_initiator_is_invalid(self, db_session, make_user, make_event, make_request):
        initiator, stranger = make_user(), make_user()
        event = make_event(initiator, participant_limit=5)
        request = make_request(event, make_user())

        with pytest.raises(ValidationError):
            BulkStatusUpdater(db_session).update_statuses(
                stranger.id, event.id, [request.id], RequestDecision.CONFIRMED
            )

    def test_request_of_other_event_is_invalid(self, db_session, make_user, make_event, make_request):
        initiator = make_user()
        event = make_event(initiator, participant_limit=5)
        own = make_request(event, make_user())
        foreign = make_request(make_event(initiator), make_user())

        with pytest.raises(ValidationError, match="doesn't belong"):
            BulkStatusUpdater(db_session).update_statuses(
                initiator.id, event.id, [own.id, foreign.id], RequestDecision.REJECTED
            )

        assert own.status == RequestStatus.PENDING

    def test_unknown_request_ids(self, db_session, make_user, make_event, make_request):
        initiator = make_user()
        event = make_event(initiator, participant_limit=5)
        request = make_request(event, make_user())

        with pytest.raises(NotFoundError, match="9999"):
            BulkStatusUpdater(db_session).update_statuses(
                initiator.id, event.id, [request.id, 9999], RequestDecision.CONFIRMED
            )

    def test_duplicate_ids_are_processed_once(self, db_session, make_user, make_event, make_request):
        initiator = make_user()
        event = make_event(initiator, participant_limit=5)
        request = make_request(event, make_user())

        confirmed, rejected = BulkStatusUpdater(db_session).update_statuses(
            initiator.id, event.id, [request.id, request.id], RequestDecision.CONFIRMED
        )

        assert [r.id for r in confirmed] == [request.id]
        assert rejected == []
