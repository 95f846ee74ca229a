"""
Tests for Event model.
"""

import pytest
from datetime import datetime, timedelta
from sqlalchemy.exc import IntegrityError

from ewm.models.event import Event, EventState


class TestEventModel:
    """Test cases for Event model."""

    def test_defaults(self, db_session, make_user, category):
        initiator = make_user()
        event = Event(
            title="Jazz night",
            annotation="An evening of live jazz in the park",
            description="Bring a blanket, food trucks will be on site all evening",
            category_id=category.id,
            initiator_id=initiator.id,
            event_date=datetime.now() + timedelta(days=1)
        )
        db_session.add(event)
        db_session.commit()

        assert event.state == EventState.PENDING
        assert event.participant_limit == 0
        assert event.request_moderation is True
        assert event.paid is False
        assert event.published_on is None
        assert event.created_on is not None

    def test_properties(self, make_user, make_event):
        event = make_event(make_user(), participant_limit=0)

        assert event.has_unlimited_capacity
        assert event.is_published
        assert event.location == {"lat": 55.75, "lon": 37.62}

    def test_finite_capacity(self, make_user, make_event):
        event = make_event(make_user(), participant_limit=3, state=EventState.PENDING, published_on=None)

        assert not event.has_unlimited_capacity
        assert not event.is_published

    def test_negative_limit_rejected_by_database(self, db_session, make_user, make_event):
        with pytest.raises(IntegrityError):
            make_event(make_user(), participant_limit=-1)
        db_session.rollback()

    def test_repr(self, make_user, make_event):
        event = make_event(make_user())
        assert "Jazz night" in repr(event)
