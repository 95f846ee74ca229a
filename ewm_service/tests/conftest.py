"""
Test configuration and fixtures for EWM Service.
Focuses on capacity and state machine consistency scenarios.
"""

import os

os.environ.setdefault("ZERO_TOKEN", "test-token")

import pytest
from contextlib import contextmanager
from datetime import datetime, timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from unittest.mock import AsyncMock, MagicMock, patch

from ewm.models.event import Base, Category, Event, EventState, User
from ewm.models.request import ParticipationRequest, RequestStatus
from ewm.services.event_lock import event_locks
from ewm.services.event_service import EventService
from ewm.services.request_service import ParticipationRequestService

# Test database URL
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_ewm.db"

# Create test engine
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Services hand ORM objects back after their session is closed
TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
)


@pytest.fixture(autouse=True)
def reset_event_locks():
    """Local locks must not outlive the event loop of a single test."""
    event_locks.reset()
    yield
    event_locks.reset()


@pytest.fixture
def db_session():
    """Create a database session for testing."""
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def initialized_db_manager(db_session):
    """Mock the global database manager for testing."""
    mock_db_manager = MagicMock()
    mock_db_manager._initialized = True

    @contextmanager
    def mock_get_transaction_session():
        session = TestingSessionLocal()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def mock_get_session():
        session = TestingSessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    mock_db_manager.get_transaction_session = mock_get_transaction_session
    mock_db_manager.get_session = mock_get_session
    mock_db_manager.health_check = MagicMock(return_value=True)

    with patch('ewm.db.database.db_manager', mock_db_manager), \
         patch('ewm.services.request_service.db_manager', mock_db_manager), \
         patch('ewm.services.event_service.db_manager', mock_db_manager):
        yield mock_db_manager


@pytest.fixture
def consistency_config():
    """In-process locking with fast retries."""
    return {
        "lock_timeout_seconds": 30,
        "lock_blocking_timeout_seconds": 5,
        "max_retry_attempts": 2,
        "retry_delay_ms": 1,
        "enable_distributed_locks": False
    }


@pytest.fixture
def event_rules_config():
    return {"creation_lead_hours": 2, "publish_lead_hours": 1}


@pytest.fixture
def mock_stats_client():
    """Stats server that reports no views."""
    with patch('ewm.services.event_service.stats_client') as mock_client:
        mock_client.get_event_views = AsyncMock(return_value=0)
        yield mock_client


@pytest.fixture
def request_service(initialized_db_manager, consistency_config):
    """Create request service instance for testing."""
    service = ParticipationRequestService()
    service.consistency_config = consistency_config
    return service


@pytest.fixture
def event_service(initialized_db_manager, consistency_config, event_rules_config, mock_stats_client):
    """Create event service instance for testing."""
    service = EventService()
    service.consistency_config = consistency_config
    service.event_rules_config = event_rules_config
    return service


@pytest.fixture
def make_user(db_session):
    """Factory for persisted users."""
    counter = {"n": 0}

    def _make_user(name: str = None) -> User:
        counter["n"] += 1
        user = User(
            name=name or f"User {counter['n']}",
            email=f"user{counter['n']}@example.com"
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make_user


@pytest.fixture
def category(db_session):
    category = Category(name="Concerts")
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture
def make_event(db_session, category):
    """Factory for persisted events; published with moderation by default."""

    def _make_event(initiator: User, **overrides) -> Event:
        values = {
            "title": "Jazz night",
            "annotation": "An evening of live jazz in the park",
            "description": "Bring a blanket, food trucks will be on site all evening",
            "category_id": category.id,
            "initiator_id": initiator.id,
            "event_date": datetime.now() + timedelta(days=3),
            "created_on": datetime.now(),
            "state": EventState.PUBLISHED,
            "published_on": datetime.now(),
            "location_lat": 55.75,
            "location_lon": 37.62,
            "paid": False,
            "participant_limit": 0,
            "request_moderation": True,
        }
        values.update(overrides)
        event = Event(**values)
        db_session.add(event)
        db_session.commit()
        return event

    return _make_event


@pytest.fixture
def make_request(db_session):
    """Factory for persisted participation requests."""

    def _make_request(event: Event, requester: User, status: RequestStatus = RequestStatus.PENDING):
        request = ParticipationRequest(event_id=event.id, requester_id=requester.id, status=status)
        db_session.add(request)
        db_session.commit()
        return request

    return _make_request


@pytest.fixture
def reload(db_session):
    """Read the committed state of an entity."""

    def _reload(model, entity_id):
        db_session.expire_all()
        return db_session.get(model, entity_id)

    return _reload
