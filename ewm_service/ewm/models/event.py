"""
Event models for EWM Service.
Events, their initiators and categories.
"""

from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import (
    Column, Integer, String, Text, DateTime, Boolean, Float, Enum,
    ForeignKey, CheckConstraint, Index
)
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import relationship

Base = declarative_base()


class EventState(str, PyEnum):
    """Event lifecycle state."""
    PENDING = "PENDING"          # Awaiting admin review
    PUBLISHED = "PUBLISHED"      # Visible, open for requests
    CANCELED = "CANCELED"        # Rejected by admin or withdrawn by owner


class User(Base):
    """Registered user. Managed elsewhere, read here for validation."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(250), nullable=False)
    email = Column(String(254), unique=True, nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"


class Category(Base):
    """Event category. Managed elsewhere, read here for validation."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False)

    def __repr__(self):
        return f"<Category(id={self.id}, name='{self.name}')>"


class Event(Base):
    """
    Event proposed by its initiator and moderated by administrators.
    published_on is only set by the publish transition.
    """

    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(120), nullable=False)
    annotation = Column(String(2000), nullable=False)
    description = Column(Text, nullable=False)

    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)
    initiator_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    event_date = Column(DateTime, nullable=False, index=True)
    created_on = Column(DateTime, default=datetime.now, nullable=False)
    published_on = Column(DateTime, nullable=True)

    state = Column(Enum(EventState), default=EventState.PENDING, nullable=False, index=True)

    location_lat = Column(Float, nullable=True)
    location_lon = Column(Float, nullable=True)

    paid = Column(Boolean, default=False, nullable=False)
    participant_limit = Column(Integer, default=0, nullable=False)  # 0 = unlimited
    request_moderation = Column(Boolean, default=True, nullable=False)

    category = relationship("Category")
    initiator = relationship("User")

    __table_args__ = (
        CheckConstraint('participant_limit >= 0', name='check_participant_limit_non_negative'),
        Index('idx_event_initiator_state', 'initiator_id', 'state'),
    )

    def __repr__(self):
        return f"<Event(id={self.id}, title='{self.title}', state='{self.state}')>"

    @property
    def location(self) -> dict:
        """Location as a lat/lon pair."""
        return {"lat": self.location_lat, "lon": self.location_lon}

    @property
    def has_unlimited_capacity(self) -> bool:
        """Check if the event accepts any number of participants."""
        return not self.participant_limit

    @property
    def is_published(self) -> bool:
        """Check if the event is published."""
        return self.state == EventState.PUBLISHED
