"""
Participation request model for EWM Service.
"""

from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import Column, Integer, DateTime, Enum, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship

from ewm.models.event import Base


class RequestStatus(str, PyEnum):
    """Participation request status."""
    PENDING = "PENDING"          # Waiting for the organizer
    CONFIRMED = "CONFIRMED"      # Counts against the participant limit
    REJECTED = "REJECTED"        # Declined by the organizer or by capacity
    CANCELED = "CANCELED"        # Withdrawn by the requester


class ParticipationRequest(Base):
    """
    One user's request to attend one event.
    At most one request exists per (event, requester).
    """

    __tablename__ = "participation_requests"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    requester_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(Enum(RequestStatus), default=RequestStatus.PENDING, nullable=False, index=True)
    created = Column(DateTime, default=datetime.now, nullable=False)

    event = relationship("Event")
    requester = relationship("User")

    __table_args__ = (
        UniqueConstraint('event_id', 'requester_id', name='unique_event_requester'),
        Index('idx_request_event_status', 'event_id', 'status'),
    )

    def __repr__(self):
        return f"<ParticipationRequest(id={self.id}, event_id={self.event_id}, status='{self.status}')>"
