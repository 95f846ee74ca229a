"""
Stateless field and timing checks shared by the event and request services.
All checks raise ValidationError with a message naming the field or rule.
"""

from datetime import datetime, timedelta
from typing import Optional

from ewm.core.exceptions import ValidationError

# (min, max) length after trimming
TEXT_FIELD_BOUNDS = {
    "annotation": (20, 2000),
    "description": (20, 7000),
    "title": (3, 120),
}

CREATION_LEAD_HOURS = 2
PUBLISH_LEAD_HOURS = 1


def to_naive_local(value: Optional[datetime]) -> Optional[datetime]:
    """
    Convert an offset-aware datetime to naive local time.

    Event dates are stored and compared as naive local times, so ISO input
    with "Z" or "+03:00" is shifted into the server's zone first.
    """
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def validate_text_field(field_name: str, value: Optional[str]) -> str:
    """
    Validate a bounded free-text field.

    Returns:
        The trimmed value
    """
    label = field_name.capitalize()
    if value is None or not value.strip():
        raise ValidationError(f"{label} cannot be empty")

    trimmed = value.strip()
    min_length, max_length = TEXT_FIELD_BOUNDS[field_name]
    if len(trimmed) < min_length or len(trimmed) > max_length:
        raise ValidationError(f"{label} must be between {min_length} and {max_length} characters")

    return trimmed


def validate_participant_limit(value: Optional[int]) -> None:
    if value is not None and value < 0:
        raise ValidationError("Participant limit cannot be negative")


def validate_event_date_lead(
    event_date: datetime,
    lead_hours: int = CREATION_LEAD_HOURS,
    now: Optional[datetime] = None
) -> None:
    """Event date set by the initiator must leave the creation lead time."""
    now = now or datetime.now()
    event_date = to_naive_local(event_date)
    if event_date < now + timedelta(hours=lead_hours):
        raise ValidationError(f"Event date must be at least {lead_hours} hours from now")


def validate_publish_lead(
    event_date: datetime,
    lead_hours: int = PUBLISH_LEAD_HOURS,
    now: Optional[datetime] = None
) -> None:
    """An event can only be published while its start is far enough away."""
    now = now or datetime.now()
    event_date = to_naive_local(event_date)
    if event_date < now + timedelta(hours=lead_hours):
        raise ValidationError(
            f"Cannot publish event because it starts in less than {lead_hours} hour"
            + ("s" if lead_hours != 1 else "")
        )


def validate_future_date(event_date: datetime, now: Optional[datetime] = None) -> None:
    now = now or datetime.now()
    event_date = to_naive_local(event_date)
    if event_date < now:
        raise ValidationError("Event date must be in the future")


def validate_pagination(from_: int, size: int) -> None:
    if from_ < 0:
        raise ValidationError("From must be non-negative")
    if size <= 0:
        raise ValidationError("Size must be positive")


def validate_date_range(range_start: Optional[datetime], range_end: Optional[datetime]) -> None:
    if range_start is not None and range_end is not None and range_start > range_end:
        raise ValidationError("Start date must be before end date")
