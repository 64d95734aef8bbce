"""
Domain Events - typed events exchanged between fitness modules.

Every event serializes to a self-describing JSON payload (model_dump_json)
that is stored in the outbox and decoded again by the registry's decoder
(model_validate_json). The event_type class attribute is the stable
discriminator written next to the payload; it never changes once events
of that type have been persisted.
"""

from datetime import date, datetime
from typing import ClassVar
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from fitcore.timeutils import utcnow


class DomainEvent(BaseModel):
    """
    Base class for events announced through the outbox.

    Attributes:
        event_id: Stable identity of the logical event (UUID string)
        occurred_on: When the state change happened (UTC)
        correlation_id: Optional correlation ID for tracing
        trace_id: Optional trace ID for tracing
    """

    model_config = ConfigDict(frozen=True)

    event_type: ClassVar[str]

    event_id: str = Field(default_factory=lambda: str(uuid4()))
    occurred_on: datetime = Field(default_factory=utcnow)
    correlation_id: str | None = None
    trace_id: str | None = None

    def to_payload(self) -> str:
        """Serialize for storage in an outbox record."""
        return self.model_dump_json()

    @classmethod
    def from_payload(cls, payload: str) -> "DomainEvent":
        """Decoder used by the event type registry."""
        return cls.model_validate_json(payload)


class UserProfileUpdated(DomainEvent):
    """Users module: a profile changed (display name, gender, birth date or units)."""

    event_type: ClassVar[str] = "UserProfileUpdated"

    user_id: int
    display_name: str
    gender: str | None = None
    date_of_birth: date | None = None
    unit_preference: str
    updated_at: datetime


class UserMetricAdded(DomainEvent):
    """Users module: a body metric entry (weight/height) was recorded."""

    event_type: ClassVar[str] = "UserMetricAdded"

    user_metric_id: str
    user_id: int
    metric_date: date
    weight: float | None = None
    height: float | None = None
    bmi: float | None = None
    created_at: datetime = Field(default_factory=utcnow)
