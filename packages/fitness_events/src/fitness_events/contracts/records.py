"""
Outbox and inbox records.

These are the backend-agnostic shapes the stores read and write. Each
physical backend maps them to its own representation (SQL rows, Redis
hashes/documents) but the field set is identical everywhere.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from fitcore.timeutils import utcnow

from fitness_events.contracts.events import DomainEvent

LAST_ERROR_MAX_LENGTH = 1000


def truncate_error(error: str | None, max_length: int = LAST_ERROR_MAX_LENGTH) -> str | None:
    """Bound an error message for storage."""
    if error is None:
        return None
    return error if len(error) <= max_length else error[:max_length]


@dataclass
class OutboxRecord:
    """
    An undelivered (or delivered) event in one backend's outbox.

    Attributes:
        id: Backend-native identifier, assigned at insert (None before)
        event_id: Stable identity of the logical event, distinct from id
        event_type: Discriminator resolved by the event type registry
        payload: Serialized event data
        created_at: Insert time, FIFO key within one backend
        is_processed: True once delivered or poisoned (terminal)
        is_poisoned: True when the record went terminal without being delivered
        processed_at: When the record reached the terminal state
        retry_count: Failed dispatch attempts so far
        last_error: Truncated error from the latest failed attempt, kept after delivery
        correlation_id: Optional correlation ID for tracing
        trace_id: Optional trace ID for tracing
    """

    event_id: str
    event_type: str
    payload: str
    created_at: datetime = field(default_factory=utcnow)
    id: int | str | None = None
    is_processed: bool = False
    is_poisoned: bool = False
    processed_at: datetime | None = None
    retry_count: int = 0
    last_error: str | None = None
    correlation_id: str | None = None
    trace_id: str | None = None

    @classmethod
    def from_event(cls, event: DomainEvent) -> "OutboxRecord":
        """Create a new, unsaved record announcing an event."""
        return cls(
            event_id=event.event_id,
            event_type=event.event_type,
            payload=event.to_payload(),
            correlation_id=event.correlation_id,
            trace_id=event.trace_id,
        )

    def replay_copy(self) -> "OutboxRecord":
        """Fresh unsaved record carrying the same logical event."""
        return replace(
            self,
            id=None,
            created_at=utcnow(),
            is_processed=False,
            is_poisoned=False,
            processed_at=None,
            retry_count=0,
            last_error=None,
        )


class InboxStatus(str, Enum):
    """Status of a consumer's ledger row for one event."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


@dataclass
class InboxRecord:
    """
    A consumer's idempotency ledger row, unique per (consumer, event_id).
    """

    consumer: str
    event_id: str
    event_type: str
    status: InboxStatus = InboxStatus.PROCESSING
    created_at: datetime = field(default_factory=utcnow)
    processed_at: datetime | None = None
    error: str | None = None
    id: int | str | None = None


@dataclass
class OutboxStats:
    """Counts for one backend's outbox."""

    backend: str
    pending: int
    processed: int
    poisoned: int

    def to_dict(self) -> dict:
        return {
            "backend": self.backend,
            "pending": self.pending,
            "processed": self.processed,
            "poisoned": self.poisoned,
        }
