"""Event contracts - typed domain events and outbox/inbox records."""

from fitness_events.contracts.events import DomainEvent, UserMetricAdded, UserProfileUpdated
from fitness_events.contracts.records import (
    InboxRecord,
    InboxStatus,
    OutboxRecord,
    OutboxStats,
    truncate_error,
)

__all__ = [
    "DomainEvent",
    "UserMetricAdded",
    "UserProfileUpdated",
    "InboxRecord",
    "InboxStatus",
    "OutboxRecord",
    "OutboxStats",
    "truncate_error",
]
