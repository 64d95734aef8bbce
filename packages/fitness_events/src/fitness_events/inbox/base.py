"""
Inbox Store contract.

Each consuming module keeps its ledger in the backend where its own side
effects live. Uniqueness of (consumer, event_id) is the store's job.
"""

from datetime import datetime
from typing import Protocol, runtime_checkable

from fitness_events.contracts.records import InboxRecord, InboxStatus


@runtime_checkable
class InboxStore(Protocol):
    name: str

    async def get(self, consumer: str, event_id: str) -> InboxRecord | None:
        ...

    async def try_insert(self, record: InboxRecord) -> bool:
        """Insert a new row. False if (consumer, event_id) already exists."""
        ...

    async def reclaim(
        self,
        consumer: str,
        event_id: str,
        expected: InboxStatus,
        stale_before: datetime | None = None,
    ) -> bool:
        """
        Compare-and-set an existing row back to processing.

        Succeeds only if the row still has status `expected` (and, when
        stale_before is given, was created before it). created_at is reset so
        the new owner's attempt is timed from now.
        """
        ...

    async def mark_completed(self, consumer: str, event_id: str) -> None:
        ...

    async def mark_failed(self, consumer: str, event_id: str, error: str) -> None:
        ...
