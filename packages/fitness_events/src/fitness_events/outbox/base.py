"""
Outbox Record Store contract.

One implementation per physical backend. The processor only ever talks to
this protocol, so both backends share one processing loop while keeping
their own batches and failure bookkeeping.

Only one processor instance may poll a given store: polling is a plain
read, not an atomic claim, so two instances would both dispatch the same
record.
"""

from typing import Any, Protocol, runtime_checkable

from fitness_events.contracts.records import OutboxRecord, OutboxStats


@runtime_checkable
class BackendStore(Protocol):
    """Outbox store for one physical backend."""

    name: str

    async def append(self, transaction: Any, record: OutboxRecord) -> OutboxRecord:
        """
        Add a record inside the caller's open transaction.

        Never commits. The record becomes visible if and only if the caller's
        transaction commits.
        """
        ...

    async def poll_unprocessed(self, batch_size: int, max_retry_count: int) -> list[OutboxRecord]:
        """Up to batch_size pending records with retry_count < max_retry_count, oldest first."""
        ...

    async def mark_processed(self, record_id: int | str) -> bool:
        """Terminal success; last_error from earlier attempts is kept. Returns False if already terminal."""
        ...

    async def mark_failed(self, record_id: int | str, error: str, poison: bool = False) -> bool:
        """
        Record a failed attempt: retry_count + 1 and last_error.

        With poison=True the record also becomes terminal and is_poisoned. Returns False if
        the record was already terminal.
        """
        ...

    async def get(self, record_id: int | str) -> OutboxRecord | None:
        ...

    async def stats(self) -> OutboxStats:
        ...

    async def list_poisoned(self, limit: int = 50) -> list[OutboxRecord]:
        ...

    async def replay(self, record_id: int | str) -> OutboxRecord:
        """Append a fresh copy of a terminal record (same event_id and payload)."""
        ...
