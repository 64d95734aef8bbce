"""
Relational Outbox Store

Outbox records for the relational backend, stored in outbox_messages next to
the module tables they describe.

Features:
- append() joins the caller's AsyncSession; the caller's commit publishes it
- Single-statement guarded updates (WHERE is_processed = false), so a
  terminal record is never touched again
- Operator queries: stats, poisoned listing, replay
"""

import logging

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fitcore.timeutils import utcnow

from fitness_events.contracts.records import (
    LAST_ERROR_MAX_LENGTH,
    OutboxRecord,
    OutboxStats,
    truncate_error,
)
from fitness_events.errors import OutboxAppendError, RecordNotFoundError, RecordNotTerminalError
from fitness_events.persistence.models import OutboxMessageRow

logger = logging.getLogger(__name__)


def _row_id(record_id: int | str) -> int | None:
    """Relational ids are integers; anything else cannot exist in this table."""
    try:
        return int(record_id)
    except (TypeError, ValueError):
        return None


class SqlOutboxStore:
    """Outbox store backed by SQLAlchemy (PostgreSQL in production)."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        name: str = "relational",
        last_error_max_length: int = LAST_ERROR_MAX_LENGTH,
    ):
        self.name = name
        self._session_factory = session_factory
        self._last_error_max_length = last_error_max_length

    async def append(self, transaction: AsyncSession, record: OutboxRecord) -> OutboxRecord:
        """
        Add a record to the caller's session.

        The session is flushed so the record gets its id, but never committed:
        the record exists only if the caller commits.

        Args:
            transaction: The caller's AsyncSession holding the business mutation
            record: Unsaved record (id is None)

        Returns:
            The record as inserted, with its id
        """
        if not isinstance(transaction, AsyncSession):
            raise OutboxAppendError(
                f"Relational outbox append needs an AsyncSession, got {type(transaction).__name__}"
            )

        row = OutboxMessageRow.from_record(record)
        transaction.add(row)
        await transaction.flush()

        logger.debug(
            f"Appended outbox record {row.id} ({record.event_type})",
            extra={"backend": self.name, "event_id": record.event_id, "event_type": record.event_type},
        )
        return row.to_record()

    async def poll_unprocessed(self, batch_size: int, max_retry_count: int) -> list[OutboxRecord]:
        query = (
            select(OutboxMessageRow)
            .where(
                OutboxMessageRow.is_processed.is_(False),
                OutboxMessageRow.retry_count < max_retry_count,
            )
            .order_by(OutboxMessageRow.created_at.asc(), OutboxMessageRow.id.asc())
            .limit(batch_size)
        )
        async with self._session_factory() as session:
            result = await session.execute(query)
            return [row.to_record() for row in result.scalars()]

    async def mark_processed(self, record_id: int | str) -> bool:
        row_id = _row_id(record_id)
        if row_id is None:
            return False

        statement = (
            update(OutboxMessageRow)
            .where(OutboxMessageRow.id == row_id, OutboxMessageRow.is_processed.is_(False))
            .values(is_processed=True, processed_at=utcnow())
        )
        async with self._session_factory() as session:
            result = await session.execute(statement)
            await session.commit()
        return result.rowcount > 0

    async def mark_failed(self, record_id: int | str, error: str, poison: bool = False) -> bool:
        row_id = _row_id(record_id)
        if row_id is None:
            return False

        values = {
            "retry_count": OutboxMessageRow.retry_count + 1,
            "last_error": truncate_error(error, self._last_error_max_length),
        }
        if poison:
            values["is_processed"] = True
            values["is_poisoned"] = True
            values["processed_at"] = utcnow()

        statement = (
            update(OutboxMessageRow)
            .where(OutboxMessageRow.id == row_id, OutboxMessageRow.is_processed.is_(False))
            .values(**values)
        )
        async with self._session_factory() as session:
            result = await session.execute(statement)
            await session.commit()
        return result.rowcount > 0

    async def get(self, record_id: int | str) -> OutboxRecord | None:
        row_id = _row_id(record_id)
        if row_id is None:
            return None
        async with self._session_factory() as session:
            row = await session.get(OutboxMessageRow, row_id)
            return row.to_record() if row is not None else None

    async def stats(self) -> OutboxStats:
        terminal = OutboxMessageRow.is_processed.is_(True)
        poisoned = OutboxMessageRow.is_poisoned.is_(True)
        query = select(
            func.sum(case((~terminal, 1), else_=0)),
            func.sum(case((terminal & ~poisoned, 1), else_=0)),
            func.sum(case((poisoned, 1), else_=0)),
        )
        async with self._session_factory() as session:
            pending_count, processed_count, poisoned_count = (await session.execute(query)).one()

        return OutboxStats(
            backend=self.name,
            pending=int(pending_count or 0),
            processed=int(processed_count or 0),
            poisoned=int(poisoned_count or 0),
        )

    async def list_poisoned(self, limit: int = 50) -> list[OutboxRecord]:
        query = (
            select(OutboxMessageRow)
            .where(OutboxMessageRow.is_poisoned.is_(True))
            .order_by(OutboxMessageRow.processed_at.desc(), OutboxMessageRow.id.desc())
            .limit(limit)
        )
        async with self._session_factory() as session:
            result = await session.execute(query)
            return [row.to_record() for row in result.scalars()]

    async def replay(self, record_id: int | str) -> OutboxRecord:
        """
        Re-enqueue a terminal record as a fresh outbox record.

        The copy keeps event_id and payload, so consumers that already
        completed the event skip it through their inbox. The original row
        is left untouched.

        Raises:
            RecordNotFoundError: No record with this id
            RecordNotTerminalError: The record is still pending
        """
        row_id = _row_id(record_id)
        async with self._session_factory() as session:
            row = await session.get(OutboxMessageRow, row_id) if row_id is not None else None
            if row is None:
                raise RecordNotFoundError(self.name, record_id)

            original = row.to_record()
            if not original.is_processed:
                raise RecordNotTerminalError(self.name, record_id)

            replayed = await self.append(session, original.replay_copy())
            await session.commit()

        logger.info(
            f"Replayed outbox record {original.id} as {replayed.id}",
            extra={"backend": self.name, "event_id": original.event_id, "event_type": original.event_type},
        )
        return replayed
