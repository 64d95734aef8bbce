"""
Relational Inbox Store

Ledger rows in inbox_messages. A concurrent duplicate insert surfaces as an
IntegrityError from the (consumer, event_id) unique constraint and is
reported as "already claimed" rather than an error.
"""

import logging
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fitcore.timeutils import utcnow

from fitness_events.contracts.records import InboxRecord, InboxStatus
from fitness_events.persistence.models import InboxMessageRow

logger = logging.getLogger(__name__)


class SqlInboxStore:
    """Inbox ledger for consumers whose side effects live in the relational store."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], name: str = "relational"):
        self.name = name
        self._session_factory = session_factory

    def _row_filter(self, consumer: str, event_id: str):
        return (InboxMessageRow.consumer == consumer, InboxMessageRow.event_id == event_id)

    async def get(self, consumer: str, event_id: str) -> InboxRecord | None:
        async with self._session_factory() as session:
            result = await session.execute(select(InboxMessageRow).where(*self._row_filter(consumer, event_id)))
            row = result.scalar_one_or_none()
            return row.to_record() if row is not None else None

    async def try_insert(self, record: InboxRecord) -> bool:
        row = InboxMessageRow(
            consumer=record.consumer,
            event_id=record.event_id,
            event_type=record.event_type,
            status=InboxStatus(record.status).value,
            created_at=record.created_at,
        )
        async with self._session_factory() as session:
            session.add(row)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                logger.debug(
                    f"Inbox row for {record.consumer}/{record.event_id} already exists",
                    extra={"consumer": record.consumer, "event_id": record.event_id},
                )
                return False
        return True

    async def reclaim(
        self,
        consumer: str,
        event_id: str,
        expected: InboxStatus,
        stale_before: datetime | None = None,
    ) -> bool:
        conditions = [*self._row_filter(consumer, event_id), InboxMessageRow.status == InboxStatus(expected).value]
        if stale_before is not None:
            conditions.append(InboxMessageRow.created_at < stale_before)

        statement = (
            update(InboxMessageRow)
            .where(*conditions)
            .values(
                status=InboxStatus.PROCESSING.value,
                created_at=utcnow(),
                processed_at=None,
                error=None,
            )
        )
        async with self._session_factory() as session:
            result = await session.execute(statement)
            await session.commit()
        return result.rowcount > 0

    async def _set_status(self, consumer: str, event_id: str, status: InboxStatus, error: str | None) -> None:
        statement = (
            update(InboxMessageRow)
            .where(*self._row_filter(consumer, event_id))
            .values(status=status.value, processed_at=utcnow(), error=error)
        )
        async with self._session_factory() as session:
            await session.execute(statement)
            await session.commit()

    async def mark_completed(self, consumer: str, event_id: str) -> None:
        await self._set_status(consumer, event_id, InboxStatus.COMPLETED, None)

    async def mark_failed(self, consumer: str, event_id: str, error: str) -> None:
        await self._set_status(consumer, event_id, InboxStatus.FAILED, error)
