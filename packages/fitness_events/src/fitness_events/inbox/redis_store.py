"""
Document Inbox Store (Redis)

One JSON document per (consumer, event_id) under
{prefix}:inbox:{consumer}:{event_id}. SET NX gives the unique insert;
reclaiming uses WATCH/MULTI so only one worker wins the compare-and-set.
"""

import json
import logging
from datetime import datetime

import redis.asyncio as redis
from redis.exceptions import WatchError

from fitcore.redis import redis_key
from fitcore.timeutils import parse_datetime, utcnow

from fitness_events.contracts.records import InboxRecord, InboxStatus

logger = logging.getLogger(__name__)


def _dump(record: InboxRecord) -> str:
    return json.dumps({
        "consumer": record.consumer,
        "event_id": record.event_id,
        "event_type": record.event_type,
        "status": InboxStatus(record.status).value,
        "created_at": record.created_at.isoformat(),
        "processed_at": record.processed_at.isoformat() if record.processed_at else None,
        "error": record.error,
    })


def _load(key: str, raw: str) -> InboxRecord:
    data = json.loads(raw)
    return InboxRecord(
        id=key,
        consumer=data["consumer"],
        event_id=data["event_id"],
        event_type=data["event_type"],
        status=InboxStatus(data["status"]),
        created_at=parse_datetime(data["created_at"]),
        processed_at=parse_datetime(data.get("processed_at")),
        error=data.get("error"),
    )


class RedisInboxStore:
    """Inbox ledger for consumers whose side effects live in the document store."""

    def __init__(self, client: redis.Redis, prefix: str = "fitness", name: str = "documents"):
        self.name = name
        self._redis = client
        self._prefix = prefix

    def inbox_key(self, consumer: str, event_id: str) -> str:
        return redis_key(self._prefix, "inbox", consumer, event_id)

    async def get(self, consumer: str, event_id: str) -> InboxRecord | None:
        key = self.inbox_key(consumer, event_id)
        raw = await self._redis.get(key)
        return _load(key, raw) if raw is not None else None

    async def try_insert(self, record: InboxRecord) -> bool:
        inserted = await self._redis.set(self.inbox_key(record.consumer, record.event_id), _dump(record), nx=True)
        return bool(inserted)

    async def reclaim(
        self,
        consumer: str,
        event_id: str,
        expected: InboxStatus,
        stale_before: datetime | None = None,
    ) -> bool:
        key = self.inbox_key(consumer, event_id)
        async with self._redis.pipeline(transaction=True) as pipe:
            while True:
                try:
                    await pipe.watch(key)
                    raw = await pipe.get(key)
                    if raw is None:
                        return False
                    current = _load(key, raw)
                    if current.status != expected:
                        return False
                    if stale_before is not None and current.created_at >= stale_before:
                        return False

                    current.status = InboxStatus.PROCESSING
                    current.created_at = utcnow()
                    current.processed_at = None
                    current.error = None

                    pipe.multi()
                    pipe.set(key, _dump(current), xx=True)
                    await pipe.execute()
                    return True
                except WatchError:
                    logger.debug(f"Inbox row {key} changed during reclaim, re-checking")
                    continue

    async def _set_status(self, consumer: str, event_id: str, status: InboxStatus, error: str | None) -> None:
        key = self.inbox_key(consumer, event_id)
        raw = await self._redis.get(key)
        if raw is None:
            logger.warning(
                f"Inbox row {key} disappeared before it could be marked {status}",
                extra={"consumer": consumer, "event_id": event_id},
            )
            return

        record = _load(key, raw)
        record.status = status
        record.processed_at = utcnow()
        record.error = error
        await self._redis.set(key, _dump(record), xx=True)

    async def mark_completed(self, consumer: str, event_id: str) -> None:
        await self._set_status(consumer, event_id, InboxStatus.COMPLETED, None)

    async def mark_failed(self, consumer: str, event_id: str, error: str) -> None:
        await self._set_status(consumer, event_id, InboxStatus.FAILED, error)
