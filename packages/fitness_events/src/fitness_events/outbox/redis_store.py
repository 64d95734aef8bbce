"""
Document Outbox Store (Redis)

Outbox records for the document backend. The business document and its
outbox record are written by the same MULTI/EXEC pipeline, which is the
document store's unit of atomicity.

Key layout (prefix defaults to REDIS_KEY_PREFIX):
- {prefix}:outbox:record:{id}  hash with the record fields
- {prefix}:outbox:pending      sorted set of pending ids, scored by created_at
- {prefix}:outbox:processed    sorted set of delivered ids, scored by processed_at
- {prefix}:outbox:poisoned     sorted set of poisoned ids, scored by processed_at

Updates WATCH the record hash and re-check is_processed before MULTI, so a
terminal record is never modified again.
"""

import logging
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import redis.asyncio as redis
from redis.asyncio.client import Pipeline
from redis.exceptions import WatchError

from fitcore.redis import redis_key
from fitcore.timeutils import parse_datetime, utcnow

from fitness_events.contracts.records import (
    LAST_ERROR_MAX_LENGTH,
    OutboxRecord,
    OutboxStats,
    truncate_error,
)
from fitness_events.errors import OutboxAppendError, RecordNotFoundError, RecordNotTerminalError

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _score(value: datetime) -> int:
    """Microseconds since the epoch; integral so sorted-set scores stay exact."""
    return (value - _EPOCH) // timedelta(microseconds=1)


def _to_hash(record: OutboxRecord) -> dict[str, str]:
    return {
        "event_id": record.event_id,
        "event_type": record.event_type,
        "payload": record.payload,
        "created_at": record.created_at.isoformat(),
        "is_processed": "1" if record.is_processed else "0",
        "is_poisoned": "1" if record.is_poisoned else "0",
        "processed_at": record.processed_at.isoformat() if record.processed_at else "",
        "retry_count": str(record.retry_count),
        "last_error": record.last_error or "",
        "correlation_id": record.correlation_id or "",
        "trace_id": record.trace_id or "",
    }


def _from_hash(record_id: str, data: dict[str, str]) -> OutboxRecord:
    return OutboxRecord(
        id=record_id,
        event_id=data["event_id"],
        event_type=data["event_type"],
        payload=data["payload"],
        created_at=parse_datetime(data["created_at"]),
        is_processed=data.get("is_processed") == "1",
        is_poisoned=data.get("is_poisoned") == "1",
        processed_at=parse_datetime(data.get("processed_at")),
        retry_count=int(data.get("retry_count") or 0),
        last_error=data.get("last_error") or None,
        correlation_id=data.get("correlation_id") or None,
        trace_id=data.get("trace_id") or None,
    )


class RedisOutboxStore:
    """Outbox store backed by Redis (the modules' document store)."""

    def __init__(
        self,
        client: redis.Redis,
        prefix: str = "fitness",
        name: str = "documents",
        last_error_max_length: int = LAST_ERROR_MAX_LENGTH,
    ):
        self.name = name
        self._redis = client
        self._prefix = prefix
        self._last_error_max_length = last_error_max_length
        self._pending_key = redis_key(prefix, "outbox", "pending")
        self._processed_key = redis_key(prefix, "outbox", "processed")
        self._poisoned_key = redis_key(prefix, "outbox", "poisoned")

    def record_key(self, record_id: str) -> str:
        return redis_key(self._prefix, "outbox", "record", record_id)

    async def append(self, transaction: Pipeline, record: OutboxRecord) -> OutboxRecord:
        """
        Queue the record on the caller's transactional pipeline.

        Nothing is sent until the caller executes the pipeline; if the caller
        discards it, the record never exists.

        Args:
            transaction: Pipeline created with transaction=True
            record: Unsaved record (id is None)

        Returns:
            The record with its client-generated id
        """
        if not isinstance(transaction, Pipeline) or not transaction.is_transaction:
            raise OutboxAppendError("Document outbox append needs a transactional (MULTI) pipeline")

        appended = replace(record, id=uuid4().hex)
        transaction.hset(self.record_key(appended.id), mapping=_to_hash(appended))
        transaction.zadd(self._pending_key, {appended.id: _score(appended.created_at)})

        logger.debug(
            f"Queued outbox record {appended.id} ({appended.event_type})",
            extra={"backend": self.name, "event_id": appended.event_id, "event_type": appended.event_type},
        )
        return appended

    async def _load_many(self, record_ids: list[str]) -> list[OutboxRecord | None]:
        if not record_ids:
            return []
        async with self._redis.pipeline(transaction=False) as pipe:
            for record_id in record_ids:
                pipe.hgetall(self.record_key(record_id))
            rows = await pipe.execute()
        return [_from_hash(record_id, data) if data else None for record_id, data in zip(record_ids, rows)]

    async def poll_unprocessed(self, batch_size: int, max_retry_count: int) -> list[OutboxRecord]:
        records: list[OutboxRecord] = []
        start = 0
        # Pending ids may include records that ran out of retries under a
        # higher limit, so keep paging until the batch is full.
        while len(records) < batch_size:
            record_ids = await self._redis.zrange(self._pending_key, start, start + batch_size - 1)
            if not record_ids:
                break
            start += len(record_ids)

            for record in await self._load_many(record_ids):
                if record is None or record.is_processed or record.retry_count >= max_retry_count:
                    continue
                records.append(record)
                if len(records) == batch_size:
                    break

        return records

    async def _guarded_update(self, record_id: str, queue_changes) -> bool:
        """
        Apply queue_changes(pipe, key) in MULTI only while the record is pending.

        Returns:
            False if the record is missing or already terminal
        """
        key = self.record_key(record_id)
        async with self._redis.pipeline(transaction=True) as pipe:
            while True:
                try:
                    await pipe.watch(key)
                    if await pipe.hget(key, "is_processed") != "0":
                        return False
                    pipe.multi()
                    queue_changes(pipe, key)
                    await pipe.execute()
                    return True
                except WatchError:
                    logger.debug(f"Outbox record {record_id} changed while updating, retrying")
                    continue

    async def mark_processed(self, record_id: int | str) -> bool:
        record_id = str(record_id)
        now = utcnow()

        def changes(pipe: Pipeline, key: str) -> None:
            pipe.hset(key, mapping={"is_processed": "1", "processed_at": now.isoformat()})
            pipe.zrem(self._pending_key, record_id)
            pipe.zadd(self._processed_key, {record_id: _score(now)})

        return await self._guarded_update(record_id, changes)

    async def mark_failed(self, record_id: int | str, error: str, poison: bool = False) -> bool:
        record_id = str(record_id)
        now = utcnow()
        last_error = truncate_error(error, self._last_error_max_length) or ""

        def changes(pipe: Pipeline, key: str) -> None:
            pipe.hincrby(key, "retry_count", 1)
            pipe.hset(key, "last_error", last_error)
            if poison:
                pipe.hset(key, mapping={"is_processed": "1", "is_poisoned": "1", "processed_at": now.isoformat()})
                pipe.zrem(self._pending_key, record_id)
                pipe.zadd(self._poisoned_key, {record_id: _score(now)})

        return await self._guarded_update(record_id, changes)

    async def get(self, record_id: int | str) -> OutboxRecord | None:
        data = await self._redis.hgetall(self.record_key(str(record_id)))
        return _from_hash(str(record_id), data) if data else None

    async def stats(self) -> OutboxStats:
        async with self._redis.pipeline(transaction=False) as pipe:
            pipe.zcard(self._pending_key)
            pipe.zcard(self._processed_key)
            pipe.zcard(self._poisoned_key)
            pending_count, processed_count, poisoned_count = await pipe.execute()

        return OutboxStats(
            backend=self.name,
            pending=pending_count,
            processed=processed_count,
            poisoned=poisoned_count,
        )

    async def list_poisoned(self, limit: int = 50) -> list[OutboxRecord]:
        record_ids = await self._redis.zrevrange(self._poisoned_key, 0, limit - 1)
        return [record for record in await self._load_many(record_ids) if record is not None]

    async def replay(self, record_id: int | str) -> OutboxRecord:
        """
        Re-enqueue a terminal record as a fresh outbox record.

        Raises:
            RecordNotFoundError: No record with this id
            RecordNotTerminalError: The record is still pending
        """
        original = await self.get(record_id)
        if original is None:
            raise RecordNotFoundError(self.name, record_id)
        if not original.is_processed:
            raise RecordNotTerminalError(self.name, record_id)

        async with self._redis.pipeline(transaction=True) as pipe:
            replayed = await self.append(pipe, original.replay_copy())
            await pipe.execute()

        logger.info(
            f"Replayed outbox record {original.id} as {replayed.id}",
            extra={"backend": self.name, "event_id": original.event_id, "event_type": original.event_type},
        )
        return replayed
