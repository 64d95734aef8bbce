"""
Tests specific to the document (Redis) outbox store.
"""

import pytest

from engine_helpers import NoteAdded
from fitness_events.contracts import OutboxRecord
from fitness_events.errors import OutboxAppendError


class TestRedisOutboxAppend:
    """Tests for joining the caller's MULTI pipeline."""

    async def test_unexecuted_pipeline_discards_record(self, redis_outbox, redis_client):
        """Test nothing is published when the caller never executes."""
        async with redis_client.pipeline(transaction=True) as pipe:
            appended = await redis_outbox.append(pipe, OutboxRecord.from_event(NoteAdded(text="a")))
            assert appended.id is not None
            await pipe.reset()

        assert await redis_outbox.poll_unprocessed(10, 3) == []
        assert await redis_client.exists(redis_outbox.record_key(appended.id)) == 0

    async def test_record_and_document_commit_together(self, redis_outbox, redis_client):
        """Test the business document and the record are written by one EXEC."""
        async with redis_client.pipeline(transaction=True) as pipe:
            pipe.set("test:notes:1", "hello")
            appended = await redis_outbox.append(pipe, OutboxRecord.from_event(NoteAdded(text="a")))
            await pipe.execute()

        assert await redis_client.get("test:notes:1") == "hello"
        assert await redis_client.zscore("test:outbox:pending", appended.id) is not None
        assert await redis_client.hget(redis_outbox.record_key(appended.id), "event_type") == "NoteAdded"

    async def test_append_requires_transactional_pipeline(self, redis_outbox, redis_client):
        """Test plain clients and non-transactional pipelines are refused."""
        record = OutboxRecord.from_event(NoteAdded(text="a"))
        with pytest.raises(OutboxAppendError):
            await redis_outbox.append(redis_client, record)

        async with redis_client.pipeline(transaction=False) as pipe:
            with pytest.raises(OutboxAppendError):
                await redis_outbox.append(pipe, record)

    async def test_append_does_not_mutate_input(self, redis_outbox, redis_client):
        """Test the caller's record keeps id=None."""
        record = OutboxRecord.from_event(NoteAdded(text="a"))
        async with redis_client.pipeline(transaction=True) as pipe:
            appended = await redis_outbox.append(pipe, record)
            await pipe.execute()

        assert record.id is None
        assert isinstance(appended.id, str)

    async def test_terminal_records_leave_pending_index(self, redis_outbox, redis_client):
        """Test processed and poisoned ids move to their own indexes."""
        async with redis_client.pipeline(transaction=True) as pipe:
            delivered = await redis_outbox.append(pipe, OutboxRecord.from_event(NoteAdded(text="a")))
            poisoned = await redis_outbox.append(pipe, OutboxRecord.from_event(NoteAdded(text="b")))
            await pipe.execute()

        await redis_outbox.mark_processed(delivered.id)
        await redis_outbox.mark_failed(poisoned.id, "fatal", poison=True)

        assert await redis_client.zcard("test:outbox:pending") == 0
        assert await redis_client.zrange("test:outbox:processed", 0, -1) == [delivered.id]
        assert await redis_client.zrange("test:outbox:poisoned", 0, -1) == [poisoned.id]
