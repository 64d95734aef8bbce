"""
Tests for fitcore time and Redis helpers.
"""

from datetime import datetime, timedelta, timezone

from fitcore import db
from fitcore.redis import publish_to_stream, redis_key
from fitcore.timeutils import ensure_utc, parse_datetime, utcnow


class TestTimeUtils:
    def test_utcnow_is_aware(self):
        assert utcnow().tzinfo == timezone.utc

    def test_ensure_utc_naive(self):
        """Test naive values (as SQLite returns them) are taken as UTC."""
        value = ensure_utc(datetime(2026, 1, 1, 12, 0))
        assert value == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_ensure_utc_converts_offsets(self):
        value = ensure_utc(datetime(2026, 1, 1, 14, 0, tzinfo=timezone(timedelta(hours=2))))
        assert value == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert value.tzinfo == timezone.utc

    def test_ensure_utc_none(self):
        assert ensure_utc(None) is None

    def test_parse_datetime(self):
        assert parse_datetime("") is None
        assert parse_datetime(None) is None
        assert parse_datetime("2026-01-01T12:00:00+00:00") == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class TestRedisHelpers:
    def test_redis_key(self):
        assert redis_key("fitness", "outbox", "record", 12) == "fitness:outbox:record:12"

    async def test_publish_to_stream_flattens_values(self, redis_client):
        """Test None and numbers are stored as strings."""
        msg_id = await publish_to_stream(redis_client, "test:stream", {"a": None, "b": 3, "c": "x"}, max_len=10)

        entries = await redis_client.xrange("test:stream")
        assert entries == [(msg_id, {"a": "", "b": "3", "c": "x"})]


class TestDbHelpers:
    """Tests for the session plumbing the processor, API and modules share."""

    def test_db_module_surface(self):
        defined = sorted(
            name for name, value in vars(db).items() if callable(value) and getattr(value, "__module__", None) == db.__name__
        )
        assert defined == ["get_engine", "get_sessionmaker", "make_sessionmaker"]

    async def test_sessions_keep_attributes_after_commit(self, engine):
        from fitness_events.persistence import OutboxMessageRow

        session_factory = db.make_sessionmaker(engine)
        async with session_factory() as session:
            row = OutboxMessageRow(event_id="e1", event_type="Ping", payload="{}")
            session.add(row)
            await session.commit()

        assert row.event_id == "e1"
        assert row.id is not None
