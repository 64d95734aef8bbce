"""
Tests for events and outbox/inbox records.
"""

from datetime import date, datetime, timezone

from fitness_events.contracts import (
    InboxStatus,
    OutboxRecord,
    OutboxStats,
    UserMetricAdded,
    UserProfileUpdated,
    truncate_error,
)


class TestDomainEvents:
    """Tests for pydantic event payloads."""

    def test_event_id_is_generated(self):
        """Test each event gets its own id."""
        first = UserMetricAdded(user_metric_id="m1", user_id=1, metric_date=date(2026, 1, 1), weight=80.0)
        second = UserMetricAdded(user_metric_id="m2", user_id=1, metric_date=date(2026, 1, 1), weight=80.0)
        assert first.event_id != second.event_id

    def test_payload_restores_typed_event(self):
        """Test the stored payload decodes back into the same event."""
        event = UserProfileUpdated(
            user_id=7,
            display_name="Ana",
            gender="female",
            date_of_birth=date(1990, 5, 17),
            unit_preference="metric",
            updated_at=datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc),
            correlation_id="corr-1",
        )

        restored = UserProfileUpdated.from_payload(event.to_payload())

        assert restored == event
        assert restored.date_of_birth == date(1990, 5, 17)

    def test_event_type_not_in_payload_fields(self):
        """Test event_type is a class attribute, not a payload field."""
        assert "event_type" not in UserProfileUpdated.model_fields
        assert UserProfileUpdated.event_type == "UserProfileUpdated"


class TestOutboxRecord:
    """Tests for OutboxRecord."""

    def _event(self):
        return UserMetricAdded(
            user_metric_id="m1",
            user_id=3,
            metric_date=date(2026, 2, 2),
            weight=70.0,
            correlation_id="corr",
            trace_id="trace",
        )

    def test_from_event(self):
        """Test a record built from an event starts pending."""
        event = self._event()
        record = OutboxRecord.from_event(event)

        assert record.id is None
        assert record.event_id == event.event_id
        assert record.event_type == "UserMetricAdded"
        assert record.payload == event.to_payload()
        assert record.is_processed is False
        assert record.retry_count == 0
        assert record.last_error is None
        assert record.correlation_id == "corr"
        assert record.trace_id == "trace"
        assert record.created_at.tzinfo is not None

    def test_new_record_not_poisoned(self):
        record = OutboxRecord.from_event(self._event())
        assert record.is_poisoned is False

    def test_replay_copy_resets_state(self):
        """Test replay keeps the logical event but starts over."""
        record = OutboxRecord.from_event(self._event())
        record.id = 12
        record.is_processed = True
        record.is_poisoned = True
        record.retry_count = 3
        record.last_error = "boom"
        record.processed_at = datetime(2026, 1, 1, tzinfo=timezone.utc)

        copy = record.replay_copy()

        assert copy.id is None
        assert copy.event_id == record.event_id
        assert copy.payload == record.payload
        assert copy.is_processed is False
        assert copy.is_poisoned is False
        assert copy.retry_count == 0
        assert copy.last_error is None
        assert copy.processed_at is None
        assert record.retry_count == 3


class TestHelpers:
    """Tests for small record helpers."""

    def test_truncate_error(self):
        """Test errors are bounded."""
        assert truncate_error(None) is None
        assert truncate_error("short") == "short"
        assert truncate_error("x" * 1500) == "x" * 1000
        assert truncate_error("abcdef", max_length=3) == "abc"

    def test_inbox_status_str(self):
        """Test status renders as its stored value."""
        assert str(InboxStatus.COMPLETED) == "completed"
        assert InboxStatus("failed") is InboxStatus.FAILED

    def test_stats_to_dict(self):
        """Test stats serialization."""
        stats = OutboxStats(backend="relational", pending=1, processed=2, poisoned=3)
        assert stats.to_dict() == {"backend": "relational", "pending": 1, "processed": 2, "poisoned": 3}
