"""
Outbox/Inbox Database Models

Tables owned by the event propagation engine in the relational backend.
Modules that write to this backend add their own tables to EventsBase's
metadata so an outbox append shares the module's session and transaction.

Tables:
- outbox_messages: events announced by relational-store transactions
- inbox_messages: per-consumer idempotency ledger for relational-store consumers
"""

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base

from fitcore.timeutils import ensure_utc, utcnow

from fitness_events.contracts.records import InboxRecord, InboxStatus, OutboxRecord

EventsBase = declarative_base()

# SQLite only autoincrements INTEGER PRIMARY KEY
IdentityType = BigInteger().with_variant(Integer(), "sqlite")


class OutboxMessageRow(EventsBase):
    """
    Relational outbox record.

    Inserted only through the caller's session, in the same transaction as the
    mutation it announces. Never deleted; rows with is_processed=true are
    terminal and kept for audit/replay.
    """

    __tablename__ = "outbox_messages"

    id = Column(IdentityType, primary_key=True, autoincrement=True)
    event_id = Column(String(36), nullable=False)
    event_type = Column(String(255), nullable=False)
    payload = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    is_processed = Column(Boolean, nullable=False, default=False)
    is_poisoned = Column(Boolean, nullable=False, default=False)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    retry_count = Column(Integer, nullable=False, default=0)
    last_error = Column(String(1000), nullable=True)
    correlation_id = Column(String(36), nullable=True)
    trace_id = Column(String(36), nullable=True)

    __table_args__ = (
        Index("ix_outbox_messages_event_id", "event_id"),
        Index("ix_outbox_messages_is_processed_created_at", "is_processed", "created_at"),
        Index("ix_outbox_messages_event_type", "event_type"),
    )

    @classmethod
    def from_record(cls, record: OutboxRecord) -> "OutboxMessageRow":
        return cls(
            event_id=record.event_id,
            event_type=record.event_type,
            payload=record.payload,
            created_at=record.created_at,
            is_processed=record.is_processed,
            is_poisoned=record.is_poisoned,
            processed_at=record.processed_at,
            retry_count=record.retry_count,
            last_error=record.last_error,
            correlation_id=record.correlation_id,
            trace_id=record.trace_id,
        )

    def to_record(self) -> OutboxRecord:
        return OutboxRecord(
            id=self.id,
            event_id=self.event_id,
            event_type=self.event_type,
            payload=self.payload,
            created_at=ensure_utc(self.created_at),
            is_processed=self.is_processed,
            is_poisoned=self.is_poisoned,
            processed_at=ensure_utc(self.processed_at),
            retry_count=self.retry_count,
            last_error=self.last_error,
            correlation_id=self.correlation_id,
            trace_id=self.trace_id,
        )


class InboxMessageRow(EventsBase):
    """
    Relational inbox ledger row.

    One row per (consumer, event_id); the unique constraint is what turns a
    concurrent second insert into an IntegrityError.
    """

    __tablename__ = "inbox_messages"

    id = Column(IdentityType, primary_key=True, autoincrement=True)
    event_id = Column(String(36), nullable=False)
    consumer = Column(String(255), nullable=False)
    event_type = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default=InboxStatus.PROCESSING.value)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    error = Column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("consumer", "event_id", name="uq_inbox_messages_consumer_event_id"),
        Index("ix_inbox_messages_consumer_status_created_at", "consumer", "status", "created_at"),
    )

    def to_record(self) -> InboxRecord:
        return InboxRecord(
            id=self.id,
            consumer=self.consumer,
            event_id=self.event_id,
            event_type=self.event_type,
            status=InboxStatus(self.status),
            created_at=ensure_utc(self.created_at),
            processed_at=ensure_utc(self.processed_at),
            error=self.error,
        )
