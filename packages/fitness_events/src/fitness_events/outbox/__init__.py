"""
Outbox record stores, one per physical backend.
"""

from fitness_events.outbox.base import BackendStore
from fitness_events.outbox.redis_store import RedisOutboxStore
from fitness_events.outbox.sql_store import SqlOutboxStore

__all__ = [
    "BackendStore",
    "RedisOutboxStore",
    "SqlOutboxStore",
]
