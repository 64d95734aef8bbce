"""
Inbox stores and the idempotent handler wrapper.
"""

from fitness_events.inbox.base import InboxStore
from fitness_events.inbox.guard import IdempotentHandler
from fitness_events.inbox.redis_store import RedisInboxStore
from fitness_events.inbox.sql_store import SqlInboxStore

__all__ = [
    "IdempotentHandler",
    "InboxStore",
    "RedisInboxStore",
    "SqlInboxStore",
]
