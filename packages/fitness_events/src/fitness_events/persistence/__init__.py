"""
Engine-owned persistence models for the relational backend.
"""

from fitness_events.persistence.models import EventsBase, InboxMessageRow, OutboxMessageRow

__all__ = [
    "EventsBase",
    "InboxMessageRow",
    "OutboxMessageRow",
]
