"""
Fitness Events - transactional outbox and idempotent inbox engine.

Modules announce changes by appending OutboxRecords inside their own
transactions; the OutboxProcessor delivers them to registered handlers,
which are guarded by per-consumer inbox ledgers.
"""

__version__ = "0.1.0"
