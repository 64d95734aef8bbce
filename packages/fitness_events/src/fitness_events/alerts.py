"""
Operator alerts for records that will not be delivered on their own.

Two kinds:
- poisoned: a handler kept failing until retries ran out
- undecodable: the stored record cannot be turned into an event at all

The logging sink is always installed. The Redis stream sink publishes the
same alert to a capped stream (the dead-letter stream pattern) so an
external tool can pick it up.
"""

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import redis.asyncio as redis

from fitcore.redis import publish_to_stream

ALERT_LOGGER_NAME = "fitness_events.alerts"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutboxAlert:
    kind: str
    backend: str
    record_id: int | str | None
    event_id: str
    event_type: str
    retry_count: int
    error: str | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "backend": self.backend,
            "record_id": self.record_id,
            "event_id": self.event_id,
            "event_type": self.event_type,
            "retry_count": self.retry_count,
            "error": self.error,
        }


class AlertSink(Protocol):
    async def send(self, alert: OutboxAlert) -> None:
        ...


class LoggingAlertSink:
    """Undecodable records log at CRITICAL, exhausted retries at ERROR."""

    def __init__(self, logger_name: str = ALERT_LOGGER_NAME):
        self._logger = logging.getLogger(logger_name)

    async def send(self, alert: OutboxAlert) -> None:
        level = logging.CRITICAL if alert.kind == "undecodable" else logging.ERROR
        self._logger.log(
            level,
            f"Outbox record {alert.record_id} ({alert.event_type}) in {alert.backend} is {alert.kind}: {alert.error}",
            extra=alert.to_dict(),
        )


class RedisStreamAlertSink:
    def __init__(self, client: redis.Redis, stream_name: str, max_len: int | None = 10000):
        self._client = client
        self.stream_name = stream_name
        self._max_len = max_len

    async def send(self, alert: OutboxAlert) -> None:
        msg_id = await publish_to_stream(self._client, self.stream_name, alert.to_dict(), max_len=self._max_len)
        logger.debug(f"Published {alert.kind} alert to {self.stream_name} ({msg_id})")
