"""
Dispatcher - decodes an outbox record and runs its handlers.

Handlers run sequentially in registration order. The first exception stops
the dispatch; the next attempt re-runs every handler, which is why the
handlers are inbox-guarded. The dispatcher never decides retry vs poison;
it only reports what happened.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from fitness_events.cancellation import CancellationToken
from fitness_events.contracts.records import OutboxRecord
from fitness_events.errors import EventDecodeError, UnknownEventTypeError
from fitness_events.registry import EventTypeRegistry

logger = logging.getLogger(__name__)


class DispatchStatus(str, Enum):
    SUCCEEDED = "succeeded"
    HANDLER_FAILED = "handler_failed"
    UNDECODABLE = "undecodable"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class DispatchResult:
    status: DispatchStatus
    error: str | None = None
    failed_handler: str | None = None
    handlers_invoked: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status == DispatchStatus.SUCCEEDED

    @property
    def permanent(self) -> bool:
        """Retrying cannot help: the record cannot be turned into an event."""
        return self.status == DispatchStatus.UNDECODABLE


def describe_error(error: BaseException) -> str:
    message = str(error)
    return f"{type(error).__name__}: {message}" if message else type(error).__name__


class Dispatcher:
    def __init__(self, registry: EventTypeRegistry):
        self.registry = registry

    async def dispatch(self, record: OutboxRecord, cancellation: CancellationToken) -> DispatchResult:
        """
        Deliver one record to all of its handlers.

        Args:
            record: Pending outbox record
            cancellation: Token passed through to the handlers

        Returns:
            DispatchResult; handler exceptions are captured, never raised
        """
        try:
            event = self.registry.decode(record.event_type, record.payload)
            handlers = self.registry.handlers_for(record.event_type)
        except (UnknownEventTypeError, EventDecodeError) as e:
            logger.error(
                f"Outbox record {record.id} is undecodable: {e}",
                extra={"record_id": record.id, "event_id": record.event_id, "event_type": record.event_type},
            )
            return DispatchResult(status=DispatchStatus.UNDECODABLE, error=describe_error(e))

        invoked = 0
        for handler in handlers:
            invoked += 1
            try:
                await handler.handle(event, cancellation)
            except Exception as e:
                logger.warning(
                    f"Handler {handler.consumer} failed for event {record.event_id}: {e}",
                    extra={
                        "record_id": record.id,
                        "event_id": record.event_id,
                        "event_type": record.event_type,
                        "consumer": handler.consumer,
                    },
                    exc_info=True,
                )
                return DispatchResult(
                    status=DispatchStatus.HANDLER_FAILED,
                    error=f"{handler.consumer}: {describe_error(e)}",
                    failed_handler=handler.consumer,
                    handlers_invoked=invoked,
                )

        return DispatchResult(status=DispatchStatus.SUCCEEDED, handlers_invoked=invoked)
