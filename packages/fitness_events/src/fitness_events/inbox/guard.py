"""
Idempotent handler wrapper.

Wraps a consumer handler so that a redelivered event (outbox retry, replay,
crash before mark_processed) runs the side effect at most once per
consumer, as long as the earlier run reached `completed`.

Flow per event:
1. completed row      -> skip
2. no row             -> insert `processing`; losing the insert race means
                         another worker owns it -> skip
3. failed row         -> compare-and-set back to `processing`, then run
4. processing row     -> skip with a warning, unless processing_ttl is set and
                         the row is older than it (compare-and-set reclaim)
5. run the handler; success -> `completed`, exception -> `failed` + re-raise

There is no transaction spanning the side effect and the ledger update: a
crash between the two leaves a `processing` row behind.
"""

import logging
from datetime import timedelta

from fitcore.timeutils import utcnow

from fitness_events.cancellation import CancellationToken
from fitness_events.contracts.events import DomainEvent
from fitness_events.contracts.records import InboxRecord, InboxStatus, truncate_error
from fitness_events.inbox.base import InboxStore

logger = logging.getLogger(__name__)


class IdempotentHandler:
    """
    Inbox-guarded handler.

    Exposes the wrapped handler's consumer name, so it can be registered in
    place of the handler itself.
    """

    def __init__(self, handler, inbox: InboxStore, processing_ttl: float | None = None):
        self.handler = handler
        self.consumer: str = handler.consumer
        self._inbox = inbox
        self._processing_ttl = timedelta(seconds=processing_ttl) if processing_ttl else None

    async def _claim(self, event: DomainEvent) -> bool:
        """Returns True when this call owns the event and must run the handler."""
        existing = await self._inbox.get(self.consumer, event.event_id)

        if existing is None:
            claimed = await self._inbox.try_insert(
                InboxRecord(consumer=self.consumer, event_id=event.event_id, event_type=event.event_type)
            )
            if not claimed:
                logger.info(
                    f"{self.consumer}: event {event.event_id} claimed by another worker, skipping",
                    extra={"consumer": self.consumer, "event_id": event.event_id},
                )
            return claimed

        if existing.status == InboxStatus.COMPLETED:
            logger.debug(
                f"{self.consumer}: event {event.event_id} already completed, skipping",
                extra={"consumer": self.consumer, "event_id": event.event_id},
            )
            return False

        if existing.status == InboxStatus.FAILED:
            return await self._inbox.reclaim(self.consumer, event.event_id, InboxStatus.FAILED)

        # processing
        if self._processing_ttl is not None:
            stale_before = utcnow() - self._processing_ttl
            if existing.created_at < stale_before:
                reclaimed = await self._inbox.reclaim(
                    self.consumer, event.event_id, InboxStatus.PROCESSING, stale_before=stale_before
                )
                if reclaimed:
                    logger.warning(
                        f"{self.consumer}: reclaimed stale processing row for event {event.event_id}",
                        extra={"consumer": self.consumer, "event_id": event.event_id},
                    )
                return reclaimed

        logger.warning(
            f"{self.consumer}: event {event.event_id} is still marked processing, skipping",
            extra={
                "consumer": self.consumer,
                "event_id": event.event_id,
                "since": existing.created_at.isoformat(),
            },
        )
        return False

    async def handle(self, event: DomainEvent, cancellation: CancellationToken) -> None:
        if not await self._claim(event):
            return

        try:
            await self.handler.handle(event, cancellation)
        except Exception as e:
            try:
                await self._inbox.mark_failed(self.consumer, event.event_id, truncate_error(str(e) or type(e).__name__))
            except Exception:
                logger.error(
                    f"{self.consumer}: could not record failure for event {event.event_id}",
                    extra={"consumer": self.consumer, "event_id": event.event_id},
                    exc_info=True,
                )
            raise

        await self._inbox.mark_completed(self.consumer, event.event_id)
        logger.debug(
            f"{self.consumer}: event {event.event_id} completed",
            extra={"consumer": self.consumer, "event_id": event.event_id},
        )
