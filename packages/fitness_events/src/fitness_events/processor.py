"""
Outbox Processor

Background loop that drains every backend's outbox:

    idle -> poll -> dispatch (batch, one record at a time) -> bookkeeping -> idle

Features:
- One generic loop over any number of BackendStore implementations
- Per-backend isolation: an exception in one backend's cycle is logged and
  the other backends still run
- Retry up to max_retry_attempts, then poison (terminal, alerted)
- Undecodable records are poisoned on first sight by default
- Cooperative cancellation between cycles; an in-flight cycle finishes

Running two processors against the same stores is unsafe: polling does not
claim records, so both would dispatch them. Deploy exactly one instance.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from fitness_events.alerts import AlertSink, LoggingAlertSink, OutboxAlert
from fitness_events.cancellation import CancellationToken
from fitness_events.contracts.records import OutboxRecord
from fitness_events.dispatcher import Dispatcher, DispatchResult, DispatchStatus
from fitness_events.outbox.base import BackendStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutboxProcessorSettings:
    interval_seconds: float = 10.0
    batch_size: int = 50
    max_retry_attempts: int = 3
    poison_undecodable: bool = True

    def __post_init__(self):
        if self.interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        if self.batch_size <= 0:
            raise ValueError("batch_size must be positive")
        if self.max_retry_attempts <= 0:
            raise ValueError("max_retry_attempts must be positive")

    @classmethod
    def from_settings(cls, settings) -> "OutboxProcessorSettings":
        """Build from fitcore Settings."""
        return cls(
            interval_seconds=settings.OUTBOX_INTERVAL_SECONDS,
            batch_size=settings.OUTBOX_BATCH_SIZE,
            max_retry_attempts=settings.OUTBOX_MAX_RETRY_ATTEMPTS,
            poison_undecodable=settings.OUTBOX_POISON_UNDECODABLE,
        )


@dataclass
class BackendCycleResult:
    """What one cycle did to one backend."""

    backend: str
    polled: int = 0
    succeeded: int = 0
    retried: int = 0
    poisoned: int = 0
    skipped: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        return {
            "backend": self.backend,
            "polled": self.polled,
            "succeeded": self.succeeded,
            "retried": self.retried,
            "poisoned": self.poisoned,
            "skipped": self.skipped,
            "error": self.error,
        }


@dataclass
class CycleResult:
    backends: list[BackendCycleResult] = field(default_factory=list)

    @property
    def polled(self) -> int:
        return sum(result.polled for result in self.backends)

    def for_backend(self, name: str) -> BackendCycleResult:
        for result in self.backends:
            if result.backend == name:
                return result
        raise KeyError(name)


class OutboxProcessor:
    def __init__(
        self,
        stores: Sequence[BackendStore],
        dispatcher: Dispatcher,
        settings: OutboxProcessorSettings | None = None,
        alert_sinks: Sequence[AlertSink] | None = None,
    ):
        names = [store.name for store in stores]
        if len(set(names)) != len(names):
            raise ValueError(f"Backend store names must be unique, got {names}")

        self.stores = list(stores)
        self.dispatcher = dispatcher
        self.settings = settings or OutboxProcessorSettings()
        self.alert_sinks = list(alert_sinks) if alert_sinks is not None else [LoggingAlertSink()]

    async def run(self, cancellation: CancellationToken) -> None:
        """Main loop: one cycle, then sleep until the interval elapses or cancellation."""
        logger.info(
            f"Starting outbox processor (backends={[store.name for store in self.stores]}, "
            f"interval={self.settings.interval_seconds}s, batch_size={self.settings.batch_size}, "
            f"max_retry_attempts={self.settings.max_retry_attempts})"
        )

        while not cancellation.is_cancelled:
            await self.run_cycle(cancellation)
            if await cancellation.wait(self.settings.interval_seconds):
                break

        logger.info("Outbox processor stopped")

    async def run_cycle(self, cancellation: CancellationToken | None = None) -> CycleResult:
        """Process one batch from every backend. Never raises for a backend failure."""
        cancellation = cancellation or CancellationToken()
        cycle = CycleResult()

        for store in self.stores:
            result = BackendCycleResult(backend=store.name)
            cycle.backends.append(result)
            try:
                await self._process_backend(store, cancellation, result)
            except Exception as e:
                result.error = f"{type(e).__name__}: {e}"
                logger.error(
                    f"Outbox cycle failed for backend {store.name}: {e}",
                    extra={"backend": store.name},
                    exc_info=True,
                )

        if cycle.polled:
            logger.info(
                f"Outbox cycle processed {cycle.polled} records",
                extra={"backends": [result.to_dict() for result in cycle.backends]},
            )
        return cycle

    async def _process_backend(
        self,
        store: BackendStore,
        cancellation: CancellationToken,
        result: BackendCycleResult,
    ) -> None:
        records = await store.poll_unprocessed(self.settings.batch_size, self.settings.max_retry_attempts)
        result.polled = len(records)
        if not records:
            logger.debug(f"No pending outbox records in {store.name}", extra={"backend": store.name})
            return

        for record in records:
            dispatch = await self.dispatcher.dispatch(record, cancellation)
            if dispatch.succeeded:
                if not await store.mark_processed(record.id):
                    logger.warning(
                        f"Outbox record {record.id} was already terminal when marking it processed",
                        extra={"backend": store.name, "event_id": record.event_id},
                    )
                    result.skipped += 1
                    continue
                result.succeeded += 1
                logger.debug(
                    f"Delivered outbox record {record.id} ({record.event_type})",
                    extra={"backend": store.name, "event_id": record.event_id, "handlers": dispatch.handlers_invoked},
                )
                continue

            outcome = await self._record_failure(store, record, dispatch)
            setattr(result, outcome, getattr(result, outcome) + 1)

    async def _record_failure(self, store: BackendStore, record: OutboxRecord, dispatch: DispatchResult) -> str:
        """
        Bookkeeping for a failed dispatch.

        Returns:
            The BackendCycleResult counter to bump: "poisoned", "retried", or
            "skipped" when the record was already terminal
        """
        attempts = record.retry_count + 1
        poison = attempts >= self.settings.max_retry_attempts or (
            dispatch.permanent and self.settings.poison_undecodable
        )

        updated = await store.mark_failed(record.id, dispatch.error or str(dispatch.status), poison=poison)
        if not updated:
            logger.warning(
                f"Outbox record {record.id} was already terminal when recording its failure",
                extra={"backend": store.name, "event_id": record.event_id},
            )
            return "skipped"

        if dispatch.status == DispatchStatus.UNDECODABLE:
            await self._alert("undecodable", store, record, attempts, dispatch.error)
        elif poison:
            await self._alert("poisoned", store, record, attempts, dispatch.error)
        else:
            logger.warning(
                f"Outbox record {record.id} failed (attempt {attempts}/{self.settings.max_retry_attempts}): "
                f"{dispatch.error}",
                extra={
                    "backend": store.name,
                    "event_id": record.event_id,
                    "event_type": record.event_type,
                    "retry_count": attempts,
                },
            )
        return "poisoned" if poison else "retried"

    async def _alert(self, kind: str, store: BackendStore, record: OutboxRecord, retry_count: int, error) -> None:
        alert = OutboxAlert(
            kind=kind,
            backend=store.name,
            record_id=record.id,
            event_id=record.event_id,
            event_type=record.event_type,
            retry_count=retry_count,
            error=error,
        )
        for sink in self.alert_sinks:
            try:
                await sink.send(alert)
            except Exception:
                logger.error(
                    f"Alert sink {type(sink).__name__} failed for record {record.id}",
                    extra={"backend": store.name, "event_id": record.event_id},
                    exc_info=True,
                )
