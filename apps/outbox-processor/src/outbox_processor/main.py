"""
Outbox Processor - background worker

This service:
1. Polls the relational and document outboxes for pending records
2. Dispatches each record to the handlers registered for its event type
3. Marks records processed, or counts the failure and poisons them once
   OUTBOX_MAX_RETRY_ATTEMPTS is reached

Run a single instance: records are not claimed, so two instances would
deliver the same record twice.
"""

import asyncio
import logging
import signal

from fitcore.logging import setup_logging
from fitcore.settings import get_settings

from fitness_events.cancellation import CancellationToken
from outbox_processor.runtime import open_runtime

logger = logging.getLogger(__name__)


def install_signal_handlers(token: CancellationToken) -> None:
    """SIGTERM/SIGINT request shutdown; the running cycle is allowed to finish."""
    loop = asyncio.get_running_loop()

    def request_shutdown(signum: int) -> None:
        logger.info(f"Received signal {signum}, requesting shutdown...")
        token.cancel()

    for signum in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(signum, request_shutdown, signum)


async def serve(token: CancellationToken | None = None) -> None:
    token = token or CancellationToken()
    async with open_runtime(get_settings()) as runtime:
        await runtime.processor.run(token)
    logger.info("Outbox processor shutting down gracefully")


async def _main() -> None:
    token = CancellationToken()
    install_signal_handlers(token)
    await serve(token)


def main():
    """Worker entry point."""
    setup_logging()
    asyncio.run(_main())


if __name__ == "__main__":
    main()
