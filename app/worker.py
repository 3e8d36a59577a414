"""
Standalone parser worker process.

Run with ``python -m app.worker`` when the API process is started with
RUN_PARSER_WORKER=false.
"""

import asyncio
import logging
import signal
import sys

from app.core.config import settings
from app.core.logging_config import configure_logging
from app.exceptions import QueueUnavailableError
from app.services import ServiceContainer

logger = logging.getLogger(__name__)


async def run_worker() -> None:
    container = ServiceContainer(settings)
    await container.connect()

    worker = container.parser_worker
    worker_task = asyncio.create_task(worker.start())

    def request_shutdown(signame: str) -> None:
        logger.info("%s received, stopping parser...", signame)
        worker.stop()
        worker_task.cancel()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, request_shutdown, sig.name)

    try:
        await worker_task
    except asyncio.CancelledError:
        pass
    finally:
        await container.close()


def main() -> None:
    configure_logging()
    try:
        asyncio.run(run_worker())
    except QueueUnavailableError as e:
        logger.error("Failed to start parser service: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
