"""
Background Worker Entry Point.

Runs the reconciliation scheduler without the HTTP API.
"""

import asyncio
import signal
import sys

from src.core.config import get_settings
from src.services.container import ServiceContainer
from src.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)

# Graceful shutdown flag
shutdown_event = asyncio.Event()


def signal_handler(sig, frame):
    """Handle shutdown signals."""
    logger.info(f"Received signal {sig}, initiating graceful shutdown...")
    shutdown_event.set()


async def main():
    """Main worker entry point."""
    settings = get_settings()
    setup_logging(
        level=settings.LOG_LEVEL, log_file=settings.LOG_FILE, json_logs=settings.JSON_LOGS
    )

    logger.info("Claim reconciler worker starting")
    logger.info(f"Storage backend: {settings.STORAGE_BACKEND.value}")

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    container = await ServiceContainer.create(settings)
    container.scheduler.start()

    await shutdown_event.wait()

    logger.info("Shutting down scheduler...")
    await container.close()
    logger.info("Worker shutdown complete")


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Worker interrupted")
        sys.exit(0)


if __name__ == "__main__":
    run()
