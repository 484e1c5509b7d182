"""
netresolve entry point.

Builds the resolver container from the environment, warms the query context
and keeps it refreshed until interrupted.
"""

import asyncio

from loguru import logger

from netresolve.container import ResolverContainer
from netresolve.log import configure_logging
from netresolve.scheduler import ContextRefreshScheduler
from netresolve.settings import load_settings


async def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)
    logger.info(f"Starting netresolve against {settings.campus_base_url}...")

    container = ResolverContainer.from_settings(settings)
    scheduler = ContextRefreshScheduler(
        container.query_context,
        interval_minutes=settings.context_refresh_interval_minutes,
    )

    try:
        logger.info("Performing initial query context refresh...")
        summary = await scheduler.refresh_now()
        logger.info(f"Initial context: {summary}")

        scheduler.start()

        logger.info("netresolve is running. Press Ctrl+C to stop.")
        while True:
            await asyncio.sleep(60)

    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("Received interrupt signal, shutting down...")
    finally:
        if scheduler.is_running():
            scheduler.stop()
        await container.close()
        logger.info("netresolve stopped")


if __name__ == "__main__":
    asyncio.run(main())
