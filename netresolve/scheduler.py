"""
Periodic refresh of the query context, driven by APScheduler.
"""

from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from netresolve.resolvers.query_context import QueryContextCache


class ContextRefreshScheduler:
    """Refreshes a QueryContextCache on a fixed interval."""

    JOB_ID = "query_context_refresh"

    def __init__(self, query_context: QueryContextCache, interval_minutes: int = 5):
        self.scheduler = AsyncIOScheduler()
        self.query_context = query_context
        self.interval_minutes = interval_minutes
        self._is_running = False

    async def refresh_job(self) -> None:
        logger.info("Starting scheduled query context refresh...")
        context = await self.query_context.refresh()
        logger.info(
            f"Scheduled refresh completed: {len(context.stations)} stations, "
            f"{len(context.sites)} sites"
        )

    def start(self) -> None:
        if self._is_running:
            logger.warning("Context refresh scheduler is already running")
            return

        self.scheduler.add_job(
            self.refresh_job,
            trigger="interval",
            minutes=self.interval_minutes,
            id=self.JOB_ID,
            name="Query Context Refresh",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        self._is_running = True
        logger.info(
            f"Context refresh scheduler started: every {self.interval_minutes} minutes"
        )

    def stop(self) -> None:
        if not self._is_running:
            logger.warning("Context refresh scheduler is not running")
            return

        self.scheduler.shutdown(wait=False)
        self._is_running = False
        logger.info("Context refresh scheduler stopped")

    def is_running(self) -> bool:
        return self._is_running

    async def refresh_now(self) -> dict[str, Any]:
        """Refresh immediately (manual trigger) and return the summary."""
        logger.info("Manual query context refresh triggered")
        await self.query_context.refresh()
        return self.query_context.summary()
