"""
SingleFlight - Collapses concurrent calls for the same key into one execution.

When many callers ask for the same load at once (a table rendering a hundred
rows that each need a site name), only the first caller starts the work; the
others await the same task and observe the same outcome.
"""

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger

T = TypeVar("T")


class SingleFlight:
    """
    Per-key single-flight execution.

    Usage:
        flight = SingleFlight("sites")

        async def load_sites():
            await flight.run("bulk", fetch_and_store)
    """

    def __init__(self, name: str = "flight", debug: bool = False):
        self._name = name
        self._in_flight: dict[str, asyncio.Task[Any]] = {}
        self._debug = debug
        self._stats = SingleFlightStats()

    async def run(self, key: str, fn: Callable[[], Awaitable[T]]) -> T:
        """
        Run ``fn`` unless a call for ``key`` is already in flight.

        The shared task is shielded, so a cancelled waiter does not cancel
        the work other callers are waiting on. Exceptions from ``fn`` are
        re-raised to every waiter. A failure with no waiter left to observe
        it is still marked as retrieved.
        """
        task = self._in_flight.get(key)
        if task is not None:
            self._stats.joined += 1
            self._log(f"JOIN: {key}")
        else:
            self._stats.started += 1
            self._log(f"START: {key}")
            task = asyncio.create_task(self._execute_and_cleanup(key, fn))
            task.add_done_callback(_mark_retrieved)
            self._in_flight[key] = task

        return await asyncio.shield(task)

    async def _execute_and_cleanup(
        self,
        key: str,
        fn: Callable[[], Awaitable[T]],
    ) -> T:
        try:
            return await fn()
        finally:
            self._in_flight.pop(key, None)
            self._log(f"DONE: {key}")

    def is_in_flight(self, key: str) -> bool:
        return key in self._in_flight

    async def cancel_all(self) -> int:
        """Cancel all in-flight work."""
        tasks = list(self._in_flight.values())
        self._in_flight.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            self._log(f"CANCEL_ALL: {len(tasks)} tasks cancelled")
        return len(tasks)

    def get_stats(self) -> "SingleFlightStats":
        self._stats.in_flight = len(self._in_flight)
        return self._stats

    def _log(self, message: str) -> None:
        if self._debug:
            logger.debug(f"[SingleFlight:{self._name}] {message}")


def _mark_retrieved(task: asyncio.Task[Any]) -> None:
    if not task.cancelled():
        task.exception()


class SingleFlightStats:
    """Statistics for single-flight execution."""

    def __init__(self):
        self.started: int = 0  # Executions actually performed
        self.joined: int = 0  # Callers that waited on someone else's execution
        self.in_flight: int = 0

    @property
    def join_rate(self) -> float:
        total = self.started + self.joined
        if total == 0:
            return 0.0
        return self.joined / total

    def to_dict(self) -> dict[str, Any]:
        return {
            "started": self.started,
            "joined": self.joined,
            "in_flight": self.in_flight,
            "join_rate": f"{self.join_rate:.2%}",
        }
