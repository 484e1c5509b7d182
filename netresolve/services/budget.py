"""
LoadBudget - Caps consecutive failed reloads of a cache.

States:
- AVAILABLE: attempts < max_attempts, reloads may run
- EXHAUSTED: attempts >= max_attempts, reloads are skipped

Transitions:
- AVAILABLE -> EXHAUSTED: max_attempts consecutive failures
- any -> AVAILABLE (attempts = 0): a successful load or an explicit reset

Unlike a circuit breaker there is no timed half-open state: an exhausted
budget stays exhausted until someone calls reset() (the dashboard's
"Refresh" action).
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from loguru import logger


@dataclass
class LoadBudget:
    """Retry budget for one cache."""

    name: str
    max_attempts: int = 3
    attempts: int = 0
    last_attempt_at: datetime | None = None
    clock: Callable[[], datetime] = field(default=datetime.now, repr=False)

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts

    def record_attempt(self) -> None:
        self.last_attempt_at = self.clock()

    def record_success(self) -> None:
        self.attempts = 0

    def record_failure(self) -> None:
        self.attempts += 1
        if self.exhausted:
            logger.warning(
                f"Load budget '{self.name}' exhausted after {self.attempts} "
                f"consecutive failures; reloads paused until reset"
            )

    def reset(self) -> None:
        self.attempts = 0
        self.last_attempt_at = None

    def get_status(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "attempts": self.attempts,
            "max_attempts": self.max_attempts,
            "exhausted": self.exhausted,
            "last_attempt_at": (
                self.last_attempt_at.isoformat() if self.last_attempt_at else None
            ),
        }
