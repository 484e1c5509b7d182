"""
TTLKeyedCache - Resolve-or-fetch cache with a freshness window and a load budget.

Features:
- O(1) in-memory lookups that never trigger I/O
- Whole-snapshot reloads through a bulk loader, at most one in flight
- Freshness window; stale entries stay servable as last-known-good
- Bounded budget of consecutive failed reloads (see LoadBudget)
- Single-key upserts for one-off additions outside the bulk load
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Generic, Iterable, TypeVar

from loguru import logger

from netresolve.services.budget import LoadBudget
from netresolve.services.deadline import with_timeout
from netresolve.services.single_flight import SingleFlight

V = TypeVar("V")

_BULK_KEY = "bulk"


@dataclass
class CacheEntry(Generic[V]):
    """A single cache entry with metadata."""

    key: str
    value: V
    inserted_at: datetime


class TTLKeyedCache(Generic[V]):
    """
    Keyed cache whose contents are replaced wholesale by a bulk loader.

    Usage:
        cache = TTLKeyedCache("sites", loader=api.fetch_sites, key_of=lambda s: s.id)

        site = cache.get(site_id)
        if site is None:
            await cache.ensure_loaded()
            site = cache.get(site_id)
    """

    def __init__(
        self,
        name: str,
        loader: Callable[[], Awaitable[Iterable[V]]],
        key_of: Callable[[V], str],
        freshness: timedelta = timedelta(minutes=5),
        max_attempts: int = 3,
        timeout: float = 10.0,
        clock: Callable[[], datetime] = datetime.now,
        debug: bool = False,
    ):
        self.name = name
        self._loader = loader
        self._key_of = key_of
        self._freshness = freshness
        self._timeout = timeout
        self._clock = clock
        self._debug = debug

        self._entries: dict[str, CacheEntry[V]] = {}
        self._loaded_at: datetime | None = None
        self._budget = LoadBudget(name, max_attempts=max_attempts, clock=clock)
        self._flight = SingleFlight(name, debug=debug)
        self._stats = CacheStats()

    @property
    def budget(self) -> LoadBudget:
        return self._budget

    @property
    def loaded_at(self) -> datetime | None:
        return self._loaded_at

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> V | None:
        """Return the cached value for ``key`` (fresh or stale), or None."""
        entry = self._entries.get(key)
        if entry is None:
            self._stats.misses += 1
            self._log(f"MISS: {key}")
            return None
        self._stats.hits += 1
        self._log(f"HIT: {key}")
        return entry.value

    def values(self) -> list[V]:
        return [entry.value for entry in self._entries.values()]

    def is_fresh(self) -> bool:
        """True while the last successful bulk load is inside the freshness window."""
        if self._loaded_at is None:
            return False
        return self._clock() - self._loaded_at < self._freshness

    def is_loading(self) -> bool:
        return self._flight.is_in_flight(_BULK_KEY)

    async def ensure_loaded(self) -> None:
        """
        Reload the whole cache unless that is unnecessary or not allowed.

        Joins the in-flight reload when there is one. Skips when the cache is
        fresh and non-empty, or when the load budget is exhausted. Never
        raises on fetch failure.
        """
        if self.is_loading():
            await self._flight.run(_BULK_KEY, self._reload)
            return

        if self.is_fresh() and self._entries:
            return

        if self._budget.exhausted:
            logger.warning(
                f"[{self.name}] Reached maximum load attempts "
                f"({self._budget.max_attempts}), skipping reload"
            )
            return

        await self._flight.run(_BULK_KEY, self._reload)

    async def _reload(self) -> None:
        self._budget.record_attempt()
        started_at = self._clock()
        try:
            items = await with_timeout(self._loader(), self._timeout, self.name)
            entries = {}
            for item in items:
                key = self._key_of(item)
                entries[key] = CacheEntry(key=key, value=item, inserted_at=started_at)
        except Exception as e:
            self._budget.record_failure()
            logger.warning(
                f"[{self.name}] Reload failed (attempt {self._budget.attempts}/"
                f"{self._budget.max_attempts}): {type(e).__name__}: {e}"
            )
            return

        self._entries = entries
        self._loaded_at = started_at
        self._budget.record_success()
        if entries:
            logger.info(f"[{self.name}] Loaded {len(entries)} entries")
        else:
            logger.warning(f"[{self.name}] Reload succeeded with no entries")

    def upsert(self, key: str, value: V) -> None:
        """Insert or replace one entry without touching the budget or load time."""
        self._entries[key] = CacheEntry(key=key, value=value, inserted_at=self._clock())
        self._log(f"UPSERT: {key}")

    def invalidate(self) -> None:
        """Drop everything and reset the budget; the next ensure_loaded() fetches."""
        count = len(self._entries)
        self._entries = {}
        self._loaded_at = None
        self._budget.reset()
        logger.info(f"[{self.name}] Invalidated ({count} entries removed)")

    def status(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "size": len(self._entries),
            "is_loading": self.is_loading(),
            "loaded_at": self._loaded_at.isoformat() if self._loaded_at else None,
            "is_stale": not self.is_fresh(),
            "load_attempts": self._budget.attempts,
            "max_attempts": self._budget.max_attempts,
        }

    def get_stats(self) -> "CacheStats":
        self._stats.size = len(self._entries)
        return self._stats

    def _log(self, message: str) -> None:
        if self._debug:
            logger.debug(f"[{self.name}] {message}")


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    size: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "size": self.size,
            "hit_rate": f"{self.hit_rate:.2%}",
        }
