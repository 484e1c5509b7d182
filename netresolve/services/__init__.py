"""
Service layer infrastructure - caching and protection for controller API calls.

Provides:
- TTLKeyedCache: Whole-snapshot cache with freshness window and load budget
- LoadBudget: Caps consecutive failed reloads until an explicit reset
- SingleFlight: Collapses concurrent calls for the same key
- ServiceClient: Authenticated async HTTP client
"""

from netresolve.services.errors import (
    ServiceError,
    NotFoundError,
    RequestTimeoutError,
    ResponseShapeError,
)
from netresolve.services.budget import LoadBudget
from netresolve.services.cache import TTLKeyedCache, CacheEntry, CacheStats
from netresolve.services.single_flight import SingleFlight
from netresolve.services.client import ServiceClient

__all__ = [
    # Errors
    "ServiceError",
    "NotFoundError",
    "RequestTimeoutError",
    "ResponseShapeError",
    # Cache
    "TTLKeyedCache",
    "CacheEntry",
    "CacheStats",
    "LoadBudget",
    # Single flight
    "SingleFlight",
    # Client
    "ServiceClient",
]
