import asyncio
from typing import Awaitable, TypeVar

from netresolve.services.errors import RequestTimeoutError

T = TypeVar("T")


async def with_timeout(awaitable: Awaitable[T], timeout: float, service_id: str) -> T:
    """Await with a deadline; a timeout becomes a RequestTimeoutError."""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise RequestTimeoutError(service_id, timeout) from e
