import asyncio
import functools
from typing import Any, Callable

from loguru import logger


def absorb_errors(fallback: Callable[..., Any]):
    """
    Decorator for async boundary methods that must never raise.

    Features:
    - Logs the function name and the exception
    - Returns ``fallback(*args, **kwargs)`` instead of raising
    - Lets cancellation through untouched
    - Preserves function metadata
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(
                    f"{func.__qualname__} failed, using fallback: "
                    f"{type(e).__name__}: {e}"
                )
                return fallback(*args, **kwargs)

        return wrapper

    return decorator
