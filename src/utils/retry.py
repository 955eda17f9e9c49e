"""
Retry helpers.

``with_retry`` retries collaborator calls with exponential backoff.
``retry_on_conflict`` re-runs a read-modify-write operation when a
concurrent writer got there first.
"""

import asyncio
from functools import wraps
from typing import Awaitable, Callable, TypeVar

from src.utils.errors import ConflictError
from src.utils.logging import get_logger

logger = get_logger(__name__)

R = TypeVar("R")


def with_retry(
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff_factor: float = 2.0,
    exceptions: tuple = (Exception,),
):
    """Decorator for retry logic with exponential backoff."""

    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            last_exception = None
            current_delay = delay

            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    last_exception = e
                    if attempt < max_attempts - 1:
                        logger.warning(
                            f"Attempt {attempt + 1}/{max_attempts} failed: {e}. "
                            f"Retrying in {current_delay:.1f}s..."
                        )
                        await asyncio.sleep(current_delay)
                        current_delay *= backoff_factor
                    else:
                        logger.error(f"All {max_attempts} attempts failed. Last error: {e}")

            raise last_exception

        return wrapper

    return decorator


async def retry_on_conflict(operation: Callable[[], Awaitable[R]], attempts: int = 3) -> R:
    """
    Run ``operation`` until it completes without a ConflictError.

    The operation must re-read the record it modifies on every call.

    Raises:
        ConflictError: the last attempt still conflicted
    """
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except ConflictError as e:
            if attempt == attempts:
                raise
            logger.warning(f"Conflicting update (attempt {attempt}/{attempts}): {e.detail}")
    raise ConflictError("retry_on_conflict called with no attempts")
