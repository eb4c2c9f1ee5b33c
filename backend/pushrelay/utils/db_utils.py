"""Database utility functions."""
import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import OperationalError, InterfaceError
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Driver messages that indicate a retryable condition
TRANSIENT_ERRORS = (
    "database is locked",        # sqlite
    "deadlock found",            # mysql 1213
    "lock wait timeout",         # mysql 1205
    "lost connection",           # mysql 2013
    "server has gone away",      # mysql 2006
    "connection refused",
    "connection reset",
    "connection closed",
    "server closed",
    "too many clients",
    "timeout",
)


def is_transient_error(exc: Exception) -> bool:
    """True when the driver error message matches a retryable condition."""
    message = str(exc).lower()
    return any(fragment in message for fragment in TRANSIENT_ERRORS)


async def retry_on_lock(
    coro_func: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 0.1,
    session: Optional[AsyncSession] = None,
) -> T:
    """Retry a database unit of work on lock contention or dropped connections.
    
    A failed flush or commit leaves the session needing a rollback, so when
    ``session`` is given it is rolled back before the next attempt and
    ``coro_func`` must redo the whole unit of work, not just the commit.
    
    Args:
        coro_func: Async function to call (should be a callable that returns a coroutine)
        max_retries: Maximum number of attempts
        base_delay: Base delay in seconds (doubles with each retry)
        session: Session to roll back between attempts
        
    Returns:
        The result of the coroutine function
        
    Raises:
        OperationalError: If all retries fail or error is not transient
    """
    for attempt in range(max_retries):
        try:
            return await coro_func()
        except (OperationalError, InterfaceError) as e:
            if not is_transient_error(e) or attempt == max_retries - 1:
                raise
            if session is not None:
                await session.rollback()
            delay = base_delay * (2 ** attempt)
            logger.warning(
                f"Database busy, retrying in {delay}s (attempt {attempt + 1}/{max_retries}): {e}"
            )
            await asyncio.sleep(delay)
