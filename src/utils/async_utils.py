"""Async helpers: labeled timeouts, best-effort cleanup, heartbeat timers."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, TypeVar

from src.errors import OperationTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CLOSE_TIMEOUT_MS = 5000
HEARTBEAT_INTERVAL_S = 15.0


async def with_timeout(awaitable: Awaitable[T], timeout_ms: Optional[int], label: str) -> T:
    """Await *awaitable*, raising OperationTimeoutError after *timeout_ms*.

    A missing or non-positive timeout disables the deadline.
    """
    if not timeout_ms or timeout_ms <= 0:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_ms / 1000)
    except asyncio.TimeoutError as e:
        raise OperationTimeoutError(label, timeout_ms) from e


async def attempt_and_log(
    operation: Callable[[], Awaitable[T]],
    label: str,
    timeout_ms: Optional[int] = None,
    level: int = logging.WARNING,
) -> Optional[T]:
    """Run a best-effort operation. Failures are logged and swallowed.

    Returns the operation's result, or None when it raised or timed out.
    """
    try:
        return await with_timeout(operation(), timeout_ms, label)
    except Exception as e:
        logger.log(level, "%s failed: %s", label, e)
        return None


async def close_quietly(closable: Any, label: str = "Browser close",
                        timeout_ms: int = DEFAULT_CLOSE_TIMEOUT_MS) -> None:
    """Close a handle within *timeout_ms*, never raising."""
    await attempt_and_log(closable.close, label, timeout_ms=timeout_ms)


@contextlib.asynccontextmanager
async def heartbeat(
    tick: Callable[[], None],
    interval_s: float = HEARTBEAT_INTERVAL_S,
) -> AsyncIterator[None]:
    """Call *tick* every *interval_s* seconds while the block runs.

    The timer task is cancelled on both normal and exceptional exit.
    """

    async def _loop() -> None:
        while True:
            await asyncio.sleep(interval_s)
            try:
                tick()
            except Exception as e:
                logger.debug("Heartbeat tick failed: %s", e)

    task = asyncio.create_task(_loop())
    try:
        yield
    finally:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
