"""Bounded pool of agent browsers with FIFO hand-off to waiters.

A library component for callers that reuse browsers across tasks. The default
validation pipeline does not use it: execution launches a fresh browser per
scenario.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable

from src.browser.agent_browser import AgentBrowser

logger = logging.getLogger(__name__)


@dataclass
class PooledBrowser:
    browser: AgentBrowser
    id: int


@dataclass
class _PoolEntry:
    browser: AgentBrowser
    in_use: bool


class BrowserPool:
    """Hands out at most *capacity* browsers, creating them lazily.

    An idle browser is reused before a new one is created. When the pool is
    full, ``acquire`` waits; ``release`` passes the browser straight to the
    oldest waiter. Every acquisition gets a fresh handle id, so releasing a
    handle twice is a no-op.
    """

    def __init__(self, capacity: int, factory: Callable[[], AgentBrowser]):
        if capacity < 1:
            raise ValueError("Browser pool capacity must be at least 1")
        self.capacity = capacity
        self._factory = factory
        self._entries: list[_PoolEntry] = []
        self._leases: dict[int, _PoolEntry] = {}
        self._waiters: deque[asyncio.Future] = deque()
        self._next_id = 0

    def _lease(self, entry: _PoolEntry) -> PooledBrowser:
        handle_id = self._next_id
        self._next_id += 1
        entry.in_use = True
        self._leases[handle_id] = entry
        return PooledBrowser(browser=entry.browser, id=handle_id)

    async def acquire(self) -> PooledBrowser:
        for entry in self._entries:
            if not entry.in_use:
                return self._lease(entry)

        if len(self._entries) < self.capacity:
            entry = _PoolEntry(browser=self._factory(), in_use=True)
            self._entries.append(entry)
            logger.debug("Created pooled browser (%d/%d)", len(self._entries), self.capacity)
            return self._lease(entry)

        waiter: asyncio.Future = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        return await waiter

    def release(self, handle_id: int) -> None:
        entry = self._leases.pop(handle_id, None)
        if entry is None:
            logger.debug("Ignoring release of unknown pooled browser handle %d", handle_id)
            return
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(self._lease(entry))
                return
        entry.in_use = False

    async def close_all(self) -> None:
        """Close every browser; pending ``acquire`` calls fail with RuntimeError."""
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_exception(RuntimeError("Browser pool closed"))

        async def _close(index: int, entry: _PoolEntry) -> None:
            try:
                await entry.browser.close()
            except Exception as e:
                logger.warning("Failed to close pooled browser %d: %s", index, e)

        await asyncio.gather(*(_close(i, e) for i, e in enumerate(self._entries)))
        self._entries.clear()
        self._leases.clear()

    @property
    def active_count(self) -> int:
        return sum(1 for entry in self._entries if entry.in_use)
