"""
RequestDeduplicator - Coalesces concurrent identical aggregations.

When several callers miss the cache for the same (game, stores) key at
once, only the first starts a fan-out; the others await its result.
A caller that gives up does not cancel the shared work, which still
finishes and fills the cache for later callers.
"""

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger

T = TypeVar("T")


class RequestDeduplicator:
    """
    Shares one in-flight task per key between concurrent callers.

    Usage:
        dedup = RequestDeduplicator()

        result = await dedup.dedupe(
            key=cache_key,
            request_fn=lambda: aggregate(game_id, stores),
        )
    """

    def __init__(self, debug: bool = False):
        self._in_flight: dict[str, asyncio.Task[Any]] = {}
        self._lock = asyncio.Lock()
        self._debug = debug
        self.started = 0
        self.joined = 0

    async def dedupe(self, key: str, request_fn: Callable[[], Awaitable[T]]) -> T:
        """Run request_fn for key, or join the run already in flight."""
        async with self._lock:
            task = self._in_flight.get(key)
            if task is None:
                self.started += 1
                task = asyncio.create_task(self._run(key, request_fn))
                self._in_flight[key] = task
            else:
                self.joined += 1
                if self._debug:
                    logger.debug(f"[Deduplicator] joining in-flight {key}")

        return await asyncio.shield(task)

    async def _run(self, key: str, request_fn: Callable[[], Awaitable[T]]) -> T:
        try:
            return await request_fn()
        finally:
            async with self._lock:
                self._in_flight.pop(key, None)

    async def cancel_all(self) -> int:
        """Cancel every in-flight task."""
        async with self._lock:
            tasks = list(self._in_flight.values())
            self._in_flight.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            logger.info(f"Cancelled {len(tasks)} in-flight aggregations")
        return len(tasks)

    def get_stats(self) -> dict[str, Any]:
        """In-flight count plus how many callers started or joined a fan-out."""
        return {
            "in_flight": len(self._in_flight),
            "started": self.started,
            "joined": self.joined,
        }
