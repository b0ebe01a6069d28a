"""Keyed query cache with cancellable background refetches."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger("taskflow.client")

QueryKey = tuple[str, ...]
Fetcher = Callable[[], Awaitable[Any]]
Listener = Callable[[QueryKey, Any], None]


def _log_background_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Background refetch failed: %s", exc)


class QueryCache:
    """Holds the last known data per query key.

    At most one fetch per key is in flight; ``fetch`` joins it, ``invalidate``
    replaces it with a fresh background fetch and ``cancel`` stops it without
    touching the cached data.
    """

    def __init__(self) -> None:
        self._data: dict[QueryKey, Any] = {}
        self._fetchers: dict[QueryKey, Fetcher] = {}
        self._inflight: dict[QueryKey, asyncio.Task] = {}
        self._listeners: list[Listener] = []

    def register(self, key: QueryKey, fetcher: Fetcher) -> None:
        self._fetchers[key] = fetcher

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def get_data(self, key: QueryKey, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set_data(self, key: QueryKey, value: Any) -> Any:
        """Replace cached data. A callable receives the current value and returns the new one."""
        if callable(value):
            value = value(self._data.get(key))
        self._data[key] = value
        for listener in list(self._listeners):
            listener(key, value)
        return value

    def is_fetching(self, key: QueryKey) -> bool:
        task = self._inflight.get(key)
        return task is not None and not task.done()

    async def _run_fetch(self, key: QueryKey) -> Any:
        data = await self._fetchers[key]()
        return self.set_data(key, data)

    def _start_fetch(self, key: QueryKey) -> asyncio.Task:
        if key not in self._fetchers:
            raise KeyError(f"No fetcher registered for query {key!r}")
        task = asyncio.create_task(self._run_fetch(key))
        task.add_done_callback(_log_background_failure)
        task.add_done_callback(lambda t: self._inflight.pop(key, None) if self._inflight.get(key) is t else None)
        self._inflight[key] = task
        return task

    async def fetch(self, key: QueryKey) -> Any:
        """Fetch now, joining an in-flight fetch for the same key if there is one."""
        task = self._inflight.get(key)
        if task is None or task.done():
            task = self._start_fetch(key)
        return await asyncio.shield(task)

    async def cancel(self, key: QueryKey) -> None:
        """Stop an in-flight fetch so its response can never overwrite newer data."""
        task = self._inflight.pop(key, None)
        if task is None or task.done():
            return
        task.cancel()
        await asyncio.wait({task})

    def invalidate(self, key: QueryKey) -> asyncio.Task | None:
        """Mark data stale and refetch in the background. Returns the refetch task."""
        if key not in self._fetchers:
            return None
        stale = self._inflight.pop(key, None)
        if stale is not None and not stale.done():
            stale.cancel()
        return self._start_fetch(key)

    async def wait_idle(self) -> None:
        """Wait for every in-flight fetch to settle."""
        pending = [task for task in self._inflight.values() if not task.done()]
        if pending:
            await asyncio.wait(pending)
