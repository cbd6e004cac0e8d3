"""Debounced city suggestion lookup."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from .config import Settings
from .exceptions import WeatherProviderError
from .weather.base import WeatherProviderAdapter
from .weather.models import CitySearchResult


class CitySearch:
    """Coalesces keystrokes into one lookup per quiet period.

    `search` restarts a single pending timer on every call. When the timer
    fires the lookup runs under a fresh request id; its results are applied
    only while that id is still the latest. `clear` bumps the id, so a reply
    that lands after it is dropped.
    """

    def __init__(
        self,
        adapter: WeatherProviderAdapter,
        settings: Settings,
        logger: logging.Logger,
    ) -> None:
        self.adapter = adapter
        self.logger = logger
        self.debounce_seconds = settings.search_debounce_seconds
        self.min_query_length = settings.search_min_query_length
        self.suggestions: list[CitySearchResult] = []
        self.is_searching = False
        self._timer: asyncio.Task[None] | None = None
        self._lookups: set[asyncio.Task[None]] = set()
        self._request_id = 0

    def search(self, query: str) -> None:
        """Schedule a lookup for query after the debounce delay."""
        self._cancel_timer()
        query = query.strip()
        if len(query) < self.min_query_length:
            self.clear()
            return
        self._timer = asyncio.get_running_loop().create_task(self._debounce(query))

    def clear(self) -> None:
        self._cancel_timer()
        self._request_id += 1
        self.suggestions = []
        self.is_searching = False

    async def wait_idle(self) -> None:
        """Wait for the pending timer and any lookups it started."""
        if self._timer is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._timer
        while self._lookups:
            await asyncio.gather(*list(self._lookups), return_exceptions=True)

    async def _debounce(self, query: str) -> None:
        await asyncio.sleep(self.debounce_seconds)
        self._request_id += 1
        task = asyncio.get_running_loop().create_task(self._lookup(query, self._request_id))
        self._lookups.add(task)
        task.add_done_callback(self._lookups.discard)

    async def _lookup(self, query: str, request_id: int) -> None:
        self.is_searching = True
        try:
            results = await self.adapter.search_cities(query)
        except WeatherProviderError as exc:
            self.logger.warning("City search failed for %r: %s", query, exc)
            results = []
        if request_id != self._request_id:
            self.logger.debug("Dropping stale suggestions for %r", query)
            return
        self.suggestions = results
        self.is_searching = False

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None
