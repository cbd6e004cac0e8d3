"""Fixed-window quota gate for outbound weather calls."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from pydantic import ValidationError

from ..config import Settings
from ..exceptions import PersistenceReadError
from ..storage import RATE_LIMIT_KEY, KeyValueStorage, decode_json, encode_json
from .models import RateLimitStatus, RateLimitWindow


def _utc_now() -> datetime:
    return datetime.now(UTC)


class RateLimiter:
    """Global per-client call quota over a fixed wall-clock window.

    The window resets wholesale once `now` passes its reset time, so a burst of
    up to twice the quota is possible across a window boundary.
    """

    def __init__(
        self,
        settings: Settings,
        storage: KeyValueStorage,
        logger: logging.Logger,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.settings = settings
        self.storage = storage
        self.logger = logger
        self._clock = clock
        self.max_calls: int = settings.rate_limit_max_calls
        self.window = timedelta(seconds=settings.rate_limit_window_seconds)
        self.remaining_calls = self.max_calls
        self.is_limited = False

    def check_rate_limit(self) -> bool:
        """Report whether at least one call remains in the current window."""
        window = self._current_window()
        remaining = self.max_calls - window.count
        self._refresh_display(remaining)
        return remaining > 0

    def consume_call(self) -> bool:
        """Use one unit of quota; False when the window is already spent."""
        window = self._current_window()
        if window.count >= self.max_calls:
            self._refresh_display(0)
            self.logger.info(
                "Rate limit reached (%d/%d); resets at %s",
                window.count,
                self.max_calls,
                window.reset_time.isoformat(),
            )
            return False

        updated = window.model_copy(update={"count": window.count + 1})
        self._persist(updated)
        self._refresh_display(self.max_calls - updated.count)
        return True

    def status(self) -> RateLimitStatus:
        window = self._current_window()
        remaining = max(0, self.max_calls - window.count)
        self._refresh_display(remaining)
        return RateLimitStatus(
            limit=self.max_calls,
            used=window.count,
            remaining=remaining,
            reset_time=window.reset_time,
            is_limited=remaining <= 0,
        )

    def reset_time_remaining(self) -> str:
        """Human-readable time until the window resets, e.g. `12 min` or `1h 5m`."""
        window = self._current_window()
        remaining = (window.reset_time - self._clock()).total_seconds()
        if remaining <= 0:
            return "now"
        minutes = math.ceil(remaining / 60)
        if minutes < 60:
            return f"{minutes} min"
        return f"{minutes // 60}h {minutes % 60}m"

    def _current_window(self) -> RateLimitWindow:
        now = self._clock()
        window = self._load_window()
        if window is None:
            return self._fresh_window(now)
        if window.is_expired(now):
            fresh = self._fresh_window(now)
            self._persist(fresh)
            self.logger.debug("Rate limit window expired; new window until %s", fresh.reset_time)
            return fresh
        return window

    def _load_window(self) -> RateLimitWindow | None:
        raw = self.storage.get(RATE_LIMIT_KEY)
        if raw is None:
            return None
        try:
            return RateLimitWindow.model_validate(decode_json(raw))
        except (PersistenceReadError, ValidationError) as exc:
            self.logger.warning("Ignoring unreadable rate limit state: %s", exc)
            return None

    def _fresh_window(self, now: datetime) -> RateLimitWindow:
        return RateLimitWindow(count=0, reset_time=now + self.window)

    def _persist(self, window: RateLimitWindow) -> None:
        self.storage.set(RATE_LIMIT_KEY, encode_json(window.model_dump(mode="json", by_alias=True)))

    def _refresh_display(self, remaining: int) -> None:
        self.remaining_calls = max(0, remaining)
        self.is_limited = self.remaining_calls <= 0
