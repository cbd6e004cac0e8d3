from __future__ import annotations

import json
import logging
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace

from weather_dashboard.ratelimit import RateLimiter
from weather_dashboard.storage import RATE_LIMIT_KEY, MemoryStorage

T0 = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


class _Clock:
    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def _settings(**overrides: object) -> SimpleNamespace:
    defaults = {"rate_limit_max_calls": 10, "rate_limit_window_seconds": 3600}
    defaults.update(overrides)
    return SimpleNamespace(**defaults)


def _limiter(
    storage: MemoryStorage | None = None, clock: _Clock | None = None, **overrides: object
) -> RateLimiter:
    return RateLimiter(
        settings=_settings(**overrides),
        storage=storage if storage is not None else MemoryStorage(),
        logger=logging.getLogger("test_rate_limiter"),
        clock=clock or _Clock(),
    )


def _stored(storage: MemoryStorage) -> dict:
    raw = storage.get(RATE_LIMIT_KEY)
    assert raw is not None
    return json.loads(raw)


def test_ten_calls_allowed_then_eleventh_refused() -> None:
    limiter = _limiter()

    results = [limiter.consume_call() for _ in range(10)]
    assert results == [True] * 10
    assert limiter.remaining_calls == 0
    assert limiter.is_limited is True

    assert limiter.consume_call() is False
    assert limiter.check_rate_limit() is False


def test_refused_call_leaves_stored_window_untouched() -> None:
    storage = MemoryStorage()
    limiter = _limiter(storage, rate_limit_max_calls=2)
    limiter.consume_call()
    limiter.consume_call()
    before = storage.get(RATE_LIMIT_KEY)

    assert limiter.consume_call() is False
    assert storage.get(RATE_LIMIT_KEY) == before
    assert _stored(storage)["count"] == 2


def test_fresh_window_is_not_persisted_until_first_call() -> None:
    storage = MemoryStorage()
    limiter = _limiter(storage)

    assert limiter.check_rate_limit() is True
    assert limiter.remaining_calls == 10
    assert storage.get(RATE_LIMIT_KEY) is None


def test_window_resets_after_reset_time_passes() -> None:
    storage = MemoryStorage()
    clock = _Clock()
    limiter = _limiter(storage, clock)
    for _ in range(10):
        limiter.consume_call()

    clock.advance(hours=1)
    # Reset happens strictly after resetTime.
    assert limiter.consume_call() is False

    clock.advance(seconds=1)
    assert limiter.consume_call() is True
    assert _stored(storage)["count"] == 1
    assert limiter.remaining_calls == 9
    assert limiter.is_limited is False


def test_persisted_window_uses_camel_case_and_epoch_ms() -> None:
    storage = MemoryStorage()
    limiter = _limiter(storage)
    limiter.consume_call()

    expected_reset = int((T0 + timedelta(hours=1)).timestamp() * 1000)
    assert _stored(storage) == {"count": 1, "resetTime": expected_reset}


def test_window_is_shared_through_storage() -> None:
    storage = MemoryStorage()
    clock = _Clock()
    first = _limiter(storage, clock, rate_limit_max_calls=3)
    second = _limiter(storage, clock, rate_limit_max_calls=3)

    assert first.consume_call() is True
    assert second.consume_call() is True
    assert first.consume_call() is True
    assert second.consume_call() is False


def test_existing_window_in_storage_is_respected() -> None:
    reset_ms = int((T0 + timedelta(minutes=20)).timestamp() * 1000)
    storage = MemoryStorage({RATE_LIMIT_KEY: json.dumps({"count": 10, "resetTime": reset_ms})})
    limiter = _limiter(storage)

    assert limiter.check_rate_limit() is False
    assert limiter.reset_time_remaining() == "20 min"


def test_corrupt_state_is_treated_as_fresh_window() -> None:
    storage = MemoryStorage({RATE_LIMIT_KEY: "{not json"})
    limiter = _limiter(storage)

    assert limiter.consume_call() is True
    assert _stored(storage)["count"] == 1


def test_invalid_shapes_are_treated_as_fresh_window() -> None:
    for raw in (
        json.dumps({"count": -3, "resetTime": 1773147600000}),
        json.dumps({"count": 2}),
        json.dumps({"count": 2, "resetTime": True}),
        json.dumps([1, 2, 3]),
    ):
        storage = MemoryStorage({RATE_LIMIT_KEY: raw})
        limiter = _limiter(storage)
        assert limiter.check_rate_limit() is True
        assert limiter.remaining_calls == 10


def test_reset_time_remaining_formats() -> None:
    clock = _Clock()
    limiter = _limiter(clock=clock)
    limiter.consume_call()

    assert limiter.reset_time_remaining() == "1h 0m"
    clock.advance(minutes=30)
    assert limiter.reset_time_remaining() == "30 min"
    clock.advance(minutes=29, seconds=30)
    assert limiter.reset_time_remaining() == "1 min"
    clock.advance(seconds=30)
    assert limiter.reset_time_remaining() == "now"


def test_reset_time_remaining_with_hours_and_minutes() -> None:
    limiter = _limiter(rate_limit_window_seconds=2 * 3600 + 5 * 60)
    assert limiter.reset_time_remaining() == "2h 5m"


def test_status_reports_usage() -> None:
    clock = _Clock()
    limiter = _limiter(clock=clock, rate_limit_max_calls=3, rate_limit_window_seconds=60)
    limiter.consume_call()

    status = limiter.status()
    assert status.limit == 3
    assert status.used == 1
    assert status.remaining == 2
    assert status.is_limited is False
    assert status.reset_time == T0 + timedelta(seconds=60)
