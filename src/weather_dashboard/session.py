"""Weather fetch orchestration with loading/error state for the presentation layer."""

from __future__ import annotations

import asyncio
import logging
from typing import Literal

from .config import Settings
from .exceptions import (
    CityNotFoundError,
    LocationUnavailableError,
    RateLimitExceededError,
    WeatherProviderError,
)
from .favorites.store import FavoritesStore
from .location import LocationProvider, Position
from .preferences import PreferencesStore
from .ratelimit.limiter import RateLimiter
from .weather.base import WeatherProviderAdapter
from .weather.mapping import build_weather_data
from .weather.models import WeatherData

SessionState = Literal["idle", "loading", "ready", "failed"]
ErrorKind = Literal["not_found", "location_unavailable", "rate_limited", "provider"]

NOT_FOUND_MESSAGE = "City not found. Please try again."
LOCATION_UNAVAILABLE_MESSAGE = "Unable to get your location. Please enable location services."
GENERIC_FAILURE_MESSAGE = "Failed to fetch weather data."


class WeatherSession:
    """Drives fetch-by-name, fetch-by-coordinates and fetch-by-geolocation.

    State moves `idle -> loading -> ready | failed` and back to `loading` on
    every new request. Each request takes a sequence token when it starts;
    its outcome is applied only while that token is still the latest, so a
    slow reply can never overwrite a newer one. The last successful weather
    stays available while loading and after failures.
    """

    def __init__(
        self,
        adapter: WeatherProviderAdapter,
        settings: Settings,
        logger: logging.Logger,
        *,
        favorites: FavoritesStore | None = None,
        location_provider: LocationProvider | None = None,
        preferences: PreferencesStore | None = None,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        self.adapter = adapter
        self.settings = settings
        self.logger = logger
        self.favorites = favorites
        self.location_provider = location_provider
        self.preferences = preferences
        self.rate_limiter = rate_limiter

        self.state: SessionState = "idle"
        self.weather: WeatherData | None = None
        self.error: str | None = None
        self.error_kind: ErrorKind | None = None
        self.fallback_city: str | None = None
        self._sequence = 0

    @property
    def is_loading(self) -> bool:
        return self.state == "loading"

    async def fetch_by_name(self, city: str) -> None:
        token = self._begin()
        name = city.strip()
        if not name:
            self._fail(token, NOT_FOUND_MESSAGE, "not_found")
            return
        self.logger.info("Fetching weather for city=%s", name)
        await self._load(token, city=name)

    async def fetch_by_coordinates(self, lat: float, lon: float) -> None:
        token = self._begin()
        self.logger.info("Fetching weather for lat=%.4f lon=%.4f", lat, lon)
        await self._load(token, lat=lat, lon=lon)

    async def fetch_by_geolocation(self) -> None:
        """Locate the device, then fetch by coordinates.

        Location failures leave the session failed with `fallback_city` set to
        the configured default; nothing is fetched for it automatically.
        """
        token = self._begin()
        try:
            position = await self._locate()
        except LocationUnavailableError as exc:
            self.logger.warning("Location unavailable (%s): %s", exc.reason, exc)
            if exc.reason == "denied" and self.preferences is not None:
                self.preferences.set_location_permission("denied")
            self._fail(
                token,
                LOCATION_UNAVAILABLE_MESSAGE,
                "location_unavailable",
                fallback_city=self.settings.default_city,
            )
            return

        if self.preferences is not None:
            self.preferences.set_location_permission("granted")
        if not self._is_current(token):
            self.logger.info("Geolocation result superseded by a newer request")
            return
        await self.fetch_by_coordinates(position.lat, position.lon)

    async def _locate(self) -> Position:
        if self.location_provider is None:
            raise LocationUnavailableError("No location provider configured.")
        if self.preferences is not None and self.preferences.location_permission == "denied":
            raise LocationUnavailableError(
                "Location permission previously denied.", reason="denied"
            )
        timeout = self.settings.geolocation_timeout_seconds
        try:
            return await asyncio.wait_for(
                self.location_provider.get_position(timeout=timeout, high_accuracy=True),
                timeout=timeout,
            )
        except TimeoutError as exc:
            raise LocationUnavailableError(
                f"Location request timed out after {timeout:g}s.", reason="timeout"
            ) from exc

    async def _load(
        self,
        token: int,
        *,
        city: str | None = None,
        lat: float | None = None,
        lon: float | None = None,
    ) -> None:
        try:
            self._consume_quota()
            payload = await self.adapter.fetch_weather(city=city, lat=lat, lon=lon)
            weather = build_weather_data(
                payload,
                hourly_slots=self.settings.hourly_forecast_slots,
                daily_days=self.settings.daily_forecast_days,
            )
        except CityNotFoundError:
            self._fail(token, NOT_FOUND_MESSAGE, "not_found")
            return
        except RateLimitExceededError as exc:
            self._fail(token, str(exc), "rate_limited")
            return
        except WeatherProviderError as exc:
            self.logger.error("Weather fetch failed: %s", exc)
            self._fail(token, str(exc) or GENERIC_FAILURE_MESSAGE, "provider")
            return

        current = weather.current
        if self.favorites is not None:
            self.favorites.update_cache(
                current.location, current.country, current.temperature, current.condition
            )

        if not self._is_current(token):
            self.logger.info(
                "Discarding stale weather for %s (request %d, latest %d)",
                current.location,
                token,
                self._sequence,
            )
            return
        self.weather = weather
        self.state = "ready"
        self.logger.info(
            "Weather ready: %s, %s %d° %s",
            current.location,
            current.country,
            current.temperature,
            current.condition,
        )

    def _consume_quota(self) -> None:
        if self.rate_limiter is None:
            return
        if not self.rate_limiter.consume_call():
            raise RateLimitExceededError(
                f"Rate limit reached. Try again in {self.rate_limiter.reset_time_remaining()}."
            )

    def _begin(self) -> int:
        self._sequence += 1
        self.state = "loading"
        self.error = None
        self.error_kind = None
        self.fallback_city = None
        return self._sequence

    def _is_current(self, token: int) -> bool:
        return token == self._sequence

    def _fail(
        self,
        token: int,
        message: str,
        kind: ErrorKind,
        *,
        fallback_city: str | None = None,
    ) -> None:
        if not self._is_current(token):
            self.logger.info("Discarding stale failure (%s): %s", kind, message)
            return
        self.state = "failed"
        self.error = message
        self.error_kind = kind
        self.fallback_city = fallback_city
