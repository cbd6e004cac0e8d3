"""Client for the deployed weather proxy function."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..exceptions import CityNotFoundError, ConfigError, WeatherProviderError
from ..redaction import sanitize_text
from .base import WeatherProviderAdapter
from .models import CitySearchResult, ProviderWeatherPayload, ReverseGeocodeResult

CITY_NOT_FOUND_MESSAGE = "City not found"


class ProxyWeatherAdapter(WeatherProviderAdapter):
    """POSTs `{action, city?, lat?, lon?}` to the proxy and unwraps its JSON."""

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if settings.weather_proxy_url is None:
            raise ConfigError("WEATHER_PROXY_URL is required for proxy access.")
        self.settings = settings
        self.logger = logger
        self._url = str(settings.weather_proxy_url)
        self._client = httpx.AsyncClient(
            timeout=settings.weather_timeout_seconds,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def __aenter__(self) -> ProxyWeatherAdapter:
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def search_cities(self, query: str) -> list[CitySearchResult]:
        query = query.strip()
        if len(query) < self.settings.search_min_query_length:
            return []
        payload = await self._invoke({"action": "search", "city": query})
        cities = payload.get("cities")
        if not isinstance(cities, list):
            raise WeatherProviderError("Weather proxy search response missing 'cities'.")
        try:
            return [CitySearchResult.model_validate(item) for item in cities]
        except ValidationError as exc:
            raise WeatherProviderError(f"Weather proxy returned malformed cities: {exc}") from exc

    async def fetch_weather(
        self,
        *,
        city: str | None = None,
        lat: float | None = None,
        lon: float | None = None,
    ) -> ProviderWeatherPayload:
        body: dict[str, Any] = {"action": "weather"}
        if city:
            body["city"] = city
        if lat is not None:
            body["lat"] = lat
        if lon is not None:
            body["lon"] = lon
        payload = await self._invoke(body)
        try:
            return ProviderWeatherPayload.model_validate(payload)
        except ValidationError as exc:
            raise WeatherProviderError(f"Weather proxy returned malformed weather: {exc}") from exc

    async def reverse_geocode(self, lat: float, lon: float) -> ReverseGeocodeResult:
        payload = await self._invoke({"action": "reverse-geocode", "lat": lat, "lon": lon})
        try:
            return ReverseGeocodeResult.model_validate(payload)
        except ValidationError as exc:
            raise WeatherProviderError(f"Weather proxy returned malformed place: {exc}") from exc

    async def _invoke(self, body: dict[str, Any]) -> dict[str, Any]:
        self.logger.debug("Weather proxy request: action=%s", body.get("action"))
        try:
            response = await self._client.post(self._url, json=body)
        except httpx.HTTPError as exc:
            raise WeatherProviderError(
                f"Weather proxy request failed: {sanitize_text(str(exc))}"
            ) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise WeatherProviderError(
                f"Weather proxy returned non-JSON response (HTTP {response.status_code})."
            ) from exc
        if not isinstance(payload, dict):
            raise WeatherProviderError(
                f"Weather proxy returned unexpected payload type {type(payload).__name__}."
            )

        error = payload.get("error")
        if error or response.is_error:
            message = error if isinstance(error, str) and error.strip() else None
            if message is None:
                message = f"Weather proxy failed with status {response.status_code}"
            self.logger.error("Weather proxy error: %s", message)
            if message == CITY_NOT_FOUND_MESSAGE:
                raise CityNotFoundError(message)
            raise WeatherProviderError(message)
        return payload
