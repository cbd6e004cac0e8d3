"""OpenWeather geocoding, current weather and 5-day forecast client."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import Settings
from ..exceptions import CityNotFoundError, ConfigError, WeatherProviderError
from ..redaction import sanitize_text
from .base import WeatherProviderAdapter
from .models import CitySearchResult, ProviderWeatherPayload, ReverseGeocodeResult


class OpenWeatherClient(WeatherProviderAdapter):
    """Talks to api.openweathermap.org directly with the configured API key.

    Uses the free endpoints only: `/geo/1.0/direct`, `/geo/1.0/reverse`,
    `/data/2.5/weather` and `/data/2.5/forecast`.
    """

    provider_name = "openweather"

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not settings.openweather_api_key:
            raise ConfigError("OPENWEATHER_API_KEY is required for direct provider access.")
        self.settings = settings
        self.logger = logger
        self._api_key = settings.openweather_api_key
        self._client = httpx.AsyncClient(
            base_url=str(settings.openweather_base_url).rstrip("/"),
            timeout=settings.weather_timeout_seconds,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def __aenter__(self) -> OpenWeatherClient:
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def search_cities(self, query: str) -> list[CitySearchResult]:
        query = query.strip()
        if len(query) < self.settings.search_min_query_length:
            return []
        payload = await self._request_json(
            "/geo/1.0/direct",
            {"q": query, "limit": self.settings.search_result_limit},
            context="city search",
            fallback_message="Failed to search cities",
        )
        if not isinstance(payload, list):
            raise WeatherProviderError("OpenWeather city search returned unexpected payload.")
        results: list[CitySearchResult] = []
        for item in payload:
            result = self._to_search_result(item)
            if result is not None:
                results.append(result)
        return results

    async def resolve_city(self, city: str) -> tuple[float, float]:
        """Geocode a city name to its best-match coordinates."""
        payload = await self._request_json(
            "/geo/1.0/direct",
            {"q": city, "limit": 1},
            context="geocoding",
            fallback_message="City not found",
        )
        match = None
        if isinstance(payload, list) and payload:
            match = self._to_search_result(payload[0])
        if match is None:
            self.logger.info("City not found: %s", city)
            raise CityNotFoundError("City not found")
        return match.lat, match.lon

    async def fetch_weather(
        self,
        *,
        city: str | None = None,
        lat: float | None = None,
        lon: float | None = None,
    ) -> ProviderWeatherPayload:
        if city and city.strip() and lat is None and lon is None:
            lat, lon = await self.resolve_city(city.strip())
        if lat is None or lon is None:
            raise WeatherProviderError("Location coordinates required")
        self._validate_coordinates(lat, lon)

        params = {"lat": lat, "lon": lon, "units": self.settings.openweather_units}
        current = await self._request_json(
            "/data/2.5/weather",
            params,
            context="current weather",
            fallback_message="Failed to fetch weather",
        )
        forecast = await self._request_json(
            "/data/2.5/forecast",
            params,
            context="forecast",
            fallback_message="Failed to fetch forecast",
        )
        if not isinstance(current, dict) or not isinstance(forecast, dict):
            raise WeatherProviderError("OpenWeather weather payload was not a JSON object.")
        return ProviderWeatherPayload(current=current, forecast=forecast)

    async def reverse_geocode(self, lat: float, lon: float) -> ReverseGeocodeResult:
        self._validate_coordinates(lat, lon)
        payload = await self._request_json(
            "/geo/1.0/reverse",
            {"lat": lat, "lon": lon, "limit": 1},
            context="reverse geocoding",
            fallback_message="Failed to reverse geocode location",
        )
        if not isinstance(payload, list) or not payload or not isinstance(payload[0], dict):
            raise WeatherProviderError("Failed to reverse geocode location")
        first = payload[0]
        name = first.get("name")
        country = first.get("country")
        if not isinstance(name, str) or not isinstance(country, str):
            raise WeatherProviderError("Failed to reverse geocode location")
        return ReverseGeocodeResult(name=name, country=country, state=first.get("state") or "")

    async def _request_json(
        self,
        path: str,
        params: dict[str, Any],
        *,
        context: str,
        fallback_message: str,
    ) -> Any:
        self.logger.debug("OpenWeather %s request: %s", context, path)
        try:
            response = await self._client.get(path, params={**params, "appid": self._api_key})
        except httpx.HTTPError as exc:
            raise WeatherProviderError(
                f"OpenWeather {context} request failed: {sanitize_text(str(exc))}"
            ) from exc

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.is_error:
            message = payload.get("message") if isinstance(payload, dict) else None
            self.logger.error(
                "OpenWeather %s failed (HTTP %d): %s",
                context,
                response.status_code,
                sanitize_text(str(message or response.text[:300])),
            )
            if isinstance(message, str) and message.strip():
                raise WeatherProviderError(sanitize_text(message.strip()))
            raise WeatherProviderError(fallback_message)

        if payload is None:
            raise WeatherProviderError(f"OpenWeather {context} returned non-JSON response.")
        return payload

    @staticmethod
    def _validate_coordinates(lat: float, lon: float) -> None:
        if not (-90 <= lat <= 90):
            raise WeatherProviderError(f"Invalid latitude {lat}; expected between -90 and 90.")
        if not (-180 <= lon <= 180):
            raise WeatherProviderError(f"Invalid longitude {lon}; expected between -180 and 180.")

    @staticmethod
    def _to_search_result(item: Any) -> CitySearchResult | None:
        if not isinstance(item, dict):
            return None
        lat = item.get("lat")
        lon = item.get("lon")
        name = item.get("name")
        if not isinstance(name, str) or not isinstance(lat, (int, float)):
            return None
        if not isinstance(lon, (int, float)):
            return None
        return CitySearchResult(
            name=name,
            country=item.get("country") or "",
            state=item.get("state") or "",
            lat=float(lat),
            lon=float(lon),
        )
