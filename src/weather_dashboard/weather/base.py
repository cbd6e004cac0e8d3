"""Provider-agnostic weather/geocoding interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .models import CitySearchResult, ProviderWeatherPayload, ReverseGeocodeResult


class WeatherProviderAdapter(ABC):
    """Contract for anything that resolves cities and returns raw weather documents."""

    @abstractmethod
    async def search_cities(self, query: str) -> list[CitySearchResult]:
        """Return coordinate suggestions for a partial city name."""

    @abstractmethod
    async def fetch_weather(
        self,
        *,
        city: str | None = None,
        lat: float | None = None,
        lon: float | None = None,
    ) -> ProviderWeatherPayload:
        """Fetch current + forecast documents by city name or coordinates."""

    @abstractmethod
    async def reverse_geocode(self, lat: float, lon: float) -> ReverseGeocodeResult:
        """Resolve coordinates to a place name."""

    @abstractmethod
    async def aclose(self) -> None:
        """Release adapter resources."""
