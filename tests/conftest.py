"""Shared fixtures: provider payload builders and a scriptable adapter stub."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import pytest

from weather_dashboard.exceptions import CityNotFoundError
from weather_dashboard.weather.base import WeatherProviderAdapter
from weather_dashboard.weather.models import (
    CitySearchResult,
    ProviderWeatherPayload,
    ReverseGeocodeResult,
)


def make_sample(
    when: datetime,
    temp: float,
    *,
    pop: float = 0.0,
    code: int = 800,
    icon: str = "01d",
    description: str = "clear sky",
) -> dict[str, Any]:
    return {
        "dt": int(when.timestamp()),
        "main": {"temp": temp, "feels_like": temp - 1, "humidity": 60},
        "weather": [{"id": code, "main": "Clear", "description": description, "icon": icon}],
        "pop": pop,
    }


def make_current(
    *,
    name: str = "Paris",
    country: str = "FR",
    temp: float = 21.4,
    code: int = 800,
    icon: str = "01d",
    lat: float = 48.8566,
    lon: float = 2.3522,
) -> dict[str, Any]:
    return {
        "coord": {"lat": lat, "lon": lon},
        "weather": [{"id": code, "main": "Clear", "description": "clear sky", "icon": icon}],
        "main": {"temp": temp, "feels_like": temp - 0.6, "humidity": 55, "pressure": 1016},
        "visibility": 10000,
        "wind": {"speed": 5.0},
        "dt": 1773144000,
        "sys": {"country": country},
        "timezone": 3600,
        "name": name,
    }


def make_forecast(
    samples: list[dict[str, Any]] | None = None, *, timezone: int = 0
) -> dict[str, Any]:
    if samples is None:
        base = datetime(2026, 3, 10, 0, 0, tzinfo=UTC)
        samples = [
            make_sample(base.replace(hour=hour), 10 + hour / 3, pop=hour / 100)
            for hour in range(0, 24, 3)
        ]
    return {"list": samples, "city": {"name": "Paris", "country": "FR", "timezone": timezone}}


def make_payload(**current_overrides: Any) -> ProviderWeatherPayload:
    return ProviderWeatherPayload(
        current=make_current(**current_overrides), forecast=make_forecast()
    )


class StubAdapter(WeatherProviderAdapter):
    """Scriptable adapter; optional per-key asyncio.Event gates hold replies back."""

    def __init__(self) -> None:
        self.search_calls: list[str] = []
        self.weather_calls: list[dict[str, Any]] = []
        self.search_results: dict[str, list[CitySearchResult]] = {}
        self.search_errors: dict[str, Exception] = {}
        self.weather_results: dict[str, ProviderWeatherPayload] = {}
        self.weather_errors: dict[str, Exception] = {}
        self.default_weather: ProviderWeatherPayload | None = None
        self.gates: dict[str, asyncio.Event] = {}
        self.closed = False

    async def search_cities(self, query: str) -> list[CitySearchResult]:
        self.search_calls.append(query)
        await self._wait_gate(query)
        if query in self.search_errors:
            raise self.search_errors[query]
        return self.search_results.get(query, [])

    async def fetch_weather(
        self,
        *,
        city: str | None = None,
        lat: float | None = None,
        lon: float | None = None,
    ) -> ProviderWeatherPayload:
        key = city if city is not None else f"{lat},{lon}"
        self.weather_calls.append({"city": city, "lat": lat, "lon": lon})
        await self._wait_gate(key)
        if key in self.weather_errors:
            raise self.weather_errors[key]
        if key in self.weather_results:
            return self.weather_results[key]
        if self.default_weather is not None:
            return self.default_weather
        raise CityNotFoundError("City not found")

    async def reverse_geocode(self, lat: float, lon: float) -> ReverseGeocodeResult:
        return ReverseGeocodeResult(name="Paris", country="FR", state="")

    async def aclose(self) -> None:
        self.closed = True

    async def _wait_gate(self, key: str) -> None:
        gate = self.gates.get(key)
        if gate is not None:
            await gate.wait()


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("test_weather_dashboard")


@pytest.fixture
def stub_adapter() -> StubAdapter:
    return StubAdapter()


@pytest.fixture
def payload_factory() -> Callable[..., ProviderWeatherPayload]:
    return make_payload


@pytest.fixture
def sample_factory() -> Callable[..., dict[str, Any]]:
    return make_sample


@pytest.fixture
def forecast_factory() -> Callable[..., dict[str, Any]]:
    return make_forecast


@pytest.fixture
def current_factory() -> Callable[..., dict[str, Any]]:
    return make_current
