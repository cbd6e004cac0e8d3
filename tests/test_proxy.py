from __future__ import annotations

import json
import logging
from types import SimpleNamespace
from typing import Any

import httpx
import pytest

from weather_dashboard.exceptions import CityNotFoundError, ConfigError, WeatherProviderError
from weather_dashboard.proxy import CORS_HEADERS, handle_proxy_request, parse_proxy_request
from weather_dashboard.weather.models import CitySearchResult
from weather_dashboard.weather.proxy_client import ProxyWeatherAdapter

from conftest import StubAdapter, make_current, make_forecast, make_payload

LOGGER = logging.getLogger("test_proxy")
PROXY_URL = "https://proxy.example.test/functions/v1/weather"


async def _call(adapter: StubAdapter, body: Any, method: str = "POST"):
    return await handle_proxy_request(method, body, adapter, LOGGER)


@pytest.mark.asyncio
async def test_preflight_returns_cors_headers_only(stub_adapter: StubAdapter) -> None:
    response = await _call(stub_adapter, None, method="OPTIONS")

    assert response.status == 200
    assert response.body is None
    assert response.body_text() == ""
    assert response.headers == CORS_HEADERS


@pytest.mark.asyncio
async def test_search_action_wraps_cities(stub_adapter: StubAdapter) -> None:
    stub_adapter.search_results["Par"] = [
        CitySearchResult(name="Paris", country="FR", lat=48.85, lon=2.35)
    ]

    response = await _call(stub_adapter, json.dumps({"action": "search", "city": "Par"}))

    assert response.status == 200
    assert response.headers["Access-Control-Allow-Origin"] == "*"
    assert response.headers["Content-Type"] == "application/json"
    assert response.body == {
        "cities": [{"name": "Paris", "country": "FR", "state": "", "lat": 48.85, "lon": 2.35}]
    }


@pytest.mark.asyncio
async def test_weather_action_prefers_city_without_coordinates(
    stub_adapter: StubAdapter,
) -> None:
    stub_adapter.default_weather = make_payload()

    response = await _call(stub_adapter, {"action": "weather", "city": "Paris"})

    assert response.status == 200
    assert stub_adapter.weather_calls == [{"city": "Paris", "lat": None, "lon": None}]
    assert set(response.body) == {"current", "forecast"}
    assert json.loads(response.body_text())["current"]["name"] == "Paris"


@pytest.mark.asyncio
async def test_weather_action_uses_coordinates(stub_adapter: StubAdapter) -> None:
    stub_adapter.default_weather = make_payload()

    await _call(stub_adapter, {"action": "weather", "city": "Paris", "lat": 0, "lon": 0})

    assert stub_adapter.weather_calls == [{"city": None, "lat": 0.0, "lon": 0.0}]


@pytest.mark.asyncio
async def test_reverse_geocode_requires_coordinates(stub_adapter: StubAdapter) -> None:
    response = await _call(stub_adapter, {"action": "reverse-geocode", "lat": 48.85})

    assert response.status == 500
    assert response.body == {"error": "Coordinates required for reverse geocoding"}
    assert response.headers["Access-Control-Allow-Origin"] == "*"


@pytest.mark.asyncio
async def test_reverse_geocode_returns_place(stub_adapter: StubAdapter) -> None:
    body = {"action": "reverse-geocode", "lat": 48.85, "lon": 2.35}
    response = await _call(stub_adapter, body)

    assert response.status == 200
    assert response.body == {"name": "Paris", "country": "FR", "state": ""}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("body", "message"),
    [
        ({"action": "forecast"}, "Invalid action"),
        ({"city": "Paris"}, "Invalid action"),
        (None, "Request body required"),
        ("{oops", "Request body must be JSON"),
        ("[1, 2]", "Request body must be a JSON object"),
    ],
)
async def test_malformed_requests_become_500(
    stub_adapter: StubAdapter, body: Any, message: str
) -> None:
    response = await _call(stub_adapter, body)

    assert response.status == 500
    assert response.body == {"error": message}
    assert stub_adapter.weather_calls == []


@pytest.mark.asyncio
async def test_provider_failure_message_is_forwarded(stub_adapter: StubAdapter) -> None:
    response = await _call(stub_adapter, {"action": "weather", "city": "Atlantis"})

    assert response.status == 500
    assert response.body == {"error": "City not found"}


@pytest.mark.asyncio
async def test_forwarded_errors_are_redacted(stub_adapter: StubAdapter) -> None:
    stub_adapter.weather_errors["Paris"] = WeatherProviderError("upstream said appid=secret-1")

    response = await _call(stub_adapter, {"action": "weather", "city": "Paris"})

    assert "secret-1" not in response.body["error"]


def test_parse_proxy_request_ignores_unknown_fields() -> None:
    request = parse_proxy_request(b'{"action": "search", "city": "Oslo", "extra": 1}')
    assert request.action == "search"
    assert request.city == "Oslo"


def _settings(**overrides: Any) -> SimpleNamespace:
    defaults = {
        "weather_proxy_url": PROXY_URL,
        "weather_timeout_seconds": 5.0,
        "search_min_query_length": 2,
    }
    defaults.update(overrides)
    return SimpleNamespace(**defaults)


def _adapter(handler: Any) -> ProxyWeatherAdapter:
    return ProxyWeatherAdapter(
        settings=_settings(), logger=LOGGER, transport=httpx.MockTransport(handler)
    )


@pytest.mark.asyncio
async def test_adapter_posts_action_and_omits_missing_fields() -> None:
    seen: list[dict[str, Any]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"current": make_current(), "forecast": make_forecast()})

    async with _adapter(handler) as adapter:
        payload = await adapter.fetch_weather(city="Paris")

    assert seen == [{"action": "weather", "city": "Paris"}]
    assert payload.current["name"] == "Paris"


@pytest.mark.asyncio
async def test_adapter_search_unwraps_cities_and_skips_short_queries() -> None:
    seen: list[dict[str, Any]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(
            200, json={"cities": [{"name": "Oslo", "country": "NO", "lat": 59.9, "lon": 10.7}]}
        )

    async with _adapter(handler) as adapter:
        assert await adapter.search_cities("o") == []
        results = await adapter.search_cities("Oslo")

    assert seen == [{"action": "search", "city": "Oslo"}]
    assert [r.name for r in results] == ["Oslo"]


@pytest.mark.asyncio
async def test_adapter_maps_city_not_found() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "City not found"})

    async with _adapter(handler) as adapter:
        with pytest.raises(CityNotFoundError):
            await adapter.fetch_weather(city="Atlantis")


@pytest.mark.asyncio
async def test_adapter_surfaces_other_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "Invalid API key"})

    async with _adapter(handler) as adapter:
        with pytest.raises(WeatherProviderError, match="Invalid API key") as excinfo:
            await adapter.fetch_weather(lat=1.0, lon=2.0)
    assert not isinstance(excinfo.value, CityNotFoundError)


@pytest.mark.asyncio
async def test_adapter_rejects_non_json_and_malformed_bodies() -> None:
    replies = iter(
        [
            httpx.Response(200, text="<html>"),
            httpx.Response(200, json={"current": "nope"}),
        ]
    )

    def handler(request: httpx.Request) -> httpx.Response:
        return next(replies)

    async with _adapter(handler) as adapter:
        with pytest.raises(WeatherProviderError, match="non-JSON"):
            await adapter.fetch_weather(city="Paris")
        with pytest.raises(WeatherProviderError, match="malformed weather"):
            await adapter.fetch_weather(city="Paris")


def test_adapter_requires_proxy_url() -> None:
    with pytest.raises(ConfigError):
        ProxyWeatherAdapter(settings=_settings(weather_proxy_url=None), logger=LOGGER)
