"""Serverless-style proxy handler in front of the weather provider.

Accepts `{action, city?, lat?, lon?}` JSON bodies and answers with normalized
JSON. Failures come back as `{"error": message}` with status 500. Every
response carries permissive CORS headers and pre-flight requests get an
empty 200.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, ValidationError

from .exceptions import ProxyRequestError, WeatherProviderError
from .redaction import sanitize_text
from .weather.base import WeatherProviderAdapter

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


class ProxyRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    action: Literal["search", "weather", "reverse-geocode"]
    city: str | None = None
    lat: float | None = None
    lon: float | None = None


@dataclass(slots=True)
class ProxyResponse:
    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: dict[str, Any] | None = None

    def body_text(self) -> str:
        return "" if self.body is None else json.dumps(self.body)


async def handle_proxy_request(
    method: str,
    body: str | bytes | dict[str, Any] | None,
    adapter: WeatherProviderAdapter,
    logger: logging.Logger,
) -> ProxyResponse:
    """Handle one proxy invocation end to end."""
    if method.upper() == "OPTIONS":
        return ProxyResponse(status=200, headers=dict(CORS_HEADERS))

    try:
        request = parse_proxy_request(body)
        logger.info(
            "Weather proxy request: action=%s",
            request.action,
            extra={"context": request.model_dump(exclude_none=True)},
        )
        result = await _dispatch(request, adapter)
    except (ProxyRequestError, WeatherProviderError) as exc:
        logger.error("Weather proxy failure: %s", exc)
        return _json_response(500, {"error": sanitize_text(str(exc))})
    except Exception:  # pragma: no cover - last-resort guard for the function runtime
        logger.exception("Unexpected weather proxy failure")
        return _json_response(500, {"error": "An unknown error occurred"})

    logger.info("Weather proxy request successful: action=%s", request.action)
    return _json_response(200, result)


def parse_proxy_request(body: str | bytes | dict[str, Any] | None) -> ProxyRequest:
    if body is None:
        raise ProxyRequestError("Request body required")
    if isinstance(body, (str, bytes)):
        try:
            body = json.loads(body)
        except ValueError as exc:
            raise ProxyRequestError("Request body must be JSON") from exc
    if not isinstance(body, dict):
        raise ProxyRequestError("Request body must be a JSON object")
    try:
        return ProxyRequest.model_validate(body)
    except ValidationError as exc:
        if any(error["loc"] == ("action",) for error in exc.errors()):
            raise ProxyRequestError("Invalid action") from exc
        raise ProxyRequestError(f"Invalid request: {exc.error_count()} field error(s)") from exc


async def _dispatch(request: ProxyRequest, adapter: WeatherProviderAdapter) -> dict[str, Any]:
    if request.action == "search":
        cities = await adapter.search_cities(request.city or "")
        return {"cities": [city.model_dump(mode="json") for city in cities]}

    if request.action == "weather":
        if request.city and request.lat is None and request.lon is None:
            payload = await adapter.fetch_weather(city=request.city)
        else:
            payload = await adapter.fetch_weather(lat=request.lat, lon=request.lon)
        return payload.model_dump(mode="json")

    if request.lat is None or request.lon is None:
        raise ProxyRequestError("Coordinates required for reverse geocoding")
    place = await adapter.reverse_geocode(request.lat, request.lon)
    return place.model_dump(mode="json")


def _json_response(status: int, body: dict[str, Any]) -> ProxyResponse:
    return ProxyResponse(
        status=status,
        headers={**CORS_HEADERS, "Content-Type": "application/json"},
        body=body,
    )
