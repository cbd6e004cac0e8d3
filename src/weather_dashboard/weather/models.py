"""Typed models for normalized weather data and provider payloads."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

WeatherCondition = Literal[
    "sunny",
    "cloudy",
    "rainy",
    "thunderstorm",
    "snow",
    "night",
    "night-cloudy",
    "mist",
]


class CurrentWeather(BaseModel):
    """Current conditions for one resolved location."""

    location: str
    country: str
    lat: float
    lon: float
    temperature: int
    feels_like: int
    condition: WeatherCondition
    condition_text: str
    humidity: int
    wind_speed: int = Field(description="km/h")
    pressure: int
    visibility: float = Field(description="km")
    is_day: bool
    icon: str


class HourlyForecast(BaseModel):
    time: str
    temperature: int
    condition: WeatherCondition
    condition_text: str
    precip_chance: int
    icon: str


class DailyForecast(BaseModel):
    date: str
    day_name: str
    temp_max: int
    temp_min: int
    condition: WeatherCondition
    condition_text: str
    precip_chance: int
    icon: str


class WeatherData(BaseModel):
    """Snapshot shown by the dashboard; replaced wholesale on each fetch."""

    current: CurrentWeather
    hourly: list[HourlyForecast] = Field(default_factory=list)
    daily: list[DailyForecast] = Field(default_factory=list)


class CitySearchResult(BaseModel):
    name: str
    country: str
    state: str = ""
    lat: float
    lon: float


class ReverseGeocodeResult(BaseModel):
    name: str
    country: str
    state: str = ""


class ProviderWeatherPayload(BaseModel):
    """Raw provider current-weather and 5-day/3-hour forecast documents."""

    current: dict[str, Any]
    forecast: dict[str, Any]
