"""Weather provider integrations and normalization."""

from .base import WeatherProviderAdapter
from .mapping import aggregate_daily, build_weather_data, map_condition
from .models import (
    CitySearchResult,
    CurrentWeather,
    DailyForecast,
    HourlyForecast,
    ProviderWeatherPayload,
    ReverseGeocodeResult,
    WeatherCondition,
    WeatherData,
)
from .openweather import OpenWeatherClient
from .proxy_client import ProxyWeatherAdapter

__all__ = [
    "CitySearchResult",
    "CurrentWeather",
    "DailyForecast",
    "HourlyForecast",
    "OpenWeatherClient",
    "ProviderWeatherPayload",
    "ProxyWeatherAdapter",
    "ReverseGeocodeResult",
    "WeatherCondition",
    "WeatherData",
    "WeatherProviderAdapter",
    "aggregate_daily",
    "build_weather_data",
    "map_condition",
]
