"""Normalization of OpenWeather current/forecast documents into dashboard models."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from typing import Any

from ..exceptions import WeatherProviderError
from .models import (
    CurrentWeather,
    DailyForecast,
    HourlyForecast,
    ProviderWeatherPayload,
    WeatherCondition,
    WeatherData,
)

MIDDAY_FIRST_HOUR = 11
MIDDAY_LAST_HOUR = 14
_NOON_MINUTES = 12 * 60


def map_condition(code: int, icon: str) -> WeatherCondition:
    """Map a provider condition code plus icon token to a dashboard condition.

    The icon's trailing `d`/`n` decides between day and night variants for
    clear and cloudy skies; other groups ignore it.
    """
    is_night = icon.endswith("n")
    if 200 <= code <= 299:
        return "thunderstorm"
    if 300 <= code <= 599:
        return "rainy"
    if 600 <= code <= 699:
        return "snow"
    if 700 <= code <= 799:
        return "mist"
    if code == 800:
        return "night" if is_night else "sunny"
    return "night-cloudy" if is_night else "cloudy"


def describe(weather: dict[str, Any]) -> str:
    description = _as_str(weather.get("description")) or _as_str(weather.get("main"))
    return description.title() if description else "Unknown"


def map_current(current: dict[str, Any]) -> CurrentWeather:
    weather = _primary_weather(current, context="current weather")
    main = current.get("main")
    if not isinstance(main, dict):
        raise WeatherProviderError("Current weather payload missing 'main' block.")
    temp = _as_float(main.get("temp"))
    if temp is None:
        raise WeatherProviderError("Current weather payload missing 'main.temp'.")

    coord = current.get("coord") if isinstance(current.get("coord"), dict) else {}
    sys_block = current.get("sys") if isinstance(current.get("sys"), dict) else {}
    wind = current.get("wind") if isinstance(current.get("wind"), dict) else {}

    icon = _as_str(weather.get("icon")) or "01d"
    code = _as_int(weather.get("id"))
    if code is None:
        raise WeatherProviderError("Current weather payload missing condition code.")

    feels_like = _as_float(main.get("feels_like"))
    wind_speed = _as_float(wind.get("speed")) or 0.0
    visibility = _as_float(current.get("visibility"))

    return CurrentWeather(
        location=_as_str(current.get("name")) or "Unknown",
        country=_as_str(sys_block.get("country")) or "",
        lat=_as_float(coord.get("lat")) or 0.0,
        lon=_as_float(coord.get("lon")) or 0.0,
        temperature=round(temp),
        feels_like=round(feels_like if feels_like is not None else temp),
        condition=map_condition(code, icon),
        condition_text=describe(weather),
        humidity=round(_as_float(main.get("humidity")) or 0),
        # m/s to km/h
        wind_speed=round(wind_speed * 3.6),
        pressure=round(_as_float(main.get("pressure")) or 0),
        visibility=round((visibility if visibility is not None else 10000) / 1000, 1),
        is_day=not icon.endswith("n"),
        icon=icon,
    )


def map_hourly(
    samples: list[dict[str, Any]], timezone_offset: int, slots: int = 8
) -> list[HourlyForecast]:
    hourly: list[HourlyForecast] = []
    for sample in samples[:slots]:
        weather = _primary_weather(sample, context="forecast sample")
        local = _local_time(sample, timezone_offset)
        condition, text, icon = _sample_condition(weather)
        hourly.append(
            HourlyForecast(
                time=local.strftime("%H:00"),
                temperature=round(_sample_temp(sample)),
                condition=condition,
                condition_text=text,
                precip_chance=_precip_percent(sample),
                icon=icon,
            )
        )
    return hourly


def aggregate_daily(
    samples: list[dict[str, Any]], timezone_offset: int, days: int = 5
) -> list[DailyForecast]:
    """Collapse 3-hour samples into per-calendar-day entries.

    Days are local to the forecast location. The representative condition comes
    from the sample closest to noon between 11:00 and 14:00, or the middle
    sample when none falls in that range.
    """
    grouped: dict[date, list[tuple[datetime, dict[str, Any]]]] = {}
    for sample in samples:
        local = _local_time(sample, timezone_offset)
        grouped.setdefault(local.date(), []).append((local, sample))

    daily: list[DailyForecast] = []
    for index, (day, entries) in enumerate(grouped.items()):
        if index >= days:
            break
        temps = [_sample_temp(sample) for _, sample in entries]
        _, representative = _representative_sample(entries)
        condition, text, icon = _sample_condition(
            _primary_weather(representative, context="forecast sample")
        )
        daily.append(
            DailyForecast(
                date=day.isoformat(),
                day_name="Today" if index == 0 else day.strftime("%a"),
                temp_max=round(max(temps)),
                temp_min=round(min(temps)),
                condition=condition,
                condition_text=text,
                precip_chance=max(_precip_percent(sample) for _, sample in entries),
                icon=icon,
            )
        )
    return daily


def build_weather_data(
    payload: ProviderWeatherPayload,
    *,
    hourly_slots: int = 8,
    daily_days: int = 5,
) -> WeatherData:
    forecast = payload.forecast
    samples = forecast.get("list")
    if not isinstance(samples, list):
        raise WeatherProviderError("Forecast payload missing 'list' of samples.")
    samples = [item for item in samples if isinstance(item, dict)]

    city = forecast.get("city") if isinstance(forecast.get("city"), dict) else {}
    timezone_offset = _as_int(city.get("timezone"))
    if timezone_offset is None:
        timezone_offset = _as_int(payload.current.get("timezone")) or 0

    return WeatherData(
        current=map_current(payload.current),
        hourly=map_hourly(samples, timezone_offset, slots=hourly_slots),
        daily=aggregate_daily(samples, timezone_offset, days=daily_days),
    )


def _representative_sample(
    entries: list[tuple[datetime, dict[str, Any]]],
) -> tuple[datetime, dict[str, Any]]:
    midday = [
        entry for entry in entries if MIDDAY_FIRST_HOUR <= entry[0].hour <= MIDDAY_LAST_HOUR
    ]
    if midday:
        return min(
            midday,
            key=lambda entry: abs(entry[0].hour * 60 + entry[0].minute - _NOON_MINUTES),
        )
    return entries[len(entries) // 2]


def _sample_condition(weather: dict[str, Any]) -> tuple[WeatherCondition, str, str]:
    icon = _as_str(weather.get("icon")) or "01d"
    code = _as_int(weather.get("id"))
    if code is None:
        raise WeatherProviderError("Forecast sample missing condition code.")
    return map_condition(code, icon), describe(weather), icon


def _primary_weather(document: dict[str, Any], *, context: str) -> dict[str, Any]:
    weather = document.get("weather")
    if not isinstance(weather, list) or not weather or not isinstance(weather[0], dict):
        raise WeatherProviderError(f"{context.capitalize()} payload missing 'weather' array.")
    return weather[0]


def _sample_temp(sample: dict[str, Any]) -> float:
    main = sample.get("main")
    temp = _as_float(main.get("temp")) if isinstance(main, dict) else None
    if temp is None:
        raise WeatherProviderError("Forecast sample missing 'main.temp'.")
    return temp


def _precip_percent(sample: dict[str, Any]) -> int:
    pop = _as_float(sample.get("pop")) or 0.0
    return round(pop * 100)


def _local_time(sample: dict[str, Any], timezone_offset: int) -> datetime:
    timestamp = _as_int(sample.get("dt"))
    if timestamp is None:
        raise WeatherProviderError("Forecast sample missing 'dt' timestamp.")
    # Wall-clock time at the location, carried in a UTC-tagged datetime.
    return datetime.fromtimestamp(timestamp, tz=UTC) + timedelta(seconds=timezone_offset)


def _as_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    return None


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None
