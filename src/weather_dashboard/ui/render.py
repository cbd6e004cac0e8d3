"""Rich renderers for the terminal dashboard."""

from __future__ import annotations

from collections.abc import Sequence

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..favorites.models import FavoriteCity
from ..preferences import TemperatureUnit, convert_temperature
from ..ratelimit.models import RateLimitStatus
from ..weather.models import CitySearchResult, WeatherData


def _degrees(celsius: float, unit: TemperatureUnit) -> str:
    suffix = "F" if unit == "fahrenheit" else "C"
    return f"{convert_temperature(celsius, unit)}°{suffix}"


def render_weather(
    console: Console,
    weather: WeatherData,
    *,
    unit: TemperatureUnit = "celsius",
    is_favorite: bool = False,
) -> None:
    current = weather.current
    star = " ★" if is_favorite else ""
    headline = Text(f"{current.location}, {current.country}{star}", style="bold")
    details = Table.grid(padding=(0, 2))
    details.add_column(justify="right", style="dim")
    details.add_column()
    details.add_row("Now", f"{_degrees(current.temperature, unit)}  {current.condition_text}")
    details.add_row("Feels like", _degrees(current.feels_like, unit))
    details.add_row("Humidity", f"{current.humidity}%")
    details.add_row("Wind", f"{current.wind_speed} km/h")
    details.add_row("Pressure", f"{current.pressure} hPa")
    details.add_row("Visibility", f"{current.visibility:g} km")
    details.add_row("Coordinates", f"{current.lat:.4f}, {current.lon:.4f}")
    console.print(Panel(Group(headline, details), title=current.condition, expand=False))

    if weather.hourly:
        hourly = Table(title="Hourly")
        hourly.add_column("Time")
        hourly.add_column("Temp", justify="right")
        hourly.add_column("Condition")
        hourly.add_column("Precip %", justify="right")
        for hour in weather.hourly:
            hourly.add_row(
                hour.time,
                _degrees(hour.temperature, unit),
                hour.condition_text,
                str(hour.precip_chance),
            )
        console.print(hourly)

    if weather.daily:
        daily = Table(title="5-Day Forecast")
        daily.add_column("Day")
        daily.add_column("Date")
        daily.add_column("Low", justify="right")
        daily.add_column("High", justify="right")
        daily.add_column("Condition")
        daily.add_column("Precip %", justify="right")
        for day in weather.daily:
            daily.add_row(
                day.day_name,
                day.date,
                _degrees(day.temp_min, unit),
                _degrees(day.temp_max, unit),
                day.condition_text,
                str(day.precip_chance),
            )
        console.print(daily)


def render_error(console: Console, message: str, *, fallback_city: str | None = None) -> None:
    body = Text(message, style="red")
    if fallback_city:
        body.append(f"\nTry searching for a city instead, e.g. {fallback_city}.", style="dim")
    console.print(Panel(body, title="Weather unavailable", expand=False))


def render_favorites(
    console: Console,
    favorites: Sequence[FavoriteCity],
    *,
    unit: TemperatureUnit = "celsius",
    current_city: str | None = None,
) -> None:
    if not favorites:
        console.print("No favorite cities saved yet.")
        return
    table = Table(title="Favorites")
    table.add_column("#", justify="right")
    table.add_column("City")
    table.add_column("Country")
    table.add_column("Last seen", justify="right")
    table.add_column("Condition")
    table.add_column("Id", style="dim", overflow="fold")
    for index, favorite in enumerate(favorites):
        name = favorite.name
        if current_city is not None and favorite.name == current_city:
            name = f"[bold]{name}[/bold]"
        table.add_row(
            str(index),
            name,
            favorite.country,
            _degrees(favorite.cached_temp, unit) if favorite.cached_temp is not None else "-",
            favorite.cached_condition or "-",
            favorite.id,
        )
    console.print(table)


def render_suggestions(console: Console, suggestions: Sequence[CitySearchResult]) -> None:
    if not suggestions:
        console.print("No matching cities.")
        return
    table = Table(title="Cities")
    table.add_column("Name")
    table.add_column("State")
    table.add_column("Country")
    table.add_column("Lat", justify="right")
    table.add_column("Lon", justify="right")
    for city in suggestions:
        table.add_row(
            city.name, city.state or "-", city.country, f"{city.lat:.4f}", f"{city.lon:.4f}"
        )
    console.print(table)


def render_quota(console: Console, status: RateLimitStatus, resets_in: str) -> None:
    style = "red" if status.is_limited else "green"
    console.print(
        Text(
            f"{status.remaining}/{status.limit} calls remaining; window resets in {resets_in}",
            style=style,
        )
    )
