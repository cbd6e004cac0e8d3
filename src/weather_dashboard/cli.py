"""Terminal dashboard CLI: weather lookups, city search, favorites and preferences."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from rich.console import Console

from .config import Settings, load_settings
from .exceptions import ConfigError
from .favorites.models import NewFavorite
from .favorites.store import FavoritesStore
from .location import location_provider_from_settings
from .log_setup import setup_logger
from .preferences import PreferencesStore
from .ratelimit.limiter import RateLimiter
from .search import CitySearch
from .session import WeatherSession
from .storage import JsonFileStorage, KeyValueStorage
from .ui.render import (
    render_error,
    render_favorites,
    render_quota,
    render_suggestions,
    render_weather,
)
from .weather.base import WeatherProviderAdapter
from .weather.openweather import OpenWeatherClient
from .weather.proxy_client import ProxyWeatherAdapter

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_CONFIG = 2
EXIT_WEATHER_FAILURE = 4


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse dashboard CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Terminal weather dashboard with saved favorite cities."
    )
    commands = parser.add_subparsers(dest="command", required=True)

    weather = commands.add_parser("weather", help="Show current conditions and forecasts.")
    source = weather.add_mutually_exclusive_group()
    source.add_argument("--city", type=str, default=None, help="City name to look up.")
    source.add_argument(
        "--locate", action="store_true", help="Use the device location (LOCATION_LAT/LON)."
    )
    weather.add_argument("--lat", type=float, default=None, help="Latitude.")
    weather.add_argument("--lon", type=float, default=None, help="Longitude.")
    weather.add_argument(
        "--star", action="store_true", help="Toggle the shown city in favorites."
    )

    search = commands.add_parser("search", help="Suggest cities for a partial name.")
    search.add_argument("query", type=str)

    favorites = commands.add_parser("favorites", help="Manage favorite cities.")
    favorite_commands = favorites.add_subparsers(dest="favorites_command", required=True)
    favorite_commands.add_parser("list", help="List favorites in display order.")
    add = favorite_commands.add_parser("add", help="Save a city.")
    add.add_argument("name", type=str)
    add.add_argument("country", type=str)
    add.add_argument("lat", type=float)
    add.add_argument("lon", type=float)
    remove = favorite_commands.add_parser("remove", help="Delete a favorite by id.")
    remove.add_argument("id", type=str)
    move = favorite_commands.add_parser("move", help="Move a favorite to a new position.")
    move.add_argument("id", type=str)
    move.add_argument("index", type=int)
    favorite_commands.add_parser("refresh", help="Fetch every favorite to refresh its badge.")

    commands.add_parser("quota", help="Show remaining provider calls in this window.")

    prefs = commands.add_parser("prefs", help="Show or change display preferences.")
    prefs.add_argument("--unit", choices=["celsius", "fahrenheit"], default=None)
    prefs.add_argument("--theme", choices=["light", "dark"], default=None)
    prefs.add_argument(
        "--location",
        choices=["granted", "denied"],
        default=None,
        help="Record the location-permission decision.",
    )
    return parser.parse_args(argv)


def build_adapter(settings: Settings, logger: logging.Logger) -> WeatherProviderAdapter:
    """Use the proxy when configured, otherwise the provider directly."""
    if settings.weather_proxy_url is not None:
        return ProxyWeatherAdapter(settings=settings, logger=logger)
    return OpenWeatherClient(settings=settings, logger=logger)


def _validate_weather_args(args: argparse.Namespace) -> None:
    if (args.lat is None) != (args.lon is None):
        raise ValueError("Pass both --lat and --lon, or neither.")
    if args.lat is not None and (args.city or args.locate):
        raise ValueError("Use either --city, --locate or --lat/--lon, not several.")


def _build_session(
    adapter: WeatherProviderAdapter,
    settings: Settings,
    logger: logging.Logger,
    storage: KeyValueStorage,
    favorites: FavoritesStore,
    preferences: PreferencesStore,
) -> WeatherSession:
    rate_limiter = None
    if settings.rate_limit_enabled:
        rate_limiter = RateLimiter(settings=settings, storage=storage, logger=logger)
    return WeatherSession(
        adapter,
        settings,
        logger,
        favorites=favorites,
        location_provider=location_provider_from_settings(settings),
        preferences=preferences,
        rate_limiter=rate_limiter,
    )


async def _run_weather(
    args: argparse.Namespace,
    settings: Settings,
    logger: logging.Logger,
    console: Console,
    storage: KeyValueStorage,
) -> int:
    favorites = FavoritesStore(storage, logger)
    preferences = PreferencesStore(storage, logger)
    adapter = build_adapter(settings, logger)
    try:
        session = _build_session(adapter, settings, logger, storage, favorites, preferences)
        if args.locate:
            await session.fetch_by_geolocation()
        elif args.lat is not None and args.lon is not None:
            await session.fetch_by_coordinates(args.lat, args.lon)
        else:
            await session.fetch_by_name(args.city or settings.default_city)
    finally:
        await adapter.aclose()

    if session.state != "ready" or session.weather is None:
        render_error(
            console,
            session.error or "Failed to fetch weather data.",
            fallback_city=session.fallback_city,
        )
        return EXIT_WEATHER_FAILURE

    current = session.weather.current
    if args.star:
        starred = favorites.toggle(
            NewFavorite(
                name=current.location,
                country=current.country,
                lat=current.lat,
                lon=current.lon,
                cached_temp=current.temperature,
                cached_condition=current.condition,
            )
        )
        logger.info(
            "%s %s, %s",
            "Starred" if starred else "Unstarred",
            current.location,
            current.country,
        )

    render_weather(
        console,
        session.weather,
        unit=preferences.preferences.unit,
        is_favorite=favorites.is_favorite(current.location, current.country),
    )
    return EXIT_OK


async def _run_search(
    args: argparse.Namespace,
    settings: Settings,
    logger: logging.Logger,
    console: Console,
) -> int:
    adapter = build_adapter(settings, logger)
    try:
        search = CitySearch(adapter, settings, logger)
        search.search(args.query)
        await search.wait_idle()
    finally:
        await adapter.aclose()
    render_suggestions(console, search.suggestions)
    return EXIT_OK


async def _refresh_favorites(
    settings: Settings,
    logger: logging.Logger,
    console: Console,
    storage: KeyValueStorage,
) -> int:
    favorites = FavoritesStore(storage, logger)
    preferences = PreferencesStore(storage, logger)
    adapter = build_adapter(settings, logger)
    failures = 0
    try:
        session = _build_session(adapter, settings, logger, storage, favorites, preferences)
        for favorite in favorites.favorites:
            await session.fetch_by_coordinates(favorite.lat, favorite.lon)
            if session.state != "ready" or session.weather is None:
                failures += 1
                logger.warning("Refresh failed for %s: %s", favorite.name, session.error)
                continue
            # The provider may name the place differently from the saved entry.
            current = session.weather.current
            favorites.update_cache_by_id(favorite.id, current.temperature, current.condition)
    finally:
        await adapter.aclose()
    render_favorites(console, favorites.favorites, unit=preferences.preferences.unit)
    return EXIT_WEATHER_FAILURE if failures else EXIT_OK


def _run_favorites(
    args: argparse.Namespace,
    settings: Settings,
    logger: logging.Logger,
    console: Console,
    storage: KeyValueStorage,
) -> int:
    if args.favorites_command == "refresh":
        return asyncio.run(_refresh_favorites(settings, logger, console, storage))

    favorites = FavoritesStore(storage, logger)
    if args.favorites_command == "add":
        added = favorites.add(
            NewFavorite(name=args.name, country=args.country, lat=args.lat, lon=args.lon)
        )
        if added is None:
            console.print(f"{args.name}, {args.country} is already a favorite.")
    elif args.favorites_command == "remove":
        favorites.remove(args.id)
    elif args.favorites_command == "move":
        try:
            favorites.move(args.id, args.index)
        except KeyError:
            logger.error("No favorite with id %s", args.id)
            return EXIT_USAGE
        except IndexError as exc:
            logger.error("Cannot move favorite: %s", exc)
            return EXIT_USAGE

    unit = PreferencesStore(storage, logger).preferences.unit
    render_favorites(console, favorites.favorites, unit=unit)
    return EXIT_OK


def _run_quota(
    settings: Settings, logger: logging.Logger, console: Console, storage: KeyValueStorage
) -> int:
    limiter = RateLimiter(settings=settings, storage=storage, logger=logger)
    render_quota(console, limiter.status(), limiter.reset_time_remaining())
    if not settings.rate_limit_enabled:
        console.print("Quota enforcement is disabled (RATE_LIMIT_ENABLED=false).")
    return EXIT_OK


def _run_prefs(
    args: argparse.Namespace, logger: logging.Logger, console: Console, storage: KeyValueStorage
) -> int:
    preferences = PreferencesStore(storage, logger)
    if args.unit:
        preferences.set_unit(args.unit)
    if args.theme:
        preferences.set_theme(args.theme)
    if args.location:
        preferences.set_location_permission(args.location)
    current = preferences.preferences
    console.print(
        f"unit={current.unit} theme={current.theme} "
        f"location={preferences.location_permission or 'undecided'}"
    )
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """Run the dashboard CLI."""
    args = parse_args(argv)
    logger = setup_logger()
    console = Console()

    try:
        settings = load_settings()
    except ConfigError as exc:
        logger.error("Configuration failure: %s", exc)
        return EXIT_CONFIG
    logger = setup_logger(level=settings.log_level)
    logger.debug("Settings loaded", extra={"context": settings.safe_summary()})

    storage = JsonFileStorage(settings.state_file, logger)
    try:
        if args.command == "weather":
            try:
                _validate_weather_args(args)
            except ValueError as exc:
                logger.error("%s", exc)
                return EXIT_USAGE
            return asyncio.run(_run_weather(args, settings, logger, console, storage))
        if args.command == "search":
            return asyncio.run(_run_search(args, settings, logger, console))
        if args.command == "favorites":
            return _run_favorites(args, settings, logger, console, storage)
        if args.command == "quota":
            return _run_quota(settings, logger, console, storage)
        return _run_prefs(args, logger, console, storage)
    except ConfigError as exc:
        logger.error("Configuration failure: %s", exc)
        return EXIT_CONFIG


if __name__ == "__main__":
    sys.exit(main())
