"""Platform location capability used by geolocation fetches."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel

from .config import Settings
from .exceptions import LocationUnavailableError


class Position(BaseModel):
    lat: float
    lon: float
    accuracy_m: float | None = None


class LocationProvider(ABC):
    """Source of the device position."""

    @abstractmethod
    async def get_position(self, *, timeout: float, high_accuracy: bool = True) -> Position:
        """Return the current position or raise LocationUnavailableError."""


class StaticLocationProvider(LocationProvider):
    """Reports fixed, configured coordinates."""

    def __init__(self, lat: float, lon: float) -> None:
        self.position = Position(lat=lat, lon=lon)

    async def get_position(self, *, timeout: float, high_accuracy: bool = True) -> Position:
        return self.position


class UnavailableLocationProvider(LocationProvider):
    """Stands in when the host has no location capability."""

    async def get_position(self, *, timeout: float, high_accuracy: bool = True) -> Position:
        raise LocationUnavailableError(
            "Location services are not available on this device.",
            reason="unavailable",
        )


def location_provider_from_settings(settings: Settings) -> LocationProvider:
    if settings.location_lat is None or settings.location_lon is None:
        return UnavailableLocationProvider()
    return StaticLocationProvider(settings.location_lat, settings.location_lon)
