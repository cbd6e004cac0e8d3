"""Display preferences and the stored location-permission decision."""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import BaseModel, ValidationError

from .exceptions import PersistenceReadError
from .storage import (
    LOCATION_PERMISSION_KEY,
    PREFERENCES_KEY,
    KeyValueStorage,
    decode_json,
    encode_json,
)

TemperatureUnit = Literal["celsius", "fahrenheit"]
Theme = Literal["light", "dark"]
LocationPermission = Literal["granted", "denied"]


class Preferences(BaseModel):
    unit: TemperatureUnit = "celsius"
    theme: Theme = "light"


def convert_temperature(celsius: float, unit: TemperatureUnit) -> int:
    """Round a Celsius reading for display in the requested unit."""
    if unit == "fahrenheit":
        return round(celsius * 9 / 5 + 32)
    return round(celsius)


class PreferencesStore:
    """Unit/theme preferences and location permission, each under its own key."""

    def __init__(self, storage: KeyValueStorage, logger: logging.Logger) -> None:
        self.storage = storage
        self.logger = logger
        self._preferences = self._load_preferences()
        self._permission = self._load_permission()

    @property
    def preferences(self) -> Preferences:
        return self._preferences

    @property
    def location_permission(self) -> LocationPermission | None:
        return self._permission

    def set_unit(self, unit: TemperatureUnit) -> None:
        self._update(self._preferences.model_copy(update={"unit": unit}))

    def set_theme(self, theme: Theme) -> None:
        self._update(self._preferences.model_copy(update={"theme": theme}))

    def toggle_unit(self) -> TemperatureUnit:
        unit: TemperatureUnit = "fahrenheit" if self._preferences.unit == "celsius" else "celsius"
        self.set_unit(unit)
        return unit

    def set_location_permission(self, permission: LocationPermission) -> None:
        self._permission = permission
        self.storage.set(LOCATION_PERMISSION_KEY, encode_json(permission))

    def _update(self, preferences: Preferences) -> None:
        # model_copy(update=...) skips validation.
        self._preferences = Preferences.model_validate(preferences.model_dump())
        self.storage.set(PREFERENCES_KEY, encode_json(self._preferences.model_dump(mode="json")))

    def _load_preferences(self) -> Preferences:
        raw = self.storage.get(PREFERENCES_KEY)
        if raw is None:
            return Preferences()
        try:
            return Preferences.model_validate(decode_json(raw))
        except (PersistenceReadError, ValidationError) as exc:
            self.logger.warning("Ignoring unreadable preferences: %s", exc)
            return Preferences()

    def _load_permission(self) -> LocationPermission | None:
        raw = self.storage.get(LOCATION_PERMISSION_KEY)
        if raw is None:
            return None
        try:
            value = decode_json(raw)
        except PersistenceReadError as exc:
            self.logger.warning("Ignoring unreadable location permission: %s", exc)
            return None
        if value in ("granted", "denied"):
            return value
        self.logger.warning("Ignoring unknown location permission %r", value)
        return None
