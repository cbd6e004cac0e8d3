"""Ordered, persisted favorites list with cached last-known conditions."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from typing import TypeVar

from pydantic import TypeAdapter, ValidationError

from ..exceptions import PersistenceReadError
from ..storage import FAVORITES_KEY, KeyValueStorage, decode_json, encode_json
from ..weather.models import WeatherCondition
from .models import FavoriteCity, NewFavorite

T = TypeVar("T")

_FAVORITES_ADAPTER = TypeAdapter(list[FavoriteCity])


def move_item(items: Sequence[T], old_index: int, new_index: int) -> list[T]:
    """Return a copy with the item at old_index removed and reinserted at new_index."""
    result = list(items)
    if old_index == new_index:
        return result
    if not (0 <= old_index < len(result)) or not (0 <= new_index < len(result)):
        raise IndexError(
            f"move from {old_index} to {new_index} out of range for {len(result)} items"
        )
    result.insert(new_index, result.pop(old_index))
    return result


class FavoritesStore:
    """Favorites keyed by immutable id, unique per (name, country).

    List order is the display order. Every mutation rewrites the whole list
    under one storage key.
    """

    def __init__(self, storage: KeyValueStorage, logger: logging.Logger) -> None:
        self.storage = storage
        self.logger = logger
        self._favorites: list[FavoriteCity] = self._load()

    @property
    def favorites(self) -> list[FavoriteCity]:
        return list(self._favorites)

    def add(self, city: NewFavorite) -> FavoriteCity | None:
        """Append a new favorite; no-op (returns None) when (name, country) exists."""
        if self.is_favorite(city.name, city.country):
            self.logger.debug("Favorite %s, %s already saved", city.name, city.country)
            return None
        favorite = FavoriteCity(
            id=f"{city.name}-{city.country}-{uuid.uuid4().hex[:12]}",
            **city.model_dump(exclude={"id"}),
        )
        self._favorites.append(favorite)
        self._save()
        return favorite

    def remove(self, favorite_id: str) -> None:
        remaining = [item for item in self._favorites if item.id != favorite_id]
        if len(remaining) == len(self._favorites):
            return
        self._favorites = remaining
        self._save()

    def is_favorite(self, name: str, country: str) -> bool:
        return self.find(name, country) is not None

    def find(self, name: str, country: str) -> FavoriteCity | None:
        for item in self._favorites:
            if item.name == name and item.country == country:
                return item
        return None

    def toggle(self, city: NewFavorite) -> bool:
        """Star or unstar a city; returns True when it is a favorite afterwards."""
        existing = self.find(city.name, city.country)
        if existing is not None:
            self.remove(existing.id)
            return False
        self.add(city)
        return True

    def reorder(self, new_order: Sequence[FavoriteCity]) -> None:
        """Replace the list with the caller's permutation.

        Membership is not checked; callers must pass the same set of entries.
        """
        self._favorites = list(new_order)
        self._save()

    def move(self, favorite_id: str, new_index: int) -> None:
        """Drag-style reorder of one entry to new_index."""
        for old_index, item in enumerate(self._favorites):
            if item.id == favorite_id:
                break
        else:
            raise KeyError(favorite_id)
        if old_index == new_index:
            return
        self.reorder(move_item(self._favorites, old_index, new_index))

    def update_cache(
        self,
        name: str,
        country: str,
        temp: float,
        condition: WeatherCondition,
    ) -> None:
        """Record the last observed reading on every favorite matching (name, country)."""
        changed = False
        updated: list[FavoriteCity] = []
        for item in self._favorites:
            if item.name == name and item.country == country:
                item = item.model_copy(update={"cached_temp": temp, "cached_condition": condition})
                changed = True
            updated.append(item)
        if changed:
            self._favorites = updated
            self._save()

    def update_cache_by_id(
        self, favorite_id: str, temp: float, condition: WeatherCondition
    ) -> bool:
        """Record a reading on one favorite regardless of the provider's place name."""
        for index, item in enumerate(self._favorites):
            if item.id == favorite_id:
                self._favorites[index] = item.model_copy(
                    update={"cached_temp": temp, "cached_condition": condition}
                )
                self._save()
                return True
        return False

    def _load(self) -> list[FavoriteCity]:
        raw = self.storage.get(FAVORITES_KEY)
        if raw is None:
            return []
        try:
            return _FAVORITES_ADAPTER.validate_python(decode_json(raw))
        except (PersistenceReadError, ValidationError) as exc:
            self.logger.warning("Ignoring unreadable favorites state: %s", exc)
            return []

    def _save(self) -> None:
        payload = [
            item.model_dump(mode="json", by_alias=True, exclude_none=True)
            for item in self._favorites
        ]
        self.storage.set(FAVORITES_KEY, encode_json(payload))
