"""Saved cities with cached last-known conditions."""

from .models import FavoriteCity, NewFavorite
from .store import FavoritesStore, move_item

__all__ = ["FavoriteCity", "FavoritesStore", "NewFavorite", "move_item"]
