"""Typed models for saved cities."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from ..weather.models import WeatherCondition


class NewFavorite(BaseModel):
    """City data supplied by the caller when saving a favorite."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    country: str
    lat: float
    lon: float
    cached_temp: float | None = Field(default=None, alias="cachedTemp")
    cached_condition: WeatherCondition | None = Field(default=None, alias="cachedCondition")


class FavoriteCity(NewFavorite):
    """Saved city keyed by an identifier assigned once at creation."""

    id: str

    @property
    def key(self) -> tuple[str, str]:
        return (self.name, self.country)
