"""Typed models for the fixed-window call quota."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class RateLimitWindow(BaseModel):
    """Persisted quota window; stored as `{"count": n, "resetTime": epoch_ms}`."""

    model_config = ConfigDict(populate_by_name=True)

    count: int = Field(default=0, ge=0)
    reset_time: datetime = Field(alias="resetTime")

    @field_validator("reset_time", mode="before")
    @classmethod
    def epoch_ms_to_datetime(cls, value: object) -> object:
        if isinstance(value, bool):
            raise ValueError("resetTime must be a timestamp")
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(value / 1000, tz=UTC)
        if isinstance(value, datetime) and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @field_serializer("reset_time")
    def datetime_to_epoch_ms(self, value: datetime) -> int:
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return int(value.timestamp() * 1000)

    def is_expired(self, now: datetime) -> bool:
        return now > self.reset_time


class RateLimitStatus(BaseModel):
    """Derived quota state for display."""

    limit: int
    used: int
    remaining: int
    reset_time: datetime
    is_limited: bool
