"""Terminal presentation helpers."""

from .render import (
    render_error,
    render_favorites,
    render_quota,
    render_suggestions,
    render_weather,
)

__all__ = [
    "render_error",
    "render_favorites",
    "render_quota",
    "render_suggestions",
    "render_weather",
]
