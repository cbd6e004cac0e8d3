"""Terminal weather dashboard with persisted favorites and a provider proxy."""

__version__ = "0.1.0"
