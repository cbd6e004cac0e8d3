"""Application exception classes."""


class ConfigError(Exception):
    """Raised when configuration is invalid or incomplete."""


class WeatherProviderError(Exception):
    """Raised when provider/proxy requests or payload normalization fail."""


class CityNotFoundError(WeatherProviderError):
    """Raised when geocoding a city name returns no match."""


class LocationUnavailableError(Exception):
    """Raised when the platform location capability cannot produce a position."""

    def __init__(self, message: str, *, reason: str = "unavailable") -> None:
        super().__init__(message)
        self.reason = reason


class RateLimitExceededError(Exception):
    """Raised when the outbound call quota for the current window is spent."""


class PersistenceReadError(Exception):
    """Raised when locally stored state cannot be decoded."""


class ProxyRequestError(Exception):
    """Raised when a proxy request body is malformed or names an unknown action."""
