"""Key/value persistence backends for locally stored dashboard state."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from .exceptions import PersistenceReadError

FAVORITES_KEY = "weather-favorites"
RATE_LIMIT_KEY = "weather-api-calls"
LOCATION_PERMISSION_KEY = "weather-location-permission"
PREFERENCES_KEY = "weather-preferences"


class KeyValueStorage(ABC):
    """String key to string value store, overwritten wholesale per key."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value or None when absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""


class MemoryStorage(KeyValueStorage):
    """Process-local storage, mainly for tests and one-shot runs."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStorage(KeyValueStorage):
    """Single JSON document on disk holding every key.

    The whole document is rewritten through a temp file and atomic replace on
    each `set`. A missing, unreadable or corrupt file loads as empty.
    """

    def __init__(self, path: Path, logger: logging.Logger) -> None:
        self.path = path
        self.logger = logger
        self._data = self._load()

    def _load(self) -> dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            self.logger.warning("State file %s unreadable (%s); starting empty", self.path, exc)
            return {}

        try:
            document = json.loads(raw)
        except ValueError:
            self.logger.warning("State file %s is not valid JSON; starting empty", self.path)
            return {}
        if not isinstance(document, dict):
            self.logger.warning("State file %s has unexpected shape; starting empty", self.path)
            return {}
        return {str(key): value for key, value in document.items() if isinstance(value, str)}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".state-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(self._data, fh, ensure_ascii=False, indent=2)
                fh.write("\n")
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def decode_json(raw: str) -> Any:
    """Parse a stored JSON string, raising PersistenceReadError on corruption."""
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise PersistenceReadError(f"Stored value is not valid JSON: {exc}") from exc


def encode_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)
