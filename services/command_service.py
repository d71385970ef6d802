"""
Bot command catalogue.

Serves the bot's ``help.json`` (written by the bot process) to the website,
cached in memory for ``commands.cache_ttl_hours``. A failed load is never
cached, so the next request retries the file.
"""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any

from config.config_loader import ConfigLoader

from .base import BaseService

DEFAULT_TTL_HOURS = 24

LOAD_FAILURE_RESPONSE: dict[str, Any] = {
    "error": "Failed to load command data",
    "metadata": {"totalCommands": 0, "categories": 0},
}


def _has_valid_metadata(data: Any) -> bool:
    if not isinstance(data, dict):
        return False
    metadata = data.get("metadata")
    if not isinstance(metadata, dict):
        return False
    for field in ("totalCommands", "categories"):
        value = metadata.get(field)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
    return True


class CommandCatalogService(BaseService):
    """Loads and caches the bot command catalogue from ``help.json``."""

    def __init__(self, data_path: str | None, ttl_hours: float | None = None) -> None:
        super().__init__("commands")
        self.data_path = data_path
        if ttl_hours is None:
            ttl_hours = ConfigLoader.get("commands.cache_ttl_hours", DEFAULT_TTL_HOURS)
        self.ttl_seconds = float(ttl_hours) * 3600
        self._data: dict[str, Any] | None = None
        self._expires_at: float | None = None

    async def _initialize_impl(self) -> None:
        # Warm the cache; a missing file is logged, not fatal.
        self.get_commands()

    async def _shutdown_impl(self) -> None:
        self.clear_cache()

    def _cache_valid(self, now: float) -> bool:
        return (
            self._data is not None
            and self._expires_at is not None
            and now < self._expires_at
        )

    def load_command_data(self) -> dict[str, Any] | None:
        """Read and validate ``help.json``; ``None`` on any failure."""
        if not self.data_path:
            self.logger.warning("BOT_DATA_PATH is not configured")
            return None

        path = Path(self.data_path)
        if not path.exists():
            self.logger.warning("help.json not found at %s", path)
            return None

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except PermissionError:
            self.logger.error("Permission denied reading %s", path)
            return None
        except json.JSONDecodeError:
            self.logger.error("Invalid JSON in %s", path)
            return None
        except OSError as e:
            self.logger.error("Error loading command data from %s: %s", path, e)
            return None

        if not _has_valid_metadata(data):
            self.logger.error(
                "Invalid help.json structure - missing or invalid metadata"
            )
            return None

        self.logger.info(
            "Command data loaded: %s commands in %s categories",
            data["metadata"]["totalCommands"],
            data["metadata"]["categories"],
        )
        return data

    def get_commands(self, now: float | None = None) -> dict[str, Any]:
        """Return cached command data, reloading when the cache has expired."""
        current = time.time() if now is None else now
        if self._cache_valid(current):
            return self._data  # type: ignore[return-value]

        data = self.load_command_data()
        if data is not None:
            self._data = data
            self._expires_at = current + self.ttl_seconds
            return data

        return {
            "error": LOAD_FAILURE_RESPONSE["error"],
            "metadata": dict(LOAD_FAILURE_RESPONSE["metadata"]),
        }

    def clear_cache(self) -> None:
        self._data = None
        self._expires_at = None

    async def health_check(self) -> dict[str, Any]:
        health = await super().health_check()
        health["cached"] = self._cache_valid(time.time())
        return health
