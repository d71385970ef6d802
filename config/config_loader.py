# config/config_loader.py

import logging
import os
from pathlib import Path
from typing import Any, ClassVar

import yaml

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _get_project_root() -> Path:
    """Derive project root from this file's location: config/config_loader.py -> project root."""
    return Path(__file__).resolve().parent.parent


def _resolve_config_path(config_path: str | None) -> str:
    """Explicit argument, then ``CONFIG_PATH``, then ``config/config.yaml``."""
    if config_path:
        return config_path
    env_path = os.environ.get("CONFIG_PATH")
    if env_path:
        logging.info("Config path overridden via CONFIG_PATH env: %s", env_path)
        return env_path
    return str(_get_project_root() / "config" / "config.yaml")


def _read_yaml(path: str) -> tuple[dict[str, Any], str]:
    """Return ``(config, status)``; never raises for a missing or broken file."""
    try:
        with Path(path).open(encoding="utf-8") as file:
            loaded = yaml.safe_load(file)
    except FileNotFoundError:
        logging.warning(
            "Configuration file not found at %s; running with defaults (degraded).",
            path,
        )
        return {}, "degraded"
    except yaml.YAMLError:
        logging.exception("Could not parse configuration YAML at %s; running with defaults.", path)
        return {}, "error"

    if loaded is None:
        return {}, "ok"
    if not isinstance(loaded, dict):
        logging.warning("Configuration at %s is not a mapping; ignoring it.", path)
        return {}, "degraded"
    return loaded, "ok"


class ConfigLoader:
    """
    Process-wide access to ``config.yaml``.

    The website reads only a few keys from it (log level, external links and
    the command catalogue TTL); everything secret comes from the environment.
    A missing or unreadable file is tolerated and reported through
    ``get_config_status()``.
    """

    _config: ClassVar[dict[str, Any]] = {}
    _config_status: ClassVar[str] = "not_loaded"  # "ok", "degraded", "error"
    _config_path: ClassVar[str | None] = None

    @classmethod
    def load_config(cls, config_path: str | None = None) -> dict[str, Any]:
        """Load the configuration once; later calls return the cached dict."""
        if cls._config_status != "not_loaded":
            return cls._config

        cls._config_path = _resolve_config_path(config_path)
        cls._config, cls._config_status = _read_yaml(cls._config_path)
        if cls._config_status == "ok":
            logging.info("Configuration loaded from %s", cls._config_path)
        cls._normalize_logging_level()
        return cls._config

    @classmethod
    def get_config_status(cls) -> dict[str, Any]:
        """Return config health status for the status endpoint."""
        return {
            "config_status": cls._config_status,
            "config_path": cls._config_path,
            "config_loaded": bool(cls._config),
        }

    @classmethod
    def _normalize_logging_level(cls) -> None:
        section = cls._config.get("logging")
        if not isinstance(section, dict):
            return
        level = str(section.get("level", "INFO")).upper()
        if level not in VALID_LOG_LEVELS:
            logging.warning("Invalid logging level '%s' in config. Defaulting to 'INFO'.", level)
            level = "INFO"
        section["level"] = level

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """
        Look up a value by dotted path, e.g. ``"links.invite_url"``.

        Returns ``default`` when any segment is missing or not a mapping.
        """
        node: Any = cls._config
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    @classmethod
    def reset(cls) -> None:
        """Reset the config loader state (useful for testing)."""
        cls._config = {}
        cls._config_status = "not_loaded"
        cls._config_path = None
