"""
================================================================================
Configuration Loader
================================================================================

Harness settings come from, highest priority first:

    1. Environment variables named after the dotted key (API_BASE_URL)
    2. Environment overlay file config/<HARNESS_ENV>.yaml (e.g. staging.yaml)
    3. Base file config/config.yaml (or the file named by HARNESS_CONFIG)
    4. The default passed to get()

Known keys:
    api.base_url            Base address of the API under test
    api.timeout             Transport timeout in seconds
    auth.login_path         Login endpoint (POST)
    auth.me_path            Current-user profile endpoint (GET)
    auth.expires_in_mins    Optional token lifetime sent with the login body
    test_data.email_domain  Domain used by generated test emails
    logging.*               Loguru sink settings (see log_config)
    report.max_response_length  Allure response body truncation

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from loguru import logger


DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent.parent / "config" / "config.yaml"

CONFIG_PATH_ENV = "HARNESS_CONFIG"
ENVIRONMENT_ENV = "HARNESS_ENV"


class ConfigurationError(Exception):
    """Raised when a configuration file cannot be parsed."""
    pass


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge override into a copy of base; nested dicts merge key by key."""
    result = dict(base)
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Top level of {path} must be a mapping, got {type(data).__name__}"
        )
    return data


class ConfigLoader:
    """
    Process-wide configuration with dot-path access.

    Usage:
        >>> config = ConfigLoader()
        >>> config.get("api.base_url", "https://dummyjson.com")
        'https://dummyjson.com'

        >>> config.get("api.timeout", 30)   # env API_TIMEOUT="12" -> 12
        30
    """

    _instance: Optional["ConfigLoader"] = None
    _config: Dict[str, Any] = {}

    def __new__(cls, config_path: Optional[Path] = None) -> "ConfigLoader":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, config_path: Optional[Path] = None) -> None:
        """
        Args:
            config_path: Base YAML file. Falls back to $HARNESS_CONFIG,
                         then DEFAULT_CONFIG_PATH.
        """
        if getattr(self, "_initialized", False):
            return

        if config_path is None and os.environ.get(CONFIG_PATH_ENV):
            config_path = Path(os.environ[CONFIG_PATH_ENV])
        self._config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        self._load_config()
        self._initialized = True

    @property
    def config_path(self) -> Path:
        return self._config_path

    @property
    def environment(self) -> Optional[str]:
        return os.environ.get(ENVIRONMENT_ENV) or None

    def _load_config(self) -> None:
        """Load the base file, then merge the environment overlay if present."""
        if not self._config_path.exists():
            logger.warning(
                f"Configuration file not found: {self._config_path}. "
                f"Using defaults and environment variables only."
            )
            self._config = {}
        else:
            self._config = _read_yaml(self._config_path)
            logger.debug(f"Loaded configuration from: {self._config_path}")

        env = self.environment
        if env:
            overlay_path = self._config_path.with_name(f"{env}.yaml")
            if overlay_path.exists():
                self._config = _deep_merge(self._config, _read_yaml(overlay_path))
                logger.debug(f"Merged environment config: {overlay_path}")
            else:
                logger.warning(f"No overlay for environment '{env}': {overlay_path}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Resolve a dot-notation key ("api.base_url").

        Environment variables win, then YAML, then `default`. Environment
        strings are coerced to the type of `default` when one is given.
        """
        env_value = os.environ.get(key.upper().replace(".", "_"))
        if env_value is not None:
            return self._convert_type(env_value, default)

        value: Any = self._config
        for part in key.split("."):
            value = value.get(part) if isinstance(value, dict) else None
            if value is None:
                return default
        return value

    def get_section(self, section: str) -> Dict[str, Any]:
        """Whole top-level section, or an empty dict."""
        return dict(self._config.get(section, {}))

    def reload(self) -> None:
        """Re-read the base file and overlay."""
        self._load_config()
        logger.info(f"Configuration reloaded from: {self._config_path}")

    @staticmethod
    def _convert_type(value: str, reference: Any) -> Any:
        if reference is None:
            return value
        if isinstance(reference, bool):
            return value.lower() in ("true", "1", "yes", "on")
        for kind in (int, float):
            if isinstance(reference, kind):
                try:
                    return kind(value)
                except ValueError:
                    return value
        return value

    @classmethod
    def reset(cls) -> None:
        """Drop the singleton so the next ConfigLoader() reloads from disk."""
        cls._instance = None
        cls._config = {}


__all__ = [
    "ConfigLoader",
    "ConfigurationError",
]
