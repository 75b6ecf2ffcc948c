"""
Config system - Layered configuration with merge precedence.

Sources, later overriding earlier:
    config files (YAML/JSON) < .env file < environment variables < overrides
"""

from typing import Any, Dict, Optional
from pathlib import Path
import json
import logging
import os

import yaml
from dotenv import dotenv_values

logger = logging.getLogger("plumage.config")


class ConfigError(Exception):
    """Raised when a configuration source cannot be read."""
    pass


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources.

    Environment variables use a prefix and ``__`` for nesting:
    ``PLUMAGE_SESSIONS__SESSION_TTL_RENEWAL=none`` sets
    ``sessions.session_ttl_renewal``.
    """

    def __init__(self, env_prefix: str = "PLUMAGE_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        paths: Optional[list[str]] = None,
        env_prefix: str = "PLUMAGE_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
        environ: Optional[Dict[str, str]] = None,
    ) -> "ConfigLoader":
        """
        Load configuration from multiple sources with proper merge strategy.

        Args:
            paths: Config file paths (glob patterns supported)
            env_prefix: Prefix for environment variables
            env_file: Path to .env file
            overrides: Manual overrides (highest precedence)
            environ: Environment mapping (defaults to ``os.environ``)

        Returns:
            Configured ConfigLoader instance
        """
        loader = cls(env_prefix=env_prefix)

        if not paths and Path("plumage.yaml").exists():
            paths = ["plumage.yaml"]

        for pattern in paths or []:
            loader._load_from_files(pattern)

        if env_file:
            loader._load_env_file(env_file)

        loader._load_from_env(os.environ if environ is None else environ)

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        return loader

    def _load_from_files(self, pattern: str):
        """Load config from JSON or YAML files."""
        from glob import glob

        for path_str in sorted(glob(pattern)):
            path = Path(path_str)

            if path.suffix == ".json":
                self._load_json_file(path)
            elif path.suffix in (".yaml", ".yml"):
                self._load_yaml_file(path)
            else:
                logger.warning(f"Ignoring config file with unknown format: {path}")

    def _load_json_file(self, path: Path):
        """Load config from JSON file."""
        try:
            with open(path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot read {path}: {e}") from e
        if data:
            self._merge_dict(self.config_data, data)

    def _load_yaml_file(self, path: Path):
        """Load config from YAML file."""
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read {path}: {e}") from e
        if data:
            self._merge_dict(self.config_data, data)

    def _load_env_file(self, path: str):
        """Load prefixed keys from a .env file."""
        env_path = Path(path)
        if not env_path.exists():
            logger.debug(f".env file not found: {env_path}")
            return

        for key, value in dotenv_values(env_path).items():
            if key.startswith(self.env_prefix) and value is not None:
                self._set_nested(key, value)

    def _load_from_env(self, environ):
        """Load config from environment variables."""
        for key, value in environ.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str):
        """Convert PLUMAGE_SESSIONS__APP_NAME to nested dict."""
        key = key[len(self.env_prefix):]

        # Split by double underscore for nested keys
        parts = key.lower().split("__")

        current = self.config_data
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        current[parts[-1]] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        lowered = value.lower()
        if lowered in ("true", "yes"):
            return True
        if lowered in ("false", "no"):
            return False
        if lowered == "null":
            return None

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def _merge_dict(self, target: dict, source: dict):
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    def get(self, path: str, default: Any = None) -> Any:
        """Get config value by dot-separated path."""
        current = self.config_data

        for part in path.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default

        return current

    def to_dict(self) -> dict:
        return self.config_data

    def get_session_config(self) -> dict:
        """
        Get the ``sessions`` section merged over defaults.

        Returns:
            Session configuration dictionary (input for ``SessionConfig.from_dict``)
        """
        from plumage.sessions.config import (
            DEFAULT_CACHE_STORE_BACKEND,
            DEFAULT_CURRENT_USER_ASSIGNS_KEY,
            DEFAULT_SESSION_TTL_RENEWAL,
        )

        merged = {
            "app_name": None,
            "session_key": None,
            "session_store": None,
            "cache_store_backend": DEFAULT_CACHE_STORE_BACKEND,
            "cache_store_options": {},
            "session_ttl_renewal": DEFAULT_SESSION_TTL_RENEWAL,
            "current_user_assigns_key": DEFAULT_CURRENT_USER_ASSIGNS_KEY,
        }

        user_config = self.get("sessions", {}) or {}
        if not isinstance(user_config, dict):
            raise ConfigError(f"'sessions' must be a mapping, got {type(user_config).__name__}")

        self._merge_dict(merged, user_config)

        # The store may be given as a plain selector string
        if isinstance(merged.get("session_store"), str):
            merged["session_store"] = {"type": merged["session_store"]}

        return merged
