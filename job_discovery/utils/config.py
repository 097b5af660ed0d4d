"""
Configuration management for Job Discovery.

Values come from ``DEFAULT_CONFIG``, deep-merged with the user's JSON file
(``~/.job_discovery/config.json`` unless another path is given). API keys
may also come from ``{PROVIDER}_API_KEY`` environment variables, which win
over the file.
"""

from pathlib import Path
from typing import Optional
import copy
import json
import os


SENSITIVE_KEYS = {"api_key", "api_keys", "key", "secret", "password", "token", "webhook"}

_MISSING = object()


def deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries; values in ``override`` win."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def mask_value(value) -> str:
    if not value:
        return "(not set)"
    value = str(value)
    return f"{value[:4]}...{value[-4:]}" if len(value) > 8 else "****"


class Config:
    """Engine settings, source lists and API keys."""

    DEFAULT_CONFIG = {
        "api_keys": {
            "arbeitnow": "",
            "remoteok": "",
        },
        "search": {
            "max_concurrency": 3,
            "request_timeout": 15.0,
            "cache_ttl_seconds": 300,
            "default_max_results": 50,
            "history_limit": 100,
        },
        "sources": {
            "enabled": ["arbeitnow", "remoteok", "greenhouse", "lever"],
            "min_request_interval": 1.0,
            "greenhouse_boards": ["riotgames", "epicgames", "bungie", "roblox", "discord"],
            "lever_companies": ["twitch", "kabam", "jagex", "scopely"],
        },
        "alerts": {
            "poll_interval_minutes": 15,
            "notified_cap": 1000,
        },
        "notifications": {
            "max_stored": 100,
            "channels": [],
        },
        "storage": {
            "data_dir": "./job_discovery_data",
        },
    }

    def __init__(self, config_path: Optional[str] = None):
        """
        Load configuration.

        Args:
            config_path: Path to config file (default: ~/.job_discovery/config.json)
        """
        self.config_path = Path(config_path) if config_path else Path.home() / ".job_discovery" / "config.json"
        self.config = self._load_config()

    def _load_config(self) -> dict:
        if not self.config_path.exists():
            return copy.deepcopy(self.DEFAULT_CONFIG)

        with open(self.config_path, 'r', encoding='utf-8') as f:
            return deep_merge(self.DEFAULT_CONFIG, json.load(f))

    def save(self) -> None:
        """Write the configuration, replacing the file atomically."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.config_path.with_suffix(".tmp")

        with open(tmp, 'w', encoding='utf-8') as f:
            json.dump(self.config, f, indent=2)

        tmp.replace(self.config_path)

    def _lookup(self, key: str):
        node = self.config
        for part in key.split('.'):
            if not isinstance(node, dict) or part not in node:
                return _MISSING
            node = node[part]
        return node

    def get(self, key: str, default=None):
        """
        Get a value by dotted path, e.g. ``config.get("search.max_concurrency")``.

        Returns:
            The value, or ``default`` when any segment is missing
        """
        value = self._lookup(key)
        return default if value is _MISSING else value

    def set(self, key: str, value) -> None:
        """Set a value by dotted path, creating intermediate sections."""
        *parents, leaf = key.split('.')
        node = self.config
        for part in parents:
            child = node.setdefault(part, {})
            if not isinstance(child, dict):
                raise ValueError(f"Cannot set {key}: '{part}' is not a section")
            node = child
        node[leaf] = value

    def get_api_key(self, provider: str) -> str:
        """API key for a provider; ``{PROVIDER}_API_KEY`` overrides the file."""
        return os.environ.get(f"{provider.upper()}_API_KEY") or self.get(f"api_keys.{provider}", "")

    def set_api_key(self, provider: str, key: str) -> None:
        self.set(f"api_keys.{provider}", key)
        self.save()

    def get_enabled_sources(self) -> list[str]:
        return list(self.get("sources.enabled", []))

    def get_data_dir(self) -> str:
        return self.get("storage.data_dir", "./job_discovery_data")

    def get_search_settings(self) -> dict:
        """Settings consumed by the aggregator and its cache."""
        return {
            "max_concurrency": int(self.get("search.max_concurrency", 3)),
            "request_timeout": float(self.get("search.request_timeout", 15.0)),
            "cache_ttl_seconds": float(self.get("search.cache_ttl_seconds", 300)),
            "history_limit": int(self.get("search.history_limit", 100)),
        }

    def print_config(self) -> None:
        """Print current configuration with secrets masked."""
        print(json.dumps(self._mask_sensitive(self.config), indent=2))

    def _mask_sensitive(self, data: dict, inherited: bool = False) -> dict:
        # Everything below a sensitive section (e.g. api_keys) is masked
        masked = {}
        for key, value in data.items():
            sensitive = inherited or any(s in key.lower() for s in SENSITIVE_KEYS)
            if isinstance(value, dict):
                masked[key] = self._mask_sensitive(value, sensitive)
            elif sensitive and isinstance(value, str):
                masked[key] = mask_value(value)
            else:
                masked[key] = value
        return masked
