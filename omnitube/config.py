"""Configuration management for OmniTube."""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from omnitube.settings import SettingsStore


DEFAULT_CONFIG_PATH = "~/.omnitube/config.json"
DEFAULT_SETTINGS_PATH = "~/.omnitube/settings.json"
DEFAULT_USER_AGENT = "OmniTube/0.1 httpx"


def default_config_path() -> str:
    return os.environ.get("OMNITUBE_CONFIG") or DEFAULT_CONFIG_PATH


@dataclass
class Config:
    """Application configuration."""

    settings_path: str = DEFAULT_SETTINGS_PATH
    request_timeout: float = 30.0
    cache_ttl_seconds: int = 300
    user_agent: str = DEFAULT_USER_AGENT
    suggestions_debounce: float = 0.3
    query_debounce: float = 2.0
    recents_limit: int = 20
    log_level: str = "INFO"
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def load(cls, path: str | None = None) -> "Config":
        """Load config from a JSON file, or return defaults if not found."""
        config_path = Path(path or default_config_path()).expanduser()

        if not config_path.exists():
            return cls()

        try:
            data = json.loads(config_path.read_text())
            defaults = cls()
            return cls(
                settings_path=data.get("settings_path", defaults.settings_path),
                request_timeout=float(data.get("request_timeout", defaults.request_timeout)),
                cache_ttl_seconds=int(data.get("cache_ttl_seconds", defaults.cache_ttl_seconds)),
                user_agent=data.get("user_agent", defaults.user_agent),
                suggestions_debounce=float(data.get("suggestions_debounce", defaults.suggestions_debounce)),
                query_debounce=float(data.get("query_debounce", defaults.query_debounce)),
                recents_limit=int(data.get("recents_limit", defaults.recents_limit)),
                log_level=data.get("log_level", defaults.log_level),
                extra=data.get("extra", {}),
            )
        except (json.JSONDecodeError, KeyError, ValueError, TypeError):
            return cls()

    def save(self, path: str | None = None) -> None:
        """Save config to a JSON file."""
        config_path = Path(path or default_config_path()).expanduser()
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "settings_path": self.settings_path,
            "request_timeout": self.request_timeout,
            "cache_ttl_seconds": self.cache_ttl_seconds,
            "user_agent": self.user_agent,
            "suggestions_debounce": self.suggestions_debounce,
            "query_debounce": self.query_debounce,
            "recents_limit": self.recents_limit,
            "log_level": self.log_level,
            "extra": self.extra,
        }
        config_path.write_text(json.dumps(data, indent=2))

    def create_settings(self) -> SettingsStore:
        """Create the persisted settings store from this config."""
        return SettingsStore(self.settings_path)
