"""JSON file-backed key-value store for persisted preferences.

The rest of the package treats this as an opaque store: values are plain
JSON-serializable data and every write is flushed to disk.
"""

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


# Keys used across the package
ACCOUNTS = "accounts"
INSTANCES = "instances"
LAST_ACCOUNT_ID = "last_account_id"
LAST_INSTANCE_ID = "last_instance_id"
RECENT_QUERIES = "recent_queries"
SPONSOR_BLOCK_INSTANCE = "sponsor_block_instance"
SPONSOR_BLOCK_CATEGORIES = "sponsor_block_categories"
PLAYER_QUEUE = "player_queue"

DEFAULT_SPONSOR_BLOCK_INSTANCE = "https://sponsor.ajay.app"


class SettingsStore:
    """Key-value settings persisted as a single JSON document.

    With ``path=None`` the store lives in memory only.
    """

    def __init__(self, path: str | None = None):
        self.path = Path(path).expanduser() if path else None
        self._data: dict[str, Any] = self._read()

    def _read(self) -> dict[str, Any]:
        if self.path is None or not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable settings file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _flush(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._data, indent=2))

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        if value is None:
            self._data.pop(key, None)
        else:
            self._data[key] = value
        self._flush()

    def delete(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._flush()

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def close(self) -> None:
        self._flush()

    def __enter__(self) -> "SettingsStore":
        return self

    def __exit__(self, *args) -> None:
        self.close()
