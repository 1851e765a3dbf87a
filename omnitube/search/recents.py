"""Recently submitted search queries."""

from omnitube import settings as keys
from omnitube.observable import Observable
from omnitube.settings import SettingsStore

DEFAULT_LIMIT = 20


class RecentsModel:
    """Newest-first list of submitted queries, persisted in settings."""

    def __init__(self, settings: SettingsStore, limit: int = DEFAULT_LIMIT):
        self.settings = settings
        self.limit = limit
        stored = settings.get(keys.RECENT_QUERIES, [])
        self.queries: Observable[list[str]] = Observable([q for q in stored if isinstance(q, str)])

    def _store(self, queries: list[str]) -> None:
        self.settings.set(keys.RECENT_QUERIES, queries)
        self.queries.set(queries)

    def add_query(self, text: str) -> None:
        text = text.strip()
        if not text:
            return
        queries = [text] + [q for q in self.queries.value if q != text]
        self._store(queries[: self.limit])

    def remove(self, text: str) -> None:
        self._store([q for q in self.queries.value if q != text])

    def clear(self) -> None:
        self._store([])
