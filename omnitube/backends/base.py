"""Base contract for video backends.

A backend adapter talks to one upstream front-end API (Invidious, Piped)
and normalizes its JSON into ``omnitube.models``. Every adapter exposes the
same ``VideosAPI`` surface; operations a backend cannot perform raise
``UnsupportedOperationError`` before touching the network, and callers are
expected to check ``capabilities`` first.

To add a backend:
1. Add a member to ``BackendKind`` and a row to ``CAPABILITIES``
2. Subclass ``VideosAPI`` in its own module
3. Register the class in ``omnitube.backends.registry``
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, TypeVar

import httpx

from omnitube.errors import DecodeError, OmnitubeError, UnsupportedOperationError, classify_http_error
from omnitube.models import (
    Account, BackendKind, Capabilities, Channel, ContentItem, Playlist, SearchQuery,
    TrendingCategory, Video,
)
from omnitube.observable import Signal
from omnitube.resources import ResourceCache, resource_key

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT = 30.0
DEFAULT_USER_AGENT = "OmniTube/0.1 httpx"


CAPABILITIES: dict[BackendKind, Capabilities] = {
    BackendKind.INVIDIOUS: Capabilities(
        supports_subscriptions=True,
        supports_search_filters=True,
        supports_popular=True,
        supports_user_playlists=True,
        supports_trending_categories=True,
    ),
    BackendKind.PIPED: Capabilities(),
}


# =============================================================================
# JSON helpers
# =============================================================================


def compact_map(parse: Callable[[Any], T | None], entries: Any, what: str = "item") -> list[T]:
    """Parse each entry, dropping the ones that fail to decode or yield None."""
    if not isinstance(entries, list):
        return []

    results = []
    for entry in entries:
        try:
            parsed = parse(entry)
        except DecodeError as e:
            logger.debug(f"Skipping unparsable {what}: {e}")
            continue
        if parsed is not None:
            results.append(parsed)
    return results


def as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def require_dict(content: Any, what: str = "object") -> dict[str, Any]:
    if not isinstance(content, dict):
        raise DecodeError(f"Expected JSON {what}, got {type(content).__name__}")
    return content


def require_str(data: dict[str, Any], *keys: str) -> str:
    """First non-empty string among ``keys``; DecodeError if there is none."""
    for key in keys:
        value = data.get(key)
        if isinstance(value, (str, int, float)) and not isinstance(value, bool) and str(value).strip():
            return str(value)
    raise DecodeError(f"Missing required field: {' or '.join(keys)}")


def optional_str(data: dict[str, Any], *keys: str) -> str | None:
    try:
        return require_str(data, *keys)
    except DecodeError:
        return None


def optional_url(data: dict[str, Any], key: str) -> str | None:
    """String value of ``key`` if it is a non-blank string; numbers are not URLs."""
    value = data.get(key)
    if isinstance(value, str) and value.strip():
        return value
    return None


def to_int(value: Any) -> int | None:
    """Coerce numbers and numeric strings; None for anything else."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def to_float(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool) or value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


# =============================================================================
# Contract
# =============================================================================


class VideosAPI(ABC):
    """Uniform interface over one upstream video front-end.

    Example:
        api = InvidiousAPI(account)
        videos = await api.fetch_trending("US")
        if api.supports_subscriptions:
            channels = await api.fetch_subscriptions()
    """

    def __init__(
        self,
        account: Account | None = None,
        client: httpx.AsyncClient | None = None,
        cache: ResourceCache | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        self.account: Account | None = None
        self.cache = cache or ResourceCache()
        self.changed: Signal["VideosAPI"] = Signal()
        self._client = client
        self._timeout = timeout
        self._user_agent = user_agent
        if account is not None:
            self.set_account(account)

    @property
    @abstractmethod
    def backend(self) -> BackendKind:
        """Which upstream API this adapter speaks."""
        pass

    @property
    def capabilities(self) -> Capabilities:
        return CAPABILITIES[self.backend]

    @property
    def supports_subscriptions(self) -> bool:
        return self.capabilities.supports_subscriptions

    @property
    def supports_search_filters(self) -> bool:
        return self.capabilities.supports_search_filters

    @property
    def is_signed_in(self) -> bool:
        return False

    def set_account(self, account: Account) -> None:
        """Bind credentials and base URL, then notify observers."""
        if account.backend != self.backend:
            raise ValueError(f"{account.backend.value} account cannot be used with {self.backend.value}")
        self.account = account
        self.changed.emit(self)

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------

    @property
    def base_url(self) -> str:
        if self.account is None:
            raise OmnitubeError(f"No account bound to {self.backend.value} backend")
        return self.account.instance.api_url

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                headers={"User-Agent": self._user_agent, "Accept": "application/json"},
                follow_redirects=True,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _headers(self) -> dict[str, str]:
        return {}

    @property
    def _owner(self) -> tuple[str, str, str]:
        """Identity of this adapter binding inside resource keys."""
        account_id = self.account.id if self.account else ""
        return (self.backend.value, self.base_url, account_id)

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        url = f"{self.base_url}/{path}"
        logger.debug(f"{method} {url} {params or ''}")
        try:
            response = await self.client.request(method, url, params=params, json=json, headers=self._headers())
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise classify_http_error(e) from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(f"Invalid JSON from {url}: {e}") from e

    async def _get_json(self, path: str, params: dict[str, Any] | None = None, force: bool = False) -> Any:
        """GET through the resource cache (coalesced, cached for the TTL)."""
        key = resource_key(self._owner, path, params)
        return await self.cache.load(key, lambda: self._request("GET", path, params), force=force)

    def _invalidate(self, path_prefix: str) -> None:
        self.cache.invalidate(self._owner, path_prefix)

    def _unsupported(self, operation: str) -> UnsupportedOperationError:
        return UnsupportedOperationError(f"{self.backend.value} does not support {operation}")

    # -------------------------------------------------------------------------
    # Required operations
    # -------------------------------------------------------------------------
    # Transport and HTTP status failures surface as NetworkError or NotFoundError.

    @abstractmethod
    async def fetch_channel(self, channel_id: str, force: bool = False) -> Channel:
        """Channel details with its latest videos. NotFoundError for an unknown id."""
        pass

    @abstractmethod
    async def fetch_trending(
        self,
        country: str = "US",
        category: TrendingCategory | None = None,
        force: bool = False,
    ) -> list[Video]:
        """Trending videos for a region; backends without categories ignore ``category``."""
        pass

    @abstractmethod
    async def search(self, query: SearchQuery, force: bool = False) -> list[ContentItem]:
        """Videos, channels and playlists matching ``query``.

        Undecodable entries are dropped; a malformed response as a whole is a
        DecodeError.
        """
        pass

    @abstractmethod
    async def search_suggestions(self, text: str) -> list[str]:
        """Completions for partially typed ``text``; DecodeError for an unknown response shape."""
        pass

    @abstractmethod
    async def fetch_video(self, video_id: str, force: bool = False) -> Video:
        """Full video details including playable streams. NotFoundError for an unknown id."""
        pass

    # -------------------------------------------------------------------------
    # Optional operations
    # -------------------------------------------------------------------------

    async def fetch_subscriptions(self, force: bool = False) -> list[Channel]:
        raise self._unsupported("subscriptions")

    async def subscribe(self, channel_id: str) -> None:
        raise self._unsupported("subscriptions")

    async def unsubscribe(self, channel_id: str) -> None:
        raise self._unsupported("subscriptions")

    async def fetch_feed(self, force: bool = False) -> list[Video]:
        raise self._unsupported("feed")

    async def fetch_home(self, force: bool = False) -> list[Video]:
        raise self._unsupported("home")

    async def fetch_popular(self, force: bool = False) -> list[Video]:
        raise self._unsupported("popular")

    async def fetch_playlists(self, force: bool = False) -> list[Playlist]:
        raise self._unsupported("playlists")

    async def fetch_playlist_videos(self, playlist_id: str, force: bool = False) -> list[Video]:
        raise self._unsupported("playlists")

    async def add_playlist_video(self, playlist_id: str, video_id: str) -> None:
        raise self._unsupported("playlists")

    async def remove_playlist_video(self, playlist_id: str, index_id: str) -> None:
        raise self._unsupported("playlists")
