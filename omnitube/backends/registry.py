"""Registry of backend adapters, one per backend kind.

Selection is a pure function of the account handed in: nothing about the
previous selection is remembered.
"""

import logging

from omnitube.backends.base import CAPABILITIES, DEFAULT_TIMEOUT, DEFAULT_USER_AGENT, VideosAPI
from omnitube.backends.invidious import InvidiousAPI
from omnitube.backends.piped import PipedAPI
from omnitube.models import Account, BackendKind, Capabilities
from omnitube.resources import ResourceCache

logger = logging.getLogger(__name__)

BACKEND_CLASSES: dict[BackendKind, type[VideosAPI]] = {
    BackendKind.INVIDIOUS: InvidiousAPI,
    BackendKind.PIPED: PipedAPI,
}

DEFAULT_BACKEND = BackendKind.INVIDIOUS


def capabilities_for(kind: BackendKind) -> Capabilities:
    return CAPABILITIES[kind]


class BackendRegistry:
    """Holds the adapter instance of every backend kind."""

    def __init__(self) -> None:
        self._adapters: dict[BackendKind, VideosAPI] = {}

    def register(self, adapter: VideosAPI) -> None:
        """Register an adapter, replacing any previous one of the same kind."""
        self._adapters[adapter.backend] = adapter
        logger.debug(f"Registered backend: {adapter.backend.value}")

    @property
    def adapters(self) -> list[VideosAPI]:
        return list(self._adapters.values())

    def get(self, kind: BackendKind) -> VideosAPI:
        try:
            return self._adapters[kind]
        except KeyError:
            raise ValueError(f"No adapter registered for {kind.value}") from None

    def select(self, account: Account | None) -> VideosAPI:
        """Adapter for the account's backend kind (Invidious without one)."""
        return self.get(account.backend if account is not None else DEFAULT_BACKEND)

    async def aclose(self) -> None:
        for adapter in self._adapters.values():
            await adapter.aclose()


def create_registry(
    cache: ResourceCache | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    user_agent: str = DEFAULT_USER_AGENT,
) -> BackendRegistry:
    """Create a registry with one adapter per known backend sharing one cache."""
    cache = cache or ResourceCache()
    registry = BackendRegistry()
    for adapter_class in BACKEND_CLASSES.values():
        registry.register(adapter_class(cache=cache, timeout=timeout, user_agent=user_agent))
    return registry
