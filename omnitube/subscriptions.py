"""Channel subscriptions of the active account."""

import logging
from typing import Callable

from omnitube.accounts import AccountsModel
from omnitube.errors import OmnitubeError
from omnitube.models import Account, Channel
from omnitube.observable import Observable

logger = logging.getLogger(__name__)


class SubscriptionsModel:
    """Fetches and holds the subscription list.

    The list is always the backend's authoritative set: it is replaced
    wholesale on every load, emptied when a load fails, and reloaded after
    every subscribe/unsubscribe instead of being edited locally.
    """

    def __init__(self, accounts: AccountsModel):
        self.accounts = accounts
        self.channels: Observable[list[Channel]] = Observable([])
        accounts.current.subscribe(self._account_changed)

    def _account_changed(self, account: Account | None) -> None:
        self.channels.set([])

    @property
    def supported(self) -> bool:
        api = self.accounts.api
        return api.supports_subscriptions and api.is_signed_in

    @property
    def all(self) -> list[Channel]:
        """Channels sorted by name, case-insensitively."""
        return sorted(self.channels.value, key=lambda c: c.name.lower())

    def is_subscribing(self, channel_id: str) -> bool:
        return any(c.id == channel_id for c in self.channels.value)

    async def load(self, force: bool = False, on_success: Callable[[], None] | None = None) -> None:
        if not self.supported:
            return

        api = self.accounts.api
        generation = self.accounts.generation
        try:
            channels = await api.fetch_subscriptions(force=force)
        except OmnitubeError as e:
            if generation == self.accounts.generation:
                logger.warning(f"Failed to load subscriptions: {e}")
                self.channels.set([])
            return

        if generation != self.accounts.generation:
            logger.debug("Discarding subscriptions loaded for a previous account")
            return

        self.channels.set(channels)
        logger.info(f"Loaded {len(channels)} subscriptions")
        if on_success is not None:
            on_success()

    async def subscribe(self, channel_id: str, on_success: Callable[[], None] | None = None) -> None:
        await self._perform(channel_id, subscribe=True, on_success=on_success)

    async def unsubscribe(self, channel_id: str, on_success: Callable[[], None] | None = None) -> None:
        await self._perform(channel_id, subscribe=False, on_success=on_success)

    async def _perform(self, channel_id: str, subscribe: bool, on_success: Callable[[], None] | None) -> None:
        if not self.supported:
            logger.warning(f"{self.accounts.app.value} account cannot manage subscriptions")
            return

        api = self.accounts.api
        try:
            if subscribe:
                await api.subscribe(channel_id)
            else:
                await api.unsubscribe(channel_id)
        except OmnitubeError as e:
            action = "subscribe to" if subscribe else "unsubscribe from"
            logger.warning(f"Failed to {action} {channel_id}: {e}")

        await self.load(force=True, on_success=on_success)
