"""Instances, accounts and the active-backend selector."""

import logging
import uuid

from omnitube import settings as keys
from omnitube.backends import BackendRegistry, VideosAPI, create_registry
from omnitube.models import Account, BackendKind, Instance
from omnitube.observable import Observable, Signal
from omnitube.settings import SettingsStore

logger = logging.getLogger(__name__)


def _generate_id() -> str:
    """Generate a short unique ID."""
    return uuid.uuid4().hex[:12]


class AccountsModel:
    """Holds the active account and routes calls to its backend's adapter.

    ``current`` publishes account switches. ``changed`` re-publishes change
    notifications of the registered adapters (for example a credential
    rebind), so observers only need to watch this model.
    """

    def __init__(self, settings: SettingsStore, registry: BackendRegistry | None = None):
        self.settings = settings
        self.registry = registry or create_registry()
        self.current: Observable[Account | None] = Observable(None)
        self.changed: Signal["AccountsModel"] = Signal()
        self.generation = 0

        for adapter in self.registry.adapters:
            adapter.changed.subscribe(self._forward_adapter_change)

    def _forward_adapter_change(self, adapter: VideosAPI) -> None:
        self.changed.emit(self)

    # -------------------------------------------------------------------------
    # Instances
    # -------------------------------------------------------------------------

    @property
    def instances(self) -> list[Instance]:
        return [Instance.from_dict(d) for d in self.settings.get(keys.INSTANCES, [])]

    def find_instance(self, instance_id: str) -> Instance | None:
        for instance in self.instances:
            if instance.id == instance_id:
                return instance
        return None

    def add_instance(self, backend: BackendKind, name: str, url: str) -> Instance:
        instance = Instance(id=_generate_id(), backend=backend, name=name, url=url.rstrip("/"))
        self.settings.set(keys.INSTANCES, self.settings.get(keys.INSTANCES, []) + [instance.to_dict()])
        logger.info(f"Added {backend.value} instance {instance.url}")
        return instance

    def remove_instance(self, instance: Instance) -> None:
        """Remove an instance together with its accounts."""
        for account in self.all:
            if account.instance.id == instance.id:
                self.remove(account)
        remaining = [d for d in self.settings.get(keys.INSTANCES, []) if d.get("id") != instance.id]
        self.settings.set(keys.INSTANCES, remaining)

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    @property
    def all(self) -> list[Account]:
        accounts = []
        for data in self.settings.get(keys.ACCOUNTS, []):
            instance = self.find_instance(data.get("instance_id", ""))
            if instance is None:
                logger.warning(f"Account {data.get('id')} refers to a missing instance")
                continue
            accounts.append(Account.from_dict(data, instance))
        return accounts

    def find(self, account_id: str) -> Account | None:
        for account in self.all:
            if account.id == account_id:
                return account
        return None

    @property
    def last_used(self) -> Account | None:
        account_id = self.settings.get(keys.LAST_ACCOUNT_ID)
        if account_id is None:
            return None
        return self.find(account_id)

    def add(self, instance: Instance, name: str, sid: str | None = None) -> Account:
        account = Account(id=_generate_id(), instance=instance, name=name, sid=sid)
        self.settings.set(keys.ACCOUNTS, self.settings.get(keys.ACCOUNTS, []) + [account.to_dict()])
        return account

    def remove(self, account: Account) -> None:
        remaining = [d for d in self.settings.get(keys.ACCOUNTS, []) if d.get("id") != account.id]
        self.settings.set(keys.ACCOUNTS, remaining)
        if self.settings.get(keys.LAST_ACCOUNT_ID) == account.id:
            self.settings.set(keys.LAST_ACCOUNT_ID, None)
        if self.current.value is not None and self.current.value.id == account.id:
            self.set_current(None)

    # -------------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------------

    @property
    def app(self) -> BackendKind:
        account = self.current.value
        return account.backend if account is not None else BackendKind.INVIDIOUS

    @property
    def api(self) -> VideosAPI:
        """Adapter for the current account, resolved on every access."""
        return self.registry.select(self.current.value)

    @property
    def is_empty(self) -> bool:
        return self.current.value is None

    @property
    def signed_in(self) -> bool:
        return not self.is_empty and not self.current.value.anonymous

    def set_current(self, account: Account | None) -> None:
        """Make ``account`` the active one. Same id as the current one: no-op."""
        current = self.current.value
        if account is None and current is None:
            return
        if account is not None and current is not None and account.id == current.id:
            return

        # responses started under the previous account are now stale
        self.generation += 1

        if account is not None:
            self.registry.get(account.backend).set_account(account)
            self.settings.set(keys.LAST_ACCOUNT_ID, None if account.anonymous else account.id)
            self.settings.set(keys.LAST_INSTANCE_ID, account.instance.id)
            logger.info(f"Switched to {account.name} on {account.instance.url}")

        self.current.set(account)

    def restore(self) -> Account | None:
        """Reactivate the last used account, or the last instance anonymously."""
        account = self.last_used
        if account is None:
            instance_id = self.settings.get(keys.LAST_INSTANCE_ID)
            instance = self.find_instance(instance_id) if instance_id else None
            if instance is None and self.instances:
                instance = self.instances[0]
            if instance is not None:
                account = Account.anonymous_for(instance)

        if account is not None:
            self.set_current(account)
        return account
