"""
Async-native Nostr client: identity, contacts and relay pool control.

[Client][relaykit.client.client.Client] is the single implementation of
every client operation. The blocking
[BlockingClient][relaykit.client.blocking.BlockingClient] only drives these
coroutines on the shared runtime, so both surfaces always agree.

Relay operations are pure delegations to the owned
[RelayPool][relaykit.core.pool.RelayPool]: the client adds no retry,
validation or error wrapping.

Examples:
    ```python
    keys = Client.generate_keys()
    async with Client(keys) as client:
        await client.add_relay("wss://relay.damus.io")
        await client.connect_all()
        await client.subscribe([Filter().kind(Kind(1)).limit(10)])

        def on_notification(notification):
            if isinstance(notification, EventReceived):
                print(notification.event.content())

        await client.handle_notifications(on_notification)
    ```
"""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Any

from relaykit.core.exceptions import ChannelClosedError, ChannelLaggedError, ConfigurationError
from relaykit.core.logger import Logger
from relaykit.core.pool import RelayPool
from relaykit.core.yaml import load_yaml
from relaykit.models.contact import Contact, ContactList
from relaykit.nips.event_builders import build_delete_event, parse_event_id
from relaykit.utils.keys import clone_keys, generate_keys, load_keys_from_env

from .configs import ClientConfig


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable
    from types import TracebackType

    from nostr_sdk import Event, Filter, Keys

    from relaykit.core.broadcast import Subscription
    from relaykit.models.constants import RelayStatus
    from relaykit.models.notification import RelayPoolNotification

    NotificationCallback = Callable[[RelayPoolNotification], bool | None | Awaitable[bool | None]]


class Client:
    """Nostr client owning keys, a contact list and a relay pool.

    Args:
        keys: Signing keys. The client keeps its own copy.
        contacts: Initial contacts. Duplicates keep their first occurrence.
        pool: Relay pool to own. A new empty pool built from
            ``config.pool`` when omitted.
        config: Client configuration. Defaults to ``ClientConfig()``.

    Note:
        Contact mutations are not synchronized. Serialize concurrent
        callers yourself (one owning task, or a lock around the client).
    """

    def __init__(
        self,
        keys: Keys,
        contacts: Iterable[Contact] | None = None,
        *,
        pool: RelayPool | None = None,
        config: ClientConfig | None = None,
    ) -> None:
        self._config = config or ClientConfig()
        self._keys = clone_keys(keys)
        self._contacts = ContactList(contacts)
        self._pool = pool if pool is not None else RelayPool(self._config.pool)
        self._logger = Logger("client")

    @staticmethod
    def generate_keys() -> Keys:
        """Generate fresh keys from the operating system CSPRNG."""
        return generate_keys()

    # -------------------------------------------------------------------------
    # Factory Methods
    # -------------------------------------------------------------------------

    @classmethod
    def from_yaml(cls, config_path: str, keys: Keys | None = None, **kwargs: Any) -> Client:
        """Create a client from a YAML file matching
        [ClientConfig][relaykit.client.configs.ClientConfig].

        See [from_dict()][relaykit.client.client.Client.from_dict].
        """
        return cls.from_dict(load_yaml(config_path), keys=keys, **kwargs)

    @classmethod
    def from_dict(cls, data: dict[str, Any], keys: Keys | None = None, **kwargs: Any) -> Client:
        """Create a client from a configuration dictionary.

        When ``keys`` is omitted they are loaded from the environment
        variable named by ``keys_env``. Relays listed in the config are
        added by [bootstrap()][relaykit.client.client.Client.bootstrap].

        Raises:
            pydantic.ValidationError: If ``data`` does not match
                ``ClientConfig``.
            ConfigurationError: If keys must be loaded and the environment
                variable is missing or empty.
        """
        config = ClientConfig(**data)
        if keys is None:
            try:
                keys = load_keys_from_env(config.keys_env)
            except ValueError as e:
                raise ConfigurationError(str(e)) from e
        return cls(keys, config=config, **kwargs)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def keys(self) -> Keys:
        return self._keys

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def pool(self) -> RelayPool:
        return self._pool

    @property
    def contacts(self) -> list[Contact]:
        """Snapshot of the contact list in insertion order."""
        return self._contacts.to_list()

    @property
    def relays(self) -> dict[str, RelayStatus]:
        return self._pool.relays

    # -------------------------------------------------------------------------
    # Contacts
    # -------------------------------------------------------------------------

    async def add_contact(self, contact: Contact) -> None:
        """Append ``contact`` unless an equal contact is already present."""
        if self._contacts.add(contact):
            self._logger.debug("contact_added", public_key=contact.public_key)

    async def remove_contact(self, contact: Contact) -> None:
        """Remove ``contact``. No-op if absent."""
        if self._contacts.remove(contact):
            self._logger.debug("contact_removed", public_key=contact.public_key)

    # -------------------------------------------------------------------------
    # Relay pool
    # -------------------------------------------------------------------------

    async def add_relay(self, url: str, proxy: str | None = None) -> None:
        await self._pool.add_relay(url, proxy)

    async def remove_relay(self, url: str) -> None:
        await self._pool.remove_relay(url)

    async def connect_relay(self, url: str) -> None:
        await self._pool.connect_relay(url)

    async def disconnect_relay(self, url: str) -> None:
        await self._pool.disconnect_relay(url)

    async def connect_all(self) -> None:
        """Connect to all disconnected relays."""
        await self._pool.connect_all()

    async def subscribe(self, filters: list[Filter]) -> None:
        await self._pool.subscribe(filters)

    async def send_event(self, event: Event) -> None:
        await self._pool.send_event(event)

    async def delete_event(self, event_id: str) -> None:
        """Publish a NIP-09 deletion request for ``event_id``.

        Nothing is removed locally.

        Raises:
            ParseError: ``event_id`` is not 64 hex characters. Raised
                before any relay is contacted.
            SigningError: The keys failed to sign the request.
        """
        event = build_delete_event(self._keys, [parse_event_id(event_id)], reason=None)
        await self.send_event(event)

    async def bootstrap(self) -> None:
        """Add the relays listed in the config and connect to all of them.

        Relays already known to the pool are skipped.
        """
        known = self._pool.relays
        for relay in self._config.relays:
            if relay.url not in known:
                await self.add_relay(relay.url, relay.proxy)
        await self.connect_all()

    # -------------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------------

    async def notifications(self) -> Subscription[RelayPoolNotification]:
        """Return a new independent subscription to pool notifications."""
        return self._pool.notifications()

    async def handle_notifications(self, callback: NotificationCallback) -> None:
        """Feed every pool notification to ``callback`` until told to stop.

        ``callback`` may be a plain function or a coroutine function. It is
        called once per notification, in publish order. The loop:

        * skips over lost notifications when the subscription lags,
        * re-subscribes when the pool closes the channel (e.g. shutdown),
        * returns normally when ``callback`` returns ``True``,
        * stops and re-raises the first exception raised by ``callback``.

        There is no timeout; cancel the task running it to stop externally.
        """
        while True:
            subscription = await self.notifications()
            while True:
                try:
                    notification = await subscription.recv()
                except ChannelLaggedError as e:
                    self._logger.warning("notifications_lagged", skipped=e.skipped)
                    continue
                except ChannelClosedError:
                    self._logger.debug("notifications_resubscribing")
                    break

                try:
                    result = callback(notification)
                    if inspect.isawaitable(result):
                        result = await result
                except Exception as e:
                    self._logger.error(
                        "notification_callback_failed",
                        notification=type(notification).__name__,
                        error=str(e),
                    )
                    raise

                if result is True:
                    self._logger.debug("notifications_stopped")
                    return

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def shutdown(self) -> None:
        """Disconnect every relay and close current notification subscriptions."""
        await self._pool.shutdown()

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        await self.shutdown()

    def __repr__(self) -> str:
        return (
            f"Client(public_key={self._keys.public_key().to_hex()}, "
            f"contacts={len(self._contacts)}, pool={self._pool!r})"
        )
