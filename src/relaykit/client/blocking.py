"""
Blocking facade over [Client][relaykit.client.client.Client].

Every method submits the matching ``Client`` coroutine to the process-wide
[Runtime][relaykit.core.runtime.Runtime] and parks the calling thread until
it finishes. Return values and exceptions are those of the async client,
unchanged; no logic lives here.

Warning:
    Do not call ``BlockingClient`` methods from a ``handle_notifications``
    callback: the callback runs on the runtime thread and the call would
    wait on itself. Such calls raise ``RuntimeError``.

Examples:
    ```python
    client = BlockingClient(BlockingClient.generate_keys())
    client.add_relay("wss://relay.damus.io")
    client.connect_all()
    client.delete_event("b" * 64)
    client.handle_notifications(print)
    ```
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from relaykit.core.runtime import Runtime, get_runtime

from .client import Client


if TYPE_CHECKING:
    from collections.abc import Iterable
    from types import TracebackType

    from nostr_sdk import Event, Filter, Keys

    from relaykit.core.broadcast import Subscription
    from relaykit.core.pool import RelayPool
    from relaykit.models.constants import RelayStatus
    from relaykit.models.contact import Contact
    from relaykit.models.notification import RelayPoolNotification

    from .client import NotificationCallback
    from .configs import ClientConfig


class BlockingSubscription:
    """Blocking receive handle over a notification
    [Subscription][relaykit.core.broadcast.Subscription]."""

    __slots__ = ("_runtime", "_subscription")

    def __init__(self, subscription: Subscription[RelayPoolNotification], runtime: Runtime) -> None:
        self._subscription = subscription
        self._runtime = runtime

    @property
    def pending(self) -> int:
        return self._subscription.pending

    def recv(self) -> RelayPoolNotification:
        """Block until the next notification arrives.

        Raises:
            ChannelLaggedError: Notifications were lost; the next call
                succeeds.
            ChannelClosedError: The pool closed the channel.
        """
        return self._runtime.block_on(self._subscription.recv())


class BlockingClient:
    """Synchronous twin of [Client][relaykit.client.client.Client].

    Accepts the same constructor arguments. The wrapped async client is
    available as [inner][relaykit.client.blocking.BlockingClient.inner].
    """

    def __init__(
        self,
        keys: Keys,
        contacts: Iterable[Contact] | None = None,
        *,
        pool: RelayPool | None = None,
        config: ClientConfig | None = None,
        runtime: Runtime | None = None,
    ) -> None:
        self._runtime = runtime or get_runtime()
        self._client = Client(keys, contacts, pool=pool, config=config)

    @classmethod
    def from_client(cls, client: Client, runtime: Runtime | None = None) -> BlockingClient:
        """Wrap an existing async client. Its pool must not be in use on another loop."""
        instance = cls.__new__(cls)
        instance._runtime = runtime or get_runtime()
        instance._client = client
        return instance

    @classmethod
    def from_yaml(
        cls,
        config_path: str,
        keys: Keys | None = None,
        *,
        runtime: Runtime | None = None,
        **kwargs: Any,
    ) -> BlockingClient:
        return cls.from_client(Client.from_yaml(config_path, keys=keys, **kwargs), runtime=runtime)

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        keys: Keys | None = None,
        *,
        runtime: Runtime | None = None,
        **kwargs: Any,
    ) -> BlockingClient:
        return cls.from_client(Client.from_dict(data, keys=keys, **kwargs), runtime=runtime)

    @staticmethod
    def generate_keys() -> Keys:
        return Client.generate_keys()

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def inner(self) -> Client:
        return self._client

    @property
    def keys(self) -> Keys:
        return self._client.keys

    @property
    def contacts(self) -> list[Contact]:
        return self._client.contacts

    @property
    def relays(self) -> dict[str, RelayStatus]:
        return self._client.relays

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def add_contact(self, contact: Contact) -> None:
        self._runtime.block_on(self._client.add_contact(contact))

    def remove_contact(self, contact: Contact) -> None:
        self._runtime.block_on(self._client.remove_contact(contact))

    def add_relay(self, url: str, proxy: str | None = None) -> None:
        self._runtime.block_on(self._client.add_relay(url, proxy))

    def remove_relay(self, url: str) -> None:
        self._runtime.block_on(self._client.remove_relay(url))

    def connect_relay(self, url: str) -> None:
        self._runtime.block_on(self._client.connect_relay(url))

    def disconnect_relay(self, url: str) -> None:
        self._runtime.block_on(self._client.disconnect_relay(url))

    def connect_all(self) -> None:
        """Connect to all disconnected relays."""
        self._runtime.block_on(self._client.connect_all())

    def subscribe(self, filters: list[Filter]) -> None:
        self._runtime.block_on(self._client.subscribe(filters))

    def send_event(self, event: Event) -> None:
        self._runtime.block_on(self._client.send_event(event))

    def delete_event(self, event_id: str) -> None:
        self._runtime.block_on(self._client.delete_event(event_id))

    def bootstrap(self) -> None:
        self._runtime.block_on(self._client.bootstrap())

    def notifications(self) -> BlockingSubscription:
        subscription = self._runtime.block_on(self._client.notifications())
        return BlockingSubscription(subscription, self._runtime)

    def handle_notifications(self, callback: NotificationCallback) -> None:
        """Run the notification loop on the runtime until it stops.

        ``callback`` executes on the runtime thread. Interrupting the
        calling thread (``KeyboardInterrupt``) cancels the loop.
        """
        self._runtime.block_on(self._client.handle_notifications(callback))

    def shutdown(self) -> None:
        self._runtime.block_on(self._client.shutdown())

    def __enter__(self) -> BlockingClient:
        return self

    def __exit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        self.shutdown()

    def __repr__(self) -> str:
        return f"Blocking{self._client!r}"
