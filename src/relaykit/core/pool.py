"""
Pool of relay connections with fan-out notifications.

[RelayPool][relaykit.core.pool.RelayPool] owns one nostr-sdk client per
relay, tracks a [RelayStatus][relaykit.models.constants.RelayStatus] for
each, keeps the current subscription filters, and republishes everything
the relays send as
[RelayPoolNotification][relaykit.models.notification.RelayPoolNotification]
values on a [BroadcastChannel][relaykit.core.broadcast.BroadcastChannel].

All nostr-sdk and OS failures are translated here into
[ConnectivityError][relaykit.core.exceptions.ConnectivityError] or
[ProtocolError][relaykit.core.exceptions.ProtocolError]; callers above
this layer never see FFI error types.

Examples:
    ```python
    pool = RelayPool()
    async with pool:
        await pool.add_relay("wss://relay.damus.io")
        await pool.connect_all()
        subscription = pool.notifications()
        notification = await subscription.recv()
    ```
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from nostr_sdk import NostrSdkError, RelayUrl, uniffi_set_event_loop
from pydantic import BaseModel, Field

from relaykit.models.constants import RelayStatus
from relaykit.models.notification import (
    EventReceived,
    MessageReceived,
    PoolShutdown,
    RelayPoolNotification,
    RelayStatusChanged,
)
from relaykit.utils.protocol import DEFAULT_TIMEOUT, NotificationForwarder, open_relay

from .broadcast import BroadcastChannel, Subscription
from .exceptions import ConnectivityError, ProtocolError, RelayNotFoundError
from .logger import Logger
from .yaml import load_yaml


if TYPE_CHECKING:
    from types import TracebackType

    from nostr_sdk import Client, Event, Filter


Connector = Callable[..., Awaitable["Client"]]


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class RelayPoolConfig(BaseModel):
    """Tuning for [RelayPool][relaykit.core.pool.RelayPool].

    Attributes:
        notification_capacity: Notifications retained for slow
            subscribers before they observe a lag.
        connect_timeout: Seconds to wait for a single relay connection.
        send_timeout: Seconds to wait for a relay to accept an event.
    """

    notification_capacity: int = Field(
        default=4096,
        ge=1,
        description="Notifications buffered per channel before subscribers lag",
    )
    connect_timeout: float = Field(
        default=DEFAULT_TIMEOUT,
        gt=0.0,
        description="Seconds to wait for a relay connection",
    )
    send_timeout: float = Field(
        default=30.0,
        gt=0.0,
        description="Seconds to wait for a relay to accept an event",
    )


# ---------------------------------------------------------------------------
# Relay bookkeeping
# ---------------------------------------------------------------------------


class RelayClient(Protocol):
    """The subset of ``nostr_sdk.Client`` the pool relies on."""

    async def subscribe(self, filter: Filter) -> Any: ...  # noqa: A002

    async def send_event(self, event: Event) -> Any: ...

    async def disconnect(self) -> None: ...

    async def handle_notifications(self, handler: NotificationForwarder) -> None: ...


@dataclass(slots=True)
class _RelayEntry:
    url: str
    proxy_url: str | None = None
    status: RelayStatus = RelayStatus.INITIALIZED
    client: RelayClient | None = None
    forwarder: asyncio.Task[None] | None = None
    connecting: asyncio.Task[None] | None = None


class RelayPool:
    """Relay connections, subscription filters and notification fan-out.

    Relays are kept in insertion order. A relay must be added before it can
    be connected; connecting it re-applies the pool's current filters and
    starts forwarding its notifications.

    Args:
        config: Pool tuning. Defaults to
            [RelayPoolConfig()][relaykit.core.pool.RelayPoolConfig].
        connector: Coroutine function ``(url, *, proxy_url, timeout)``
            returning a connected client. Defaults to
            [open_relay][relaykit.utils.protocol.open_relay].

    Note:
        Not thread-safe. Use one pool from one event loop.
    """

    def __init__(
        self,
        config: RelayPoolConfig | None = None,
        *,
        connector: Connector | None = None,
    ) -> None:
        self._config = config or RelayPoolConfig()
        self._connector: Connector = connector or open_relay
        self._relays: dict[str, _RelayEntry] = {}
        self._filters: list[Filter] = []
        self._channel: BroadcastChannel[RelayPoolNotification] = BroadcastChannel(
            self._config.notification_capacity
        )
        self._logger = Logger("relay_pool")

    @classmethod
    def from_yaml(cls, config_path: str, **kwargs: Any) -> RelayPool:
        """Create a pool from a YAML file holding ``RelayPoolConfig`` fields."""
        return cls.from_dict(load_yaml(config_path), **kwargs)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any], **kwargs: Any) -> RelayPool:
        """Create a pool from a dict holding ``RelayPoolConfig`` fields."""
        return cls(config=RelayPoolConfig(**config_dict), **kwargs)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def config(self) -> RelayPoolConfig:
        return self._config

    @property
    def relays(self) -> dict[str, RelayStatus]:
        """Snapshot of ``url -> status`` in insertion order."""
        return {url: entry.status for url, entry in self._relays.items()}

    @property
    def filters(self) -> list[Filter]:
        """The filters of the current pool subscription."""
        return list(self._filters)

    def _entry(self, url: str) -> _RelayEntry:
        try:
            return self._relays[url]
        except KeyError:
            raise RelayNotFoundError(f"relay not found: {url}") from None

    def _connected(self) -> list[_RelayEntry]:
        return [e for e in self._relays.values() if e.status == RelayStatus.CONNECTED]

    # -------------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------------

    def notifications(self) -> Subscription[RelayPoolNotification]:
        """Return a new independent subscription to pool notifications."""
        return self._channel.subscribe()

    def _publish(self, notification: RelayPoolNotification) -> None:
        self._channel.send(notification)

    def _set_status(self, entry: _RelayEntry, status: RelayStatus) -> None:
        if entry.status == status:
            return
        entry.status = status
        self._logger.debug("relay_status_changed", url=entry.url, status=status)
        self._publish(RelayStatusChanged(relay_url=entry.url, status=status))

    def _on_event(self, relay_url: str, subscription_id: str, event: Event) -> None:
        self._publish(EventReceived(relay_url=relay_url, subscription_id=subscription_id, event=event))

    def _on_message(self, relay_url: str, message: Any) -> None:
        self._publish(MessageReceived(relay_url=relay_url, message=message))

    async def _forward(self, entry: _RelayEntry, client: RelayClient) -> None:
        """Pump one relay's nostr-sdk notifications into the channel."""
        forwarder = NotificationForwarder(entry.url, self._on_event, self._on_message)
        try:
            await client.handle_notifications(forwarder)
        except NostrSdkError as e:
            self._logger.warning("relay_notifications_failed", url=entry.url, error=str(e))

        # The relay stopped on its own; a requested disconnect clears entry.client first
        if entry.client is client:
            entry.client = None
            entry.forwarder = None
            self._set_status(entry, RelayStatus.DISCONNECTED)

    # -------------------------------------------------------------------------
    # Relay management
    # -------------------------------------------------------------------------

    async def add_relay(self, url: str, proxy: str | None = None) -> None:
        """Add a relay in the ``INITIALIZED`` state.

        Args:
            url: ``ws://`` or ``wss://`` relay URL.
            proxy: Optional SOCKS5 proxy URL used for this relay only.

        Raises:
            ConnectivityError: If the URL is invalid or already present.
        """
        if url in self._relays:
            raise ConnectivityError(f"relay already exists: {url}")
        try:
            RelayUrl.parse(url)
        except (NostrSdkError, ValueError) as e:
            raise ConnectivityError(f"invalid relay url: {url} ({e})") from e

        self._relays[url] = _RelayEntry(url=url, proxy_url=proxy)
        self._logger.info("relay_added", url=url, proxy=proxy)

    async def remove_relay(self, url: str) -> None:
        """Disconnect (if needed) and forget a relay.

        Raises:
            RelayNotFoundError: If the relay is unknown.
            ConnectivityError: If disconnecting fails. The relay is
                removed anyway.
        """
        entry = self._entry(url)
        try:
            await self._disconnect(entry)
        finally:
            del self._relays[url]
            self._set_status(entry, RelayStatus.TERMINATED)
            self._logger.info("relay_removed", url=url)

    async def connect_relay(self, url: str) -> None:
        """Connect a known relay. No-op if it is already connected.

        A relay that is already connecting is not attempted twice; the call
        waits for the attempt in flight.

        Raises:
            RelayNotFoundError: If the relay is unknown.
            ConnectivityError: If the connection attempt fails or is aborted
                by a concurrent disconnect or removal.
            ProtocolError: If re-applying the pool filters fails.
        """
        entry = self._entry(url)
        if entry.status == RelayStatus.CONNECTED:
            self._logger.debug("relay_already_connected", url=url)
            return
        await self._connect(entry)

    async def disconnect_relay(self, url: str) -> None:
        """Disconnect a known relay. No-op if it is not connected.

        An in-flight connection attempt is cancelled.

        Raises:
            RelayNotFoundError: If the relay is unknown.
            ConnectivityError: If nostr-sdk fails to disconnect.
        """
        await self._disconnect(self._entry(url))

    async def connect_all(self) -> None:
        """Attempt every relay that is not connected, concurrently.

        Already connected relays are never re-attempted, and relays with an
        attempt in flight are awaited rather than attempted again.

        Raises:
            ConnectivityError: The first failure in relay order, raised
                after every attempt has finished.
        """
        pending = [e for e in self._relays.values() if e.status != RelayStatus.CONNECTED]
        if not pending:
            return

        results = await asyncio.gather(
            *(self._connect(entry) for entry in pending), return_exceptions=True
        )
        failures = [r for r in results if isinstance(r, BaseException)]
        self._logger.info(
            "connect_all_completed",
            attempted=len(pending),
            failed=len(failures),
        )
        if failures:
            raise failures[0]

    async def _connect(self, entry: _RelayEntry) -> None:
        """Join the relay's in-flight connection attempt, starting one if needed."""
        task = entry.connecting
        if task is None:
            task = asyncio.create_task(self._open(entry), name=f"relay-connect:{entry.url}")
            entry.connecting = task
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            # The attempt itself was cancelled by a disconnect or removal
            raise ConnectivityError(f"connection to {entry.url} aborted") from None

    async def _open(self, entry: _RelayEntry) -> None:
        this = asyncio.current_task()
        try:
            self._set_status(entry, RelayStatus.CONNECTING)
            try:
                client = await self._connector(
                    entry.url,
                    proxy_url=entry.proxy_url,
                    timeout=self._config.connect_timeout,
                )
            except (OSError, ValueError, NostrSdkError) as e:
                self._set_status(entry, RelayStatus.DISCONNECTED)
                self._logger.warning("relay_connect_failed", url=entry.url, error=str(e))
                raise ConnectivityError(f"failed to connect {entry.url}: {e}") from e

            if entry.connecting is not this or self._relays.get(entry.url) is not entry:
                await self._close_client(entry.url, client)
                raise ConnectivityError(f"connection to {entry.url} aborted")

            # nostr-sdk invokes notification callbacks on the registered loop
            uniffi_set_event_loop(asyncio.get_running_loop())
            entry.client = client
            entry.forwarder = asyncio.create_task(
                self._forward(entry, client), name=f"relay-notifications:{entry.url}"
            )
            self._set_status(entry, RelayStatus.CONNECTED)
            self._logger.info("relay_connected", url=entry.url)

            if self._filters:
                await self._subscribe_relay(entry, self._filters)
        finally:
            if entry.connecting is this:
                entry.connecting = None

    async def _close_client(self, url: str, client: RelayClient) -> None:
        """Disconnect a client the pool never adopted."""
        try:
            await client.disconnect()
        except NostrSdkError as e:
            self._logger.warning("relay_disconnect_failed", url=url, error=str(e))
        self._logger.debug("relay_connection_discarded", url=url)

    async def _disconnect(self, entry: _RelayEntry) -> None:
        connecting, entry.connecting = entry.connecting, None
        if connecting is not None:
            connecting.cancel()
            await asyncio.gather(connecting, return_exceptions=True)

        client, entry.client = entry.client, None
        task, entry.forwarder = entry.forwarder, None
        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        if client is None:
            if connecting is not None:
                self._set_status(entry, RelayStatus.DISCONNECTED)
            return

        try:
            await client.disconnect()
        except NostrSdkError as e:
            raise ConnectivityError(f"failed to disconnect {entry.url}: {e}") from e
        finally:
            self._set_status(entry, RelayStatus.DISCONNECTED)
        self._logger.info("relay_disconnected", url=entry.url)

    # -------------------------------------------------------------------------
    # Subscriptions and publishing
    # -------------------------------------------------------------------------

    async def subscribe(self, filters: list[Filter]) -> None:
        """Replace the pool subscription and send it to connected relays.

        Relays connected later receive the same filters on connect.

        Raises:
            ProtocolError: If ``filters`` is empty or a relay rejects them.
        """
        if not filters:
            raise ProtocolError("subscribe requires at least one filter")
        self._filters = list(filters)
        for entry in self._connected():
            await self._subscribe_relay(entry, self._filters)
        self._logger.info("subscribed", filters=len(self._filters))

    async def _subscribe_relay(self, entry: _RelayEntry, filters: list[Filter]) -> None:
        assert entry.client is not None  # noqa: S101
        for f in filters:
            try:
                await entry.client.subscribe(f)
            except NostrSdkError as e:
                raise ProtocolError(f"subscription rejected by {entry.url}: {e}") from e

    async def send_event(self, event: Event) -> None:
        """Send ``event`` to every connected relay.

        Per-relay failures are logged. The call fails only when no relay
        accepts the event.

        Raises:
            ConnectivityError: If no relay is connected.
            ProtocolError: If every connected relay rejected the event.
        """
        connected = self._connected()
        if not connected:
            raise ConnectivityError("no connected relays")

        failed = 0
        for entry in connected:
            assert entry.client is not None  # noqa: S101
            try:
                output = await asyncio.wait_for(
                    entry.client.send_event(event), timeout=self._config.send_timeout
                )
            except (NostrSdkError, TimeoutError) as e:
                failed += 1
                self._logger.warning("send_event_failed", url=entry.url, error=str(e))
                continue
            if output is not None and not output.success:
                failed += 1
                self._logger.warning("send_event_rejected", url=entry.url)

        if failed == len(connected):
            raise ProtocolError(f"event rejected by all {failed} connected relays")
        self._logger.debug("event_sent", relays=len(connected) - failed, failed=failed)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def shutdown(self) -> None:
        """Disconnect every relay and close the notification channel.

        Current subscriptions observe ``PoolShutdown`` followed by channel
        closure. A fresh channel is opened so the pool stays usable.
        """
        for entry in list(self._relays.values()):
            try:
                await self._disconnect(entry)
            except ConnectivityError as e:
                self._logger.warning("shutdown_disconnect_failed", url=entry.url, error=str(e))

        self._publish(PoolShutdown())
        self._channel.close()
        self._channel = BroadcastChannel(self._config.notification_capacity)
        self._logger.info("pool_shutdown", relays=len(self._relays))

    async def __aenter__(self) -> RelayPool:
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        await self.shutdown()

    def __repr__(self) -> str:
        connected = len(self._connected())
        return f"RelayPool(relays={len(self._relays)}, connected={connected})"
