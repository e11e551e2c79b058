"""Nostr protocol client operations backed by nostr-sdk.

Provides the per-relay nostr-sdk client factory used by
[RelayPool][relaykit.core.pool.RelayPool], the connection helper that
turns a relay URL into a connected client, and the notification handler
that forwards nostr-sdk callbacks into the pool.

Attributes:
    create_client: Client factory with optional signer and SOCKS5 proxy.
    open_relay: Connect a single relay and return its client.
    NotificationForwarder: ``HandleNotification`` implementation that
        forwards events and relay messages to a plain callable.

Note:
    Proxied relays use ``ConnectionMode.PROXY``. nostr-sdk needs a numeric
    IP for the proxy, so a proxy hostname is resolved first with
    ``asyncio.to_thread(socket.gethostbyname)``.

Examples:
    ```python
    client = await open_relay("wss://relay.damus.io", timeout=10.0)
    client = await open_relay("ws://abc.onion", proxy_url="socks5://tor:9050")
    ```
"""

from __future__ import annotations

import asyncio
import logging
import socket
from collections.abc import Callable
from datetime import timedelta
from ipaddress import AddressValueError, IPv4Address, IPv6Address
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

from nostr_sdk import (
    Client,
    ClientBuilder,
    ClientOptions,
    Connection,
    ConnectionMode,
    HandleNotification,
    NostrSigner,
    RelayUrl,
)


if TYPE_CHECKING:
    from nostr_sdk import Event, Keys, RelayMessage


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
DEFAULT_PROXY_PORT = 9050


async def _resolve_proxy(proxy_url: str) -> tuple[str, int]:
    """Split a SOCKS5 proxy URL into a numeric host and a port."""
    parsed = urlparse(proxy_url)
    proxy_host = parsed.hostname or "127.0.0.1"
    proxy_port = parsed.port or DEFAULT_PROXY_PORT

    bare_host = proxy_host.strip("[]")
    try:
        IPv4Address(bare_host)
    except (AddressValueError, ValueError):
        try:
            IPv6Address(bare_host)
            proxy_host = bare_host
        except (AddressValueError, ValueError):
            proxy_host = await asyncio.to_thread(socket.gethostbyname, proxy_host)

    return proxy_host, proxy_port


async def create_client(keys: Keys | None = None, proxy_url: str | None = None) -> Client:
    """Create a nostr-sdk client with an optional signer and SOCKS5 proxy.

    Args:
        keys: Signing keys, or ``None`` for a read-only client.
        proxy_url: SOCKS5 proxy URL (``socks5://host:port``).

    Returns:
        A ``Client`` with no relays added yet.
    """
    builder = ClientBuilder()

    if keys is not None:
        builder = builder.signer(NostrSigner.keys(keys))

    if proxy_url is not None:
        proxy_host, proxy_port = await _resolve_proxy(proxy_url)
        conn = Connection().mode(ConnectionMode.PROXY(proxy_host, proxy_port))
        builder = builder.opts(ClientOptions().connection(conn))

    return builder.build()


async def open_relay(
    url: str,
    proxy_url: str | None = None,
    timeout: float = DEFAULT_TIMEOUT,  # noqa: ASYNC109
    keys: Keys | None = None,
) -> Client:
    """Connect to a single relay and return its client.

    Raises:
        ValueError: If ``url`` is not a valid relay URL.
        TimeoutError: If a proxied relay does not connect within ``timeout``.
        OSError: If a direct connection attempt fails.
    """
    relay_url = RelayUrl.parse(url)
    client = await create_client(keys, proxy_url)
    await client.add_relay(relay_url)

    if proxy_url is not None:
        await client.connect()
        await client.wait_for_connection(timedelta(seconds=timeout))
        relay = await client.relay(relay_url)
        if not relay.is_connected():
            await client.disconnect()
            raise TimeoutError(f"Connection timeout: {url}")
        logger.debug("proxy_connected relay=%s", url)
        return client

    output = await client.try_connect(timedelta(seconds=timeout))
    if relay_url in output.success:
        logger.debug("connected relay=%s", url)
        return client

    await client.disconnect()
    error_message = output.failed.get(relay_url, "Unknown error")
    raise OSError(f"Connection failed: {url} ({error_message})")


class NotificationForwarder(HandleNotification):
    """Forward nostr-sdk notifications of one relay client to callables.

    Args:
        relay_url: URL the forwarded notifications are attributed to.
        on_event: Called with ``(relay_url, subscription_id, event)``.
        on_message: Called with ``(relay_url, message)``.
    """

    def __init__(
        self,
        relay_url: str,
        on_event: Callable[[str, str, Event], Any],
        on_message: Callable[[str, RelayMessage], Any],
    ) -> None:
        super().__init__()
        self._relay_url = relay_url
        self._on_event = on_event
        self._on_message = on_message

    async def handle(self, relay_url: RelayUrl, subscription_id: str, event: Event) -> None:  # noqa: ARG002
        self._on_event(self._relay_url, subscription_id, event)

    async def handle_msg(self, relay_url: RelayUrl, msg: RelayMessage) -> None:  # noqa: ARG002
        self._on_message(self._relay_url, msg)
