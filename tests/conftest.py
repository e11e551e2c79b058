"""
Pytest configuration and shared fixtures for relaykit tests.

Provides:
- Deterministic test keys and sample contacts
- FakeRelayClient / FakeConnector standing in for nostr-sdk relay clients
- RelayPool and Client fixtures wired to the fakes
- A dedicated Runtime for blocking-surface tests
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Iterator
from typing import Any

import pytest
from nostr_sdk import Keys

from relaykit.client import Client
from relaykit.core.pool import RelayPool, RelayPoolConfig
from relaykit.core.runtime import Runtime
from relaykit.models import Contact


# Valid secp256k1 test key (DO NOT USE IN PRODUCTION)
VALID_HEX_KEY = (
    "67dea2ed018072d675f5415ecfaed7d2597555e202d85b3d65ea4e58d2d92ffa"  # pragma: allowlist secret
)

RELAY_A = "wss://relay.damus.io"
RELAY_B = "wss://nos.lol"
RELAY_C = "wss://relay.primal.net"


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


# ============================================================================
# Fakes
# ============================================================================


class FakeRelayClient:
    """In-memory stand-in for a connected ``nostr_sdk.Client``."""

    def __init__(self, url: str, proxy_url: str | None = None) -> None:
        self.url = url
        self.proxy_url = proxy_url
        self.subscribed: list[Any] = []
        self.sent: list[Any] = []
        self.send_error: BaseException | None = None
        self.disconnected = False
        self.handler: Any = None
        self._stopped = asyncio.Event()

    async def subscribe(self, f: Any) -> None:
        self.subscribed.append(f)

    async def send_event(self, event: Any) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(event)

    async def disconnect(self) -> None:
        self.disconnected = True
        self._stopped.set()

    async def handle_notifications(self, handler: Any) -> None:
        self.handler = handler
        await self._stopped.wait()

    def drop(self) -> None:
        """Simulate the relay closing the connection on its own."""
        self._stopped.set()


class FakeConnector:
    """Records connection attempts and hands out FakeRelayClients.

    Setting ``gate`` holds every attempt until the event is set.
    """

    def __init__(self) -> None:
        self.attempts: list[str] = []
        self.clients: dict[str, FakeRelayClient] = {}
        self.failing: set[str] = set()
        self.opened: list[FakeRelayClient] = []
        self.gate: asyncio.Event | None = None

    async def __call__(
        self, url: str, *, proxy_url: str | None = None, timeout: float = 10.0
    ) -> FakeRelayClient:
        self.attempts.append(url)
        if self.gate is not None:
            await self.gate.wait()
        if url in self.failing:
            raise OSError(f"Connection failed: {url} (refused)")
        client = FakeRelayClient(url, proxy_url)
        self.clients[url] = client
        self.opened.append(client)
        return client


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def keys() -> Keys:
    return Keys.parse(VALID_HEX_KEY)


@pytest.fixture
def alice() -> Contact:
    return Contact("a" * 64, relay_url=RELAY_A, alias="alice")


@pytest.fixture
def bob() -> Contact:
    return Contact("b" * 64)


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
async def pool(connector: FakeConnector) -> AsyncIterator[RelayPool]:
    relay_pool = RelayPool(RelayPoolConfig(notification_capacity=8), connector=connector)
    yield relay_pool
    await relay_pool.shutdown()


@pytest.fixture
async def client(keys: Keys, pool: RelayPool) -> Client:
    return Client(keys, pool=pool)


@pytest.fixture
def runtime() -> Iterator[Runtime]:
    rt = Runtime(name="relaykit-test-runtime")
    yield rt
    rt.close()


async def settle(rounds: int = 5) -> None:
    """Yield to the event loop so freshly created tasks reach their first await."""
    for _ in range(rounds):
        await asyncio.sleep(0)
