"""Client surfaces.

Attributes:
    Client: Async-native client; the only implementation of every
        operation. See [Client][relaykit.client.client.Client].
    BlockingClient: Synchronous adapter driving ``Client`` on the shared
        runtime. See [BlockingClient][relaykit.client.blocking.BlockingClient].
    ClientConfig: Pydantic configuration for both.
"""

from .blocking import BlockingClient, BlockingSubscription
from .client import Client
from .configs import ClientConfig, RelayConfig


__all__ = [
    "BlockingClient",
    "BlockingSubscription",
    "Client",
    "ClientConfig",
    "RelayConfig",
]
