"""Core layer: relay pool, notification channel, runtime, errors, logging.

Attributes:
    RelayPool: Relay connections, filters and notification fan-out.
        See [RelayPool][relaykit.core.pool.RelayPool].
    BroadcastChannel: Bounded multi-consumer channel with lag detection.
        See [BroadcastChannel][relaykit.core.broadcast.BroadcastChannel].
    Runtime: Process-wide background event loop used by the blocking
        client. See [get_runtime()][relaykit.core.runtime.get_runtime].
    Logger: Structured key=value / JSON logger.
    load_yaml: Safe YAML loading for configuration files.
"""

from .broadcast import BroadcastChannel, Subscription
from .exceptions import (
    ChannelClosedError,
    ChannelError,
    ChannelLaggedError,
    ConfigurationError,
    ConnectivityError,
    ParseError,
    ProtocolError,
    RelayKitError,
    RelayNotFoundError,
    SigningError,
)
from .logger import Logger, StructuredFormatter, format_kv_pairs
from .pool import RelayPool, RelayPoolConfig
from .runtime import Runtime, get_runtime
from .yaml import load_yaml


__all__ = [
    "BroadcastChannel",
    "ChannelClosedError",
    "ChannelError",
    "ChannelLaggedError",
    "ConfigurationError",
    "ConnectivityError",
    "Logger",
    "ParseError",
    "ProtocolError",
    "RelayKitError",
    "RelayNotFoundError",
    "RelayPool",
    "RelayPoolConfig",
    "Runtime",
    "SigningError",
    "StructuredFormatter",
    "Subscription",
    "format_kv_pairs",
    "get_runtime",
    "load_yaml",
]
