r"""relaykit -- Nostr client orchestration with async and blocking surfaces.

A [Client][relaykit.client.client.Client] bundles signing keys, an ordered
duplicate-free contact list and an exclusively owned
[RelayPool][relaykit.core.pool.RelayPool]. Every operation exists as a
coroutine on ``Client`` and as a blocking call on
[BlockingClient][relaykit.client.blocking.BlockingClient], which drives the
same coroutine on one process-wide background event loop.

Imports flow strictly downward:

```text
             client            Async client and blocking facade
               |
             nips              Event builders and identifier parsing
               |
             core              Pool, broadcast channel, runtime, logger
               |
             utils             nostr-sdk keys and per-relay clients
               |
             models            Pure frozen dataclasses (zero I/O)
```

Note:
    Top-level imports (``from relaykit import Client``) are lazy and
    resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("relaykit")

__all__ = [
    "BlockingClient",
    "Client",
    "ClientConfig",
    "Contact",
    "ContactList",
    "EventReceived",
    "Logger",
    "MessageReceived",
    "PoolShutdown",
    "RelayPool",
    "RelayPoolConfig",
    "RelayPoolNotification",
    "RelayStatus",
    "RelayStatusChanged",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "BlockingClient": ("relaykit.client", "BlockingClient"),
    "Client": ("relaykit.client", "Client"),
    "ClientConfig": ("relaykit.client", "ClientConfig"),
    "Logger": ("relaykit.core", "Logger"),
    "RelayPool": ("relaykit.core", "RelayPool"),
    "RelayPoolConfig": ("relaykit.core", "RelayPoolConfig"),
    "Contact": ("relaykit.models", "Contact"),
    "ContactList": ("relaykit.models", "ContactList"),
    "EventReceived": ("relaykit.models", "EventReceived"),
    "MessageReceived": ("relaykit.models", "MessageReceived"),
    "PoolShutdown": ("relaykit.models", "PoolShutdown"),
    "RelayPoolNotification": ("relaykit.models", "RelayPoolNotification"),
    "RelayStatus": ("relaykit.models", "RelayStatus"),
    "RelayStatusChanged": ("relaykit.models", "RelayStatusChanged"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value  # Cache for subsequent access
        return value
    raise AttributeError(f"module 'relaykit' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
