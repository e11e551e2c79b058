"""nostr-sdk helpers: key management and per-relay client construction.

Attributes:
    generate_keys: Fresh keypair from the OS CSPRNG.
    clone_keys: Independent copy of a keypair.
    load_keys_from_env: Keys from an environment variable.
    create_client: nostr-sdk client factory with optional SOCKS5 proxy.
    open_relay: Connect a single relay.
    NotificationForwarder: nostr-sdk notification handler adapter.
"""

from .keys import ENV_PRIVATE_KEY, clone_keys, generate_keys, load_keys_from_env
from .protocol import DEFAULT_TIMEOUT, NotificationForwarder, create_client, open_relay


__all__ = [
    "DEFAULT_TIMEOUT",
    "ENV_PRIVATE_KEY",
    "NotificationForwarder",
    "clone_keys",
    "create_client",
    "generate_keys",
    "load_keys_from_env",
    "open_relay",
]
