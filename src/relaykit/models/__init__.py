"""Pure frozen dataclasses with zero I/O.

The models layer depends only on the standard library. Every model is an
immutable value validated in ``__post_init__``.

Attributes:
    Contact: Reference to another Nostr participant (public key, relay
        hint, alias).
    ContactList: Ordered, duplicate-free collection of contacts.
    RelayStatus: Connection state of a relay inside the pool.
    RelayPoolNotification: Union of the notifications published by the
        pool ([EventReceived][relaykit.models.notification.EventReceived],
        [MessageReceived][relaykit.models.notification.MessageReceived],
        [RelayStatusChanged][relaykit.models.notification.RelayStatusChanged],
        [PoolShutdown][relaykit.models.notification.PoolShutdown]).
"""

from .constants import HEX_KEY_LENGTH, RelayStatus
from .contact import Contact, ContactList
from .notification import (
    EventReceived,
    MessageReceived,
    PoolShutdown,
    RelayPoolNotification,
    RelayStatusChanged,
)


__all__ = [
    "HEX_KEY_LENGTH",
    "Contact",
    "ContactList",
    "EventReceived",
    "MessageReceived",
    "PoolShutdown",
    "RelayPoolNotification",
    "RelayStatus",
    "RelayStatusChanged",
]
