"""
Notifications published by the relay pool.

The pool emits one of these frozen dataclasses for every event, raw relay
message and status transition it observes. The client never inspects them;
it only hands them to subscribers and callbacks. Match on the type:

```python
match notification:
    case EventReceived(relay_url=url, event=event):
        ...
    case RelayStatusChanged(status=RelayStatus.DISCONNECTED):
        ...
```
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeAlias

from .constants import RelayStatus


@dataclass(frozen=True, slots=True)
class EventReceived:
    """A relay delivered an event for one of the pool's subscriptions.

    Attributes:
        relay_url: URL of the relay that sent the event.
        subscription_id: Subscription the event matched.
        event: The ``nostr_sdk.Event``.
    """

    relay_url: str
    subscription_id: str
    event: Any


@dataclass(frozen=True, slots=True)
class MessageReceived:
    """A relay sent a protocol message (``NOTICE``, ``EOSE``, ``OK``, ...).

    Attributes:
        relay_url: URL of the relay that sent the message.
        message: The ``nostr_sdk.RelayMessage``.
    """

    relay_url: str
    message: Any


@dataclass(frozen=True, slots=True)
class RelayStatusChanged:
    """A relay moved to a new connection status."""

    relay_url: str
    status: RelayStatus


@dataclass(frozen=True, slots=True)
class PoolShutdown:
    """The pool was shut down; every relay has been disconnected."""


RelayPoolNotification: TypeAlias = EventReceived | MessageReceived | RelayStatusChanged | PoolShutdown
