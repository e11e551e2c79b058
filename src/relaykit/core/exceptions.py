"""relaykit exception hierarchy.

Every failure surfaced by the client layer is one of these types. Errors
coming out of nostr-sdk or the operating system are translated at the
[RelayPool][relaykit.core.pool.RelayPool] boundary (``raise ... from e``)
so callers never need to catch Rust FFI error types directly.

Exception hierarchy:

```text
RelayKitError (base -- never raised directly)
├── ConfigurationError       -- config validation, missing keys, bad YAML
├── ConnectivityError        -- relay add/remove/connect/disconnect failures
│   └── RelayNotFoundError   -- URL not known to the pool
├── ProtocolError            -- filter or event rejected by relays
├── ParseError               -- malformed event id text
├── SigningError             -- keys failed to sign an event
└── ChannelError             -- notification subscription failures
    ├── ChannelClosedError   -- producer side closed
    └── ChannelLaggedError   -- subscriber fell behind the buffer
```

See Also:
    [RelayPool][relaykit.core.pool.RelayPool]: Raises
        [ConnectivityError][relaykit.core.exceptions.ConnectivityError] and
        [ProtocolError][relaykit.core.exceptions.ProtocolError].
    [Subscription][relaykit.core.broadcast.Subscription]: Raises the
        [ChannelError][relaykit.core.exceptions.ChannelError] subclasses.
"""

from __future__ import annotations


class RelayKitError(Exception):
    """Base exception for all relaykit errors.

    Never raised directly -- always use a specific subclass.
    """


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(RelayKitError):
    """Invalid or missing configuration (YAML, env vars)."""


# ---------------------------------------------------------------------------
# Connectivity
# ---------------------------------------------------------------------------


class ConnectivityError(RelayKitError):
    """A relay could not be added, removed, connected or disconnected.

    Covers unreachable relays, malformed relay URLs, relays that already
    exist in the pool, and transport failures reported by nostr-sdk.
    """


class RelayNotFoundError(ConnectivityError):
    """The relay URL is not known to the pool."""


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class ProtocolError(RelayKitError):
    """Subscription filters or an event were rejected by the relays."""


class ParseError(RelayKitError):
    """Text could not be decoded into a protocol value (e.g. an event id)."""


class SigningError(RelayKitError):
    """The keys failed to produce a signed event."""


# ---------------------------------------------------------------------------
# Notification channel
# ---------------------------------------------------------------------------


class ChannelError(RelayKitError):
    """Base for notification subscription failures."""


class ChannelClosedError(ChannelError):
    """The channel was closed and the subscription has drained all entries."""


class ChannelLaggedError(ChannelError):
    """The subscription fell behind and missed ``skipped`` notifications.

    Not terminal: the subscription has already been moved forward to the
    oldest retained notification, so the next ``recv()`` succeeds.

    Attributes:
        skipped: Number of notifications the subscription will never see.
    """

    def __init__(self, skipped: int) -> None:
        super().__init__(f"subscription lagged, skipped {skipped} notifications")
        self.skipped = skipped
