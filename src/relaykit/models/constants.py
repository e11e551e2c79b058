"""Shared constants for the models layer.

See Also:
    [RelayPool][relaykit.core.pool.RelayPool]: Tracks one
        [RelayStatus][relaykit.models.constants.RelayStatus] per relay.
    [RelayStatusChanged][relaykit.models.notification.RelayStatusChanged]:
        Notification published on every status transition.
"""

from __future__ import annotations

from enum import StrEnum


# Hex length of a 32-byte public key or event id
HEX_KEY_LENGTH = 64


class RelayStatus(StrEnum):
    """Connection state of a relay inside the pool.

    Attributes:
        INITIALIZED: Added to the pool, never connected.
        CONNECTING: A connection attempt is in flight.
        CONNECTED: Connected; its notifications are forwarded.
        DISCONNECTED: Explicitly disconnected or the last attempt failed.
        TERMINATED: Removed from the pool.
    """

    INITIALIZED = "initialized"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    TERMINATED = "terminated"
