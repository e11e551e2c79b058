"""Nostr event builders and identifier parsing.

Standalone functions used by [Client][relaykit.client.client.Client] to
turn user input into signed events. Kind 5 deletion requests follow NIP-09.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from nostr_sdk import EventBuilder, EventDeletionRequest, EventId, NostrSdkError

from relaykit.core.exceptions import ParseError, SigningError
from relaykit.models.constants import HEX_KEY_LENGTH


if TYPE_CHECKING:
    from nostr_sdk import Event, Keys


logger = logging.getLogger(__name__)

EVENT_ID_BYTES = HEX_KEY_LENGTH // 2


# =============================================================================
# Identifiers
# =============================================================================


def parse_event_id(value: str) -> EventId:
    """Decode a 64-character hex string into an ``EventId``.

    Raises:
        ParseError: If ``value`` is not hex or does not decode to 32 bytes.
    """
    if not isinstance(value, str) or len(value) != HEX_KEY_LENGTH:
        raise ParseError(f"event id must be {HEX_KEY_LENGTH} hex characters: {value!r}")
    try:
        raw = bytes.fromhex(value)
    except ValueError as e:
        raise ParseError(f"event id is not valid hex: {value!r}") from e
    if len(raw) != EVENT_ID_BYTES:
        raise ParseError(f"event id must decode to {EVENT_ID_BYTES} bytes: {value!r}")
    try:
        return EventId.parse(raw.hex())
    except NostrSdkError as e:
        raise ParseError(f"invalid event id: {value!r}") from e


# =============================================================================
# Kind 5 (NIP-09)
# =============================================================================


def build_delete_event(keys: Keys, ids: list[EventId], reason: str | None = None) -> Event:
    """Build and sign a Kind 5 deletion request for ``ids``.

    The event carries one ``e`` tag per id and ``reason`` (or an empty
    string) as content.

    Raises:
        SigningError: If the keys fail to sign the event.
    """
    request = EventDeletionRequest(ids=ids, coordinates=[], reason=reason)
    builder = EventBuilder.delete(request)
    try:
        event = builder.sign_with_keys(keys)
    except NostrSdkError as e:
        raise SigningError(f"failed to sign deletion request: {e}") from e
    logger.debug("delete_event_built id=%s targets=%d", event.id().to_hex(), len(ids))
    return event
