"""Nostr event construction helpers.

Attributes:
    parse_event_id: Decode hex text into a ``nostr_sdk.EventId``.
    build_delete_event: Signed NIP-09 Kind 5 deletion request.
"""

from .event_builders import EVENT_ID_BYTES, build_delete_event, parse_event_id


__all__ = [
    "EVENT_ID_BYTES",
    "build_delete_event",
    "parse_event_id",
]
