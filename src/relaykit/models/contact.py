"""
Contacts and the ordered, duplicate-free contact list.

A [Contact][relaykit.models.contact.Contact] is a value: two contacts with
the same public key, relay hint and alias are equal and interchangeable.
[ContactList][relaykit.models.contact.ContactList] keeps contacts in
first-insertion order and never holds two equal values.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ._validation import validate_hex, validate_optional_str
from .constants import HEX_KEY_LENGTH


if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from nostr_sdk import PublicKey


@dataclass(frozen=True, slots=True)
class Contact:
    """Immutable reference to another Nostr participant.

    Attributes:
        public_key: 64-character hex public key, normalized to lowercase.
        relay_url: Optional relay hint where the contact publishes.
        alias: Optional local petname.

    Raises:
        TypeError: If a field has the wrong type.
        ValueError: If ``public_key`` is not 64 hex characters or a string
            field contains null bytes.

    Examples:
        ```python
        alice = Contact("A" * 64, relay_url="wss://relay.damus.io")
        alice.public_key  # 'aaaa...'
        alice == Contact("a" * 64, relay_url="wss://relay.damus.io")  # True
        ```
    """

    public_key: str
    relay_url: str | None = None
    alias: str | None = None

    def __post_init__(self) -> None:
        validate_hex(self.public_key, "public_key", length=HEX_KEY_LENGTH)
        validate_optional_str(self.relay_url, "relay_url")
        validate_optional_str(self.alias, "alias")
        object.__setattr__(self, "public_key", self.public_key.lower())

    @classmethod
    def from_public_key(
        cls,
        public_key: PublicKey,
        relay_url: str | None = None,
        alias: str | None = None,
    ) -> Contact:
        """Build a contact from a ``nostr_sdk.PublicKey``.

        Use ``PublicKey.parse()`` first to accept either hex or ``npub1``
        input.
        """
        return cls(public_key.to_hex(), relay_url=relay_url, alias=alias)

    def to_tag(self) -> list[str]:
        """Return the NIP-02 ``p`` tag for this contact."""
        tag = ["p", self.public_key]
        if self.relay_url is not None or self.alias is not None:
            tag.append(self.relay_url or "")
        if self.alias is not None:
            tag.append(self.alias)
        return tag


class ContactList:
    """Ordered sequence of contacts with no two equal elements.

    Every mutation re-checks membership, including construction: duplicates
    in the initial iterable are dropped, keeping the first occurrence.
    Not thread-safe; callers mutating from several tasks or threads must
    serialize access.
    """

    __slots__ = ("_items",)

    def __init__(self, contacts: Iterable[Contact] | None = None) -> None:
        self._items: list[Contact] = []
        for contact in contacts or ():
            self.add(contact)

    def add(self, contact: Contact) -> bool:
        """Append ``contact`` unless an equal one is present.

        Returns:
            ``True`` if the list changed.
        """
        if contact in self._items:
            return False
        self._items.append(contact)
        return True

    def remove(self, contact: Contact) -> bool:
        """Remove every element equal to ``contact``.

        Returns:
            ``True`` if the list changed.
        """
        if contact not in self._items:
            return False
        self._items = [c for c in self._items if c != contact]
        return True

    def to_list(self) -> list[Contact]:
        """Return a snapshot in insertion order."""
        return list(self._items)

    def __contains__(self, contact: object) -> bool:
        return contact in self._items

    def __iter__(self) -> Iterator[Contact]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ContactList):
            return self._items == other._items
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"ContactList({self._items!r})"
