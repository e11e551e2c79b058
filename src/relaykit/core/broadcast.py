"""
Bounded fan-out channel for relay pool notifications.

A [BroadcastChannel][relaykit.core.broadcast.BroadcastChannel] keeps the
most recent ``capacity`` items in a ring buffer indexed by a monotonically
increasing sequence number. Each
[Subscription][relaykit.core.broadcast.Subscription] is an independent
cursor into that sequence:

* it starts at the channel's next sequence number, so it only observes
  items sent after it was created;
* every item is delivered to it exactly once, in send order;
* when the sender overwrites items the cursor has not read yet, the next
  ``recv()`` raises
  [ChannelLaggedError][relaykit.core.exceptions.ChannelLaggedError] with the
  number of lost items and moves the cursor to the oldest retained one;
* after [close()][relaykit.core.broadcast.BroadcastChannel.close], the
  remaining buffered items are still delivered, then ``recv()`` raises
  [ChannelClosedError][relaykit.core.exceptions.ChannelClosedError].

Sending never blocks and never waits for slow subscribers. All methods must
be called from the event loop that awaits ``recv()``.

Examples:
    ```python
    channel: BroadcastChannel[str] = BroadcastChannel(capacity=16)
    first = channel.subscribe()
    second = channel.subscribe()
    channel.send("hello")

    assert await first.recv() == "hello"
    assert await second.recv() == "hello"
    ```
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Generic, TypeVar

from .exceptions import ChannelClosedError, ChannelLaggedError


T = TypeVar("T")

_EMPTY = object()


class BroadcastChannel(Generic[T]):
    """Single-producer, multi-consumer bounded broadcast channel."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._buffer: deque[T] = deque(maxlen=capacity)
        self._next_seq = 0
        self._closed = False
        self._waiters: list[asyncio.Future[None]] = []

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def _oldest_seq(self) -> int:
        return self._next_seq - len(self._buffer)

    def send(self, item: T) -> None:
        """Append ``item`` and wake every waiting subscription.

        Raises:
            ChannelClosedError: If the channel has been closed.
        """
        if self._closed:
            raise ChannelClosedError("cannot send on a closed channel")
        self._buffer.append(item)
        self._next_seq += 1
        self._wake()

    def close(self) -> None:
        """Close the channel. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._wake()

    def subscribe(self) -> Subscription[T]:
        """Return a new subscription positioned after the last sent item."""
        return Subscription(self, self._next_seq)

    def _wake(self) -> None:
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)

    async def _wait(self) -> None:
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        finally:
            if waiter in self._waiters:
                self._waiters.remove(waiter)

    def __repr__(self) -> str:
        return (
            f"BroadcastChannel(capacity={self._capacity}, "
            f"buffered={len(self._buffer)}, closed={self._closed})"
        )


class Subscription(Generic[T]):
    """Independent receive cursor over a
    [BroadcastChannel][relaykit.core.broadcast.BroadcastChannel].

    Obtained from
    [BroadcastChannel.subscribe()][relaykit.core.broadcast.BroadcastChannel.subscribe];
    never constructed directly.
    """

    __slots__ = ("_channel", "_cursor")

    def __init__(self, channel: BroadcastChannel[T], cursor: int) -> None:
        self._channel = channel
        self._cursor = cursor

    @property
    def pending(self) -> int:
        """Number of retained items this subscription has not read yet."""
        return self._channel._next_seq - max(self._cursor, self._channel._oldest_seq)

    def _poll(self) -> object:
        channel = self._channel
        oldest = channel._oldest_seq
        if self._cursor < oldest:
            skipped = oldest - self._cursor
            self._cursor = oldest
            raise ChannelLaggedError(skipped)
        if self._cursor < channel._next_seq:
            item = channel._buffer[self._cursor - oldest]
            self._cursor += 1
            return item
        if channel._closed:
            raise ChannelClosedError("notification channel closed")
        return _EMPTY

    async def recv(self) -> T:
        """Wait for and return the next item.

        Raises:
            ChannelLaggedError: Items were overwritten before being read.
                The subscription stays usable.
            ChannelClosedError: The channel is closed and fully drained.
        """
        while True:
            item = self._poll()
            if item is not _EMPTY:
                return item  # type: ignore[return-value]
            await self._channel._wait()

    def __aiter__(self) -> Subscription[T]:
        return self

    async def __anext__(self) -> T:
        """Iterate until the channel closes. Lag is raised to the caller."""
        try:
            return await self.recv()
        except ChannelClosedError:
            raise StopAsyncIteration from None
