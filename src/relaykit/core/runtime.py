"""
Process-wide background event loop backing the blocking client.

[BlockingClient][relaykit.client.blocking.BlockingClient] never runs its
own event loop. Every call is submitted to one shared
[Runtime][relaykit.core.runtime.Runtime]: a daemon thread running an
asyncio loop forever. The calling thread parks on the returned future until
the coroutine finishes, so results and exceptions come back unchanged.

Lifecycle:

* created lazily by [get_runtime()][relaykit.core.runtime.get_runtime] on
  the first blocking call, under a lock so only one is ever built;
* closed at interpreter exit via ``atexit``;
* never reset. There is no public shutdown API.

Warning:
    Blocking calls must not be made from inside the runtime's own thread
    (for example from a ``handle_notifications`` callback running on it).
    That would wait on a future the same thread has to complete, so
    [block_on()][relaykit.core.runtime.Runtime.block_on] raises
    ``RuntimeError`` instead.
"""

from __future__ import annotations

import asyncio
import atexit
import logging
import threading
from typing import TYPE_CHECKING, Any, TypeVar


if TYPE_CHECKING:
    from collections.abc import Coroutine


logger = logging.getLogger(__name__)

T = TypeVar("T")

_runtime: Runtime | None = None
_runtime_lock = threading.Lock()


class Runtime:
    """An asyncio event loop running forever on a dedicated daemon thread."""

    def __init__(self, name: str = "relaykit-runtime") -> None:
        self._loop = asyncio.new_event_loop()
        self._started = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()
        self._started.wait()

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.call_soon(self._started.set)
        self._loop.run_forever()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive() and not self._loop.is_closed()

    def block_on(self, coro: Coroutine[Any, Any, T]) -> T:
        """Run ``coro`` on the runtime loop and wait for its result.

        If the waiting thread is interrupted (e.g. ``KeyboardInterrupt``)
        the coroutine is cancelled before the interruption propagates.

        Raises:
            RuntimeError: If called from the runtime thread itself, or after
                the runtime has been closed.
        """
        if threading.current_thread() is self._thread:
            coro.close()
            raise RuntimeError("blocking call made from inside the shared runtime thread")
        if not self.is_running:
            coro.close()
            raise RuntimeError("runtime is closed")

        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        try:
            return future.result()
        except BaseException:
            future.cancel()
            raise

    def close(self) -> None:
        """Cancel pending tasks, stop the loop and join the thread."""
        if self._loop.is_closed():
            return

        async def _cancel_pending() -> None:
            current = asyncio.current_task()
            tasks = [t for t in asyncio.all_tasks() if t is not current]
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        if self._thread.is_alive():
            asyncio.run_coroutine_threadsafe(_cancel_pending(), self._loop).result()
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join()
        self._loop.close()
        logger.debug("runtime_closed name=%s", self._thread.name)


def get_runtime() -> Runtime:
    """Return the process-wide runtime, creating it on first use."""
    global _runtime  # noqa: PLW0603
    if _runtime is None:
        with _runtime_lock:
            if _runtime is None:
                _runtime = Runtime()
                atexit.register(_runtime.close)
                logger.debug("runtime_started")
    return _runtime
