"""Named locks: a registry mapping string keys to AsyncLock instances.

Locks are created on first reference to a name and live until the
registry is cleared. ``get_registry()`` returns a process-wide instance;
code that needs isolation (tests, libraries) builds its own
``LockRegistry`` and passes it around.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Any, TypeVar

from .execution import ExecuteCallback
from .lock import AsyncLock, LockCallback
from .queue_policy import LockOptions, QueueReducer, default_lock_options
from .tokens import LockToken

log = logging.getLogger("asynclocks")

T = TypeVar("T")


class LockRegistry:
    def __init__(
        self,
        default_options: LockOptions | None = None,
        *,
        create_token: Callable[[LockCallback], LockToken] | None = None,
        execute_callback: ExecuteCallback | None = None,
        reduce_queue: QueueReducer | None = None,
    ) -> None:
        self.default_options = (
            replace(default_options)
            if default_options is not None
            else default_lock_options()
        )
        self._hooks: dict[str, Any] = {
            "create_token": create_token,
            "execute_callback": execute_callback,
            "reduce_queue": reduce_queue,
        }
        self._locks: dict[str, AsyncLock] = {}

    def get(self, name: str) -> AsyncLock:
        """Return the lock called *name*, creating it with the defaults."""
        lk = self._locks.get(name)
        if lk is None:
            lk = AsyncLock(self.default_options, **self._hooks)
            self._locks[name] = lk
            log.debug("registry: created lock %r", name)
        return lk

    def lock(
        self,
        name: str,
        callback: Callable[[Callable[[], None]], None],
        timeout: float | None = None,
    ) -> LockToken:
        """
        Enter the lock called *name*. *callback* receives a ``leave()``
        function that must be called to free the lock.
        """
        lk = self.get(name)
        return lk.enter(lambda token: callback(lambda: lk.leave(token)), timeout)

    async def run(
        self, name: str, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any
    ) -> T:
        """
        Await ``func(*args, **kwargs)`` while holding the lock called *name*.
        The lock is released when it returns or raises.

        If the waiting token is evicted by the overflow strategy, this never
        returns; wrap it in ``asyncio.wait_for`` to bound the wait. A task
        cancelled while still queued gives up its place in the queue.
        """
        lk = self.get(name)
        loop = asyncio.get_running_loop()
        fut: asyncio.Future[LockToken] = loop.create_future()

        def _on_admit(token: LockToken) -> None:
            # Race check: the waiting task may be gone (cancelled)
            if fut.done():
                lk.leave(token)
                return
            fut.set_result(token)

        pending = lk.enter(_on_admit)
        try:
            token = await fut
        except asyncio.CancelledError:
            # Race check: admitted between set_result and our wake-up
            if fut.done() and not fut.cancelled():
                lk.leave(fut.result())
            else:
                lk._withdraw(pending)
            raise
        try:
            return await func(*args, **kwargs)
        finally:
            lk.leave(token)

    def is_locked(self, name: str) -> bool:
        lk = self._locks.get(name)
        return lk is not None and lk.is_locked()

    def lock_exists(self, name: str) -> bool:
        return name in self._locks

    def queue_size(self, name: str) -> int:
        lk = self._locks.get(name)
        return lk.queue_size() if lk is not None else 0

    def get_options(self, name: str) -> LockOptions | None:
        """A copy of the options of *name*, or None if it does not exist."""
        lk = self._locks.get(name)
        return replace(lk.options) if lk is not None else None

    def set_options(self, name: str, **changes: Any) -> None:
        """
        Update the options of *name*, creating the lock if needed. The
        queue is not re-trimmed; call ``get(name).reduce_queue()`` for that.
        """
        lk = self.get(name)
        lk.options = replace(lk.options, **changes)

    def clear(self) -> None:
        self._locks.clear()

    def __len__(self) -> int:
        return len(self._locks)

    def __contains__(self, name: object) -> bool:
        return name in self._locks


_registry: LockRegistry | None = None


def get_registry() -> LockRegistry:
    """Return the process-wide registry, creating it on first use."""
    global _registry
    if _registry is None:
        _registry = LockRegistry()
    return _registry
