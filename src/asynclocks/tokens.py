"""Tokens: one per enter/wait call, never reused."""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .lock import AsyncLock
    from .reset_event import ResetEvent


def _now() -> float:
    return time.monotonic()


def _new_token_id() -> str:
    return uuid.uuid4().hex


@dataclass(eq=False)
class Token:
    """An admission request: identity, cancellation flag and callback.

    Tokens compare by identity. ``is_canceled`` flips to True at most once
    (timeout, overflow eviction or an aborted queue) and the callback of a
    canceled token is never invoked.
    """

    callback: Callable[[Any], None]
    id: str = field(default_factory=_new_token_id)
    start: float = field(default_factory=_now)
    is_canceled: bool = False
    _timer: asyncio.TimerHandle | None = field(default=None, repr=False)

    def elapsed(self) -> float:
        """Seconds since the token was created."""
        return _now() - self.start

    def cancel(self) -> None:
        # Queue removal is the owner's job.
        self.is_canceled = True

    def _arm_timer(self, timeout: float, on_timeout: Callable[[Token], None]) -> None:
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(timeout, on_timeout, self)

    def _disarm_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


@dataclass(eq=False)
class LockToken(Token):
    lock: AsyncLock | None = None

    def leave(self, abort_pending: bool = False) -> None:
        """Leave the lock this token was created by."""
        if self.lock is None:
            raise RuntimeError("token is not bound to a lock")
        self.lock.leave(self, abort_pending)


@dataclass(eq=False)
class ResetEventToken(Token):
    reset_event: ResetEvent | None = None
