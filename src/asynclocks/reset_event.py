"""ResetEvent: a reusable signal that releases queued callbacks on set().

Modelled on auto/manual reset events: ``reset()`` makes waiters queue,
``set()`` releases them. With ``auto_reset_count`` the event flips back to
non-signaled after that many admissions per ``set()``; left unbounded it
behaves as a manual reset event and stays signaled until ``reset()``.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import replace

from .execution import ExecuteCallback, execute_sync
from .queue_policy import QueueReducer, ResetEventOptions, default_reset_event_options
from .queue_policy import reduce_queue as default_reduce_queue
from .tokens import ResetEventToken

log = logging.getLogger("asynclocks")

ResetEventCallback = Callable[[ResetEventToken], None]


class ResetEvent:
    def __init__(
        self,
        signaled: bool = False,
        options: ResetEventOptions | None = None,
        *,
        create_token: Callable[[ResetEventCallback], ResetEventToken] | None = None,
        execute_callback: ExecuteCallback | None = None,
        reduce_queue: QueueReducer | None = None,
    ) -> None:
        self.options = (
            replace(options) if options is not None else default_reset_event_options()
        )
        self._create_token_hook = create_token
        self._execute_callback = execute_callback or execute_sync
        self._reduce_queue = reduce_queue or default_reduce_queue
        self._queue: deque[ResetEventToken] = deque()
        self._signaled = False
        self._remaining_auto_reset: int | None = None
        if signaled:
            self.set()

    def create_token(self, callback: ResetEventCallback) -> ResetEventToken:
        if self._create_token_hook is not None:
            return self._create_token_hook(callback)
        return ResetEventToken(callback=callback, reset_event=self)

    @property
    def remaining_auto_reset(self) -> int | None:
        """Admissions left before the event resets itself, None if unbounded."""
        return self._remaining_auto_reset

    def reset(self) -> None:
        self._signaled = False

    def set(self) -> None:
        """
        Signal the event and run pending callbacks in FIFO order until the
        queue is empty or the auto-reset budget is used up. In the latter
        case the event is non-signaled again when this returns.
        """
        if not self._signaled:
            self._signaled = True
            self._remaining_auto_reset = self.options.auto_reset_count

        while self._queue and self._can_admit():
            w = self._queue.popleft()
            if w.is_canceled:
                w._disarm_timer()
                continue
            self._admit(w)

        if not self._can_admit():
            self._signaled = False

    def wait(
        self, callback: ResetEventCallback, timeout: float | None = None
    ) -> ResetEventToken:
        """
        Run *callback* once the event is signaled; right away if it already
        is. If *timeout* (seconds) elapses first, the token is canceled and
        the callback never runs.
        """
        token = self.create_token(callback)

        if self._can_admit():
            self._admit(token)
            return token

        self._queue.append(token)
        try:
            evicted = self._reduce_queue(self._queue, self.options)
        except ValueError:
            # bad overflow_strategy: the incoming token is not kept
            self._queue.remove(token)
            raise
        self._finalize_evicted(evicted)

        if timeout is not None and not token.is_canceled:
            token._arm_timer(timeout, self._on_timeout)
        return token

    def is_signaled(self) -> bool:
        return self._signaled

    def queue_size(self) -> int:
        return len(self._queue)

    def reduce_queue(self) -> list[ResetEventToken]:
        """Re-trim the queue after ``options`` were changed."""
        evicted = self._reduce_queue(self._queue, self.options)
        self._finalize_evicted(evicted)
        return evicted

    def _can_admit(self) -> bool:
        if not self._signaled:
            return False
        return self._remaining_auto_reset is None or self._remaining_auto_reset > 0

    def _admit(self, token: ResetEventToken) -> None:
        token._disarm_timer()
        if self._remaining_auto_reset is not None:
            self._remaining_auto_reset -= 1
            if self._remaining_auto_reset <= 0:
                # non-signaled before the callback runs
                self._signaled = False
        log.debug("reset event admitted: token=%s waited=%.3fs", token.id, token.elapsed())
        self._execute_callback(token)

    def _on_timeout(self, token: ResetEventToken) -> None:
        token._timer = None
        if token not in self._queue:
            return
        self._queue.remove(token)
        token.cancel()
        log.debug("reset event wait timed out: token=%s", token.id)

    def _finalize_evicted(self, evicted: list[ResetEventToken]) -> None:
        for w in evicted:
            w._disarm_timer()
            w.cancel()
            log.debug("reset event queue overflow: evicted token=%s", w.id)

    def __repr__(self) -> str:
        state = "signaled" if self._signaled else "non-signaled"
        return f"ResetEvent({state}, queued={len(self._queue)})"
