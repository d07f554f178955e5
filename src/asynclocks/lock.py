"""AsyncLock: strict FIFO mutual exclusion for callbacks on one event loop."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import replace

from .execution import ExecuteCallback, execute_deferred
from .queue_policy import LockOptions, QueueReducer, default_lock_options
from .queue_policy import reduce_queue as default_reduce_queue
from .tokens import LockToken

log = logging.getLogger("asynclocks")

LockCallback = Callable[[LockToken], None]


class LockUsageError(RuntimeError):
    pass


class AsyncLock:
    """
    Only the current token's callback runs; every other ``enter`` waits in
    a FIFO queue until the holder calls ``leave``.

    Hooks (each optional, supplied at construction):
      create_token(callback) -> LockToken
      execute_callback(token)          default: next loop turn
      reduce_queue(queue, options)     default: queue_policy.reduce_queue
    """

    def __init__(
        self,
        options: LockOptions | None = None,
        *,
        create_token: Callable[[LockCallback], LockToken] | None = None,
        execute_callback: ExecuteCallback | None = None,
        reduce_queue: QueueReducer | None = None,
    ) -> None:
        self.options = replace(options) if options is not None else default_lock_options()
        self._create_token_hook = create_token
        self._execute_callback = execute_callback or execute_deferred
        self._reduce_queue = reduce_queue or default_reduce_queue
        self.current_token: LockToken | None = None
        self._queue: deque[LockToken] = deque()

    def create_token(self, callback: LockCallback) -> LockToken:
        if self._create_token_hook is not None:
            return self._create_token_hook(callback)
        return LockToken(callback=callback, lock=self)

    def enter(self, callback: LockCallback, timeout: float | None = None) -> LockToken:
        """
        Run *callback* once the lock is acquired; returns its token.

        If *timeout* (seconds) elapses while the token is still queued, the
        token is canceled and the callback never runs.
        """
        token = self.create_token(callback)

        # Fast path: free => immediate admission
        if self.current_token is None:
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

    def leave(self, token: LockToken, abort_pending: bool = False) -> None:
        """
        Release the lock held by *token* and admit the next waiter FIFO.
        With *abort_pending*, every waiter is canceled instead.
        """
        if token is not self.current_token:
            raise LockUsageError("token does not hold the lock")

        self.current_token = None

        if abort_pending:
            aborted = len(self._queue)
            while self._queue:
                w = self._queue.popleft()
                w._disarm_timer()
                w.cancel()
            if aborted:
                log.warning("lock left with abort_pending: canceled=%d", aborted)
            return

        self._grant_next()

    def is_locked(self) -> bool:
        return self.current_token is not None

    def queue_size(self) -> int:
        return len(self._queue)

    def reduce_queue(self) -> list[LockToken]:
        """Re-trim the queue after ``options`` were changed."""
        evicted = self._reduce_queue(self._queue, self.options)
        self._finalize_evicted(evicted)
        return evicted

    def _admit(self, token: LockToken) -> None:
        token._disarm_timer()
        self.current_token = token
        log.debug("lock admitted: token=%s waited=%.3fs", token.id, token.elapsed())
        self._execute_callback(token)

    def _grant_next(self) -> None:
        while self._queue:
            w = self._queue.popleft()
            if w.is_canceled:
                w._disarm_timer()
                continue
            self._admit(w)
            return

    def _on_timeout(self, token: LockToken) -> None:
        token._timer = None
        if self._withdraw(token):
            log.debug("lock wait timed out: token=%s", token.id)

    def _withdraw(self, token: LockToken) -> bool:
        """Cancel *token* if it is still queued; False once admitted or evicted."""
        if token not in self._queue:
            return False
        self._queue.remove(token)
        token._disarm_timer()
        token.cancel()
        return True

    def _finalize_evicted(self, evicted: list[LockToken]) -> None:
        for w in evicted:
            w._disarm_timer()
            w.cancel()
            log.debug("lock queue overflow: evicted token=%s", w.id)

    def __repr__(self) -> str:
        state = "locked" if self.is_locked() else "unlocked"
        return f"AsyncLock({state}, queued={len(self._queue)})"
