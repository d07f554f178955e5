"""Options and the overflow policy for bounded pending queues."""

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from . import config
from .tokens import Token

log = logging.getLogger("asynclocks")


class OverflowStrategy(StrEnum):
    """Which token is dropped when an admission overflows the queue.

    Given pending ``[A, B, C]``, ``max_queue_size=3`` and incoming ``D``:

      this  -> D is canceled, queue stays [A, B, C]
      first -> A is canceled, queue becomes [B, C, D]
      last  -> C is canceled, queue becomes [A, B, D]
    """

    this = "this"
    first = "first"
    last = "last"


def _check_limit(name: str, value: int | None) -> None:
    if value is not None and value < 0:
        raise ValueError(f"{name} must be >= 0 or None, got {value}")


@dataclass
class LockOptions:
    max_queue_size: int | None = None  # pending only, the executing token excluded
    overflow_strategy: OverflowStrategy = OverflowStrategy.this

    def __post_init__(self):
        _check_limit("max_queue_size", self.max_queue_size)
        # raises ValueError for unknown strategies
        self.overflow_strategy = OverflowStrategy(self.overflow_strategy)


@dataclass
class ResetEventOptions(LockOptions):
    auto_reset_count: int | None = None  # admissions per set(), None = unbounded

    def __post_init__(self):
        super().__post_init__()
        _check_limit("auto_reset_count", self.auto_reset_count)


def default_lock_options() -> LockOptions:
    return LockOptions(
        max_queue_size=config.MAX_QUEUE_SIZE,
        overflow_strategy=OverflowStrategy(config.OVERFLOW_STRATEGY),
    )


def default_reset_event_options() -> ResetEventOptions:
    return ResetEventOptions(
        max_queue_size=config.MAX_QUEUE_SIZE,
        overflow_strategy=OverflowStrategy(config.OVERFLOW_STRATEGY),
        auto_reset_count=config.AUTO_RESET_COUNT,
    )


QueueReducer = Callable[[deque[Token], LockOptions], list[Token]]


def reduce_queue(queue: deque[Token], options: LockOptions) -> list[Token]:
    """
    Trim *queue* (oldest first, incoming token last) down to
    ``options.max_queue_size``. Evicted tokens are canceled and returned
    oldest first; the caller finalizes them (timers, logging).

    The strategy is checked on every call, so an unknown value assigned to
    ``options.overflow_strategy`` after construction raises ``ValueError``
    here, before any token is evicted.
    """
    limit = options.max_queue_size
    if limit is None:
        return []
    strategy = OverflowStrategy(options.overflow_strategy)
    if len(queue) <= limit:
        return []

    excess = len(queue) - limit
    removed: deque[Token] = deque()

    if strategy == OverflowStrategy.first:
        for _ in range(excess):
            removed.append(queue.popleft())
    elif strategy == OverflowStrategy.last and limit > 0:
        # the newest token takes the slot of the ones right before it
        newest = queue.pop()
        for _ in range(excess):
            removed.appendleft(queue.pop())
        queue.append(newest)
    else:
        for _ in range(excess):
            removed.appendleft(queue.pop())

    for token in removed:
        token.cancel()
    log.debug(
        "queue overflow: strategy=%s limit=%s evicted=%d",
        strategy,
        limit,
        len(removed),
    )
    return list(removed)
