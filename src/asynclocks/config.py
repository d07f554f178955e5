"""Environment-driven defaults for lock and reset event options."""

import os

OVERFLOW_STRATEGIES = ("this", "first", "last")


def getenv_int(key: str, default: int | None) -> int | None:
    val = os.environ.get(key)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        return default


def getenv_limit(key: str) -> int | None:
    """A non-negative int from the environment, None when unset or invalid."""
    val = getenv_int(key, None)
    if val is None or val < 0:
        return None
    return val


def getenv_choice(key: str, choices: tuple[str, ...], default: str) -> str:
    val = os.environ.get(key)
    if val is None:
        return default
    val = val.strip().lower()
    return val if val in choices else default


# ---- Queue limits ----
MAX_QUEUE_SIZE = getenv_limit(
    "ASYNCLOCKS_MAX_QUEUE_SIZE"
)  # pending callbacks per instance, None = unbounded
OVERFLOW_STRATEGY = getenv_choice(
    "ASYNCLOCKS_OVERFLOW_STRATEGY", OVERFLOW_STRATEGIES, "this"
)  # which token is dropped when the queue is full

# ---- Reset event ----
AUTO_RESET_COUNT = getenv_limit(
    "ASYNCLOCKS_AUTO_RESET_COUNT"
)  # admissions per set(), None = unbounded
