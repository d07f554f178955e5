"""Execution strategies: how an admitted token's callback gets invoked."""

import asyncio
from collections.abc import Callable
from typing import Any

from .tokens import Token

ExecuteCallback = Callable[[Any], None]


def execute_sync(token: Token) -> None:
    """Invoke the callback right away, inside the caller's stack."""
    token.callback(token)


def execute_deferred(token: Token) -> None:
    """Invoke the callback on the next turn of the running event loop.

    The caller's stack unwinds first, so ``enter`` never calls back into
    the same lock before returning.
    """
    loop = asyncio.get_running_loop()
    loop.call_soon(token.callback, token)
