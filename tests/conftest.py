import pytest

import asynclocks.registry as reg
from asynclocks.execution import execute_sync
from asynclocks.lock import AsyncLock


@pytest.fixture(autouse=True)
def _reset_registry_state():
    """Drop the process-wide registry between every test."""
    reg._registry = None
    yield
    reg._registry = None


@pytest.fixture()
def sync_lock():
    """A lock whose callbacks run inside enter()/leave(); no event loop needed."""
    return AsyncLock(execute_callback=execute_sync)


@pytest.fixture()
def recorder():
    """Callback factory that records the order tokens were admitted in."""
    calls: list[str] = []

    def make(label: str):
        def _cb(token):
            calls.append(label)

        return _cb

    make.calls = calls
    return make
